"""Tests for delegation status derivation and the state machine."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from city_sync.delegation import DelegationStateMachine, DelegationStatus, derive_status
from city_sync.keys import CITY_PROGRAM_ID, DELEGATION_PROGRAM_ID, Pubkey
from city_sync.metrics import REGISTRY


def delegated_gauge() -> float | None:
    """Current value of the delegation gauge."""
    return REGISTRY.get_sample_value("city_sync_delegated")


class TestDeriveStatus:
    """Status derivation from the base-ledger owner."""

    def test_delegation_program_owner(self) -> None:
        """Owned by the delegation program means delegated."""
        assert derive_status(DELEGATION_PROGRAM_ID) is DelegationStatus.DELEGATED

    def test_city_program_owner(self) -> None:
        """Owned by the city program means undelegated."""
        assert derive_status(CITY_PROGRAM_ID) is DelegationStatus.UNDELEGATED

    def test_missing_account(self) -> None:
        """No account means undelegated."""
        assert derive_status(None) is DelegationStatus.UNDELEGATED

    @given(st.binary(min_size=32, max_size=32))
    def test_pure(self, raw: bytes) -> None:
        """The same owner always yields the same status."""
        owner = Pubkey(raw)
        assert derive_status(owner) is derive_status(Pubkey(raw))
        assert (derive_status(owner) is DelegationStatus.DELEGATED) == (
            owner == DELEGATION_PROGRAM_ID
        )


class TestTransitions:
    """The transition table."""

    @pytest.mark.parametrize("status", list(DelegationStatus))
    def test_checking_reachable_from_settled(self, status: DelegationStatus) -> None:
        """Every settled status may start a re-derivation."""
        if status.is_settled:
            assert status.can_transition_to(DelegationStatus.CHECKING)

    def test_checking_settles_either_way(self) -> None:
        """CHECKING ends in either settled status."""
        assert DelegationStatus.CHECKING.can_transition_to(DelegationStatus.DELEGATED)
        assert DelegationStatus.CHECKING.can_transition_to(DelegationStatus.UNDELEGATED)
        assert not DelegationStatus.CHECKING.can_transition_to(DelegationStatus.CHECKING)


class TestStateMachine:
    """Recomputation and listeners."""

    def test_starts_checking(self) -> None:
        """Nothing is known before the first probe."""
        machine = DelegationStateMachine()
        assert machine.status is DelegationStatus.CHECKING
        assert machine.settled_status is None
        assert not machine.is_delegated

    async def test_recompute_settles(self) -> None:
        """A probe returning the delegation program settles on DELEGATED."""
        machine = DelegationStateMachine()

        async def probe() -> Pubkey | None:
            return DELEGATION_PROGRAM_ID

        assert await machine.recompute(probe)
        assert machine.status is DelegationStatus.DELEGATED
        assert delegated_gauge() == 1.0

    async def test_status_is_checking_during_probe(self) -> None:
        """The status reads CHECKING while the probe runs."""
        machine = DelegationStateMachine()
        seen: list[DelegationStatus] = []

        async def probe() -> Pubkey | None:
            seen.append(machine.status)
            return None

        await machine.recompute(probe)
        assert seen == [DelegationStatus.CHECKING]

    async def test_probe_failure_settles_undelegated(self) -> None:
        """Any probe failure falls back to the canonical ledger."""
        machine = DelegationStateMachine()
        machine.force(DelegationStatus.DELEGATED)

        async def probe() -> Pubkey | None:
            raise ConnectionError("ledger unreachable")

        assert await machine.recompute(probe)
        assert machine.status is DelegationStatus.UNDELEGATED
        assert delegated_gauge() == 0.0

    async def test_unchanged_status_does_not_notify(self) -> None:
        """Re-deriving the same status is a no-op for listeners."""
        machine = DelegationStateMachine()
        changes: list[tuple[DelegationStatus, DelegationStatus]] = []
        machine.on_change(lambda prev, cur: changes.append((prev, cur)))

        async def probe() -> Pubkey | None:
            return CITY_PROGRAM_ID

        assert await machine.recompute(probe)
        assert not await machine.recompute(probe)
        assert changes == [(DelegationStatus.CHECKING, DelegationStatus.UNDELEGATED)]

    def test_force_rejects_checking(self) -> None:
        """CHECKING is never a settled answer."""
        with pytest.raises(ValueError, match="CHECKING"):
            DelegationStateMachine().force(DelegationStatus.CHECKING)

    def test_reset(self) -> None:
        """reset() forgets the settled status."""
        machine = DelegationStateMachine()
        machine.force(DelegationStatus.DELEGATED)
        machine.reset()
        assert machine.status is DelegationStatus.CHECKING
        assert machine.settled_status is None
