"""Tests for transaction compilation, signing and wire format."""

from __future__ import annotations

import base64

import pytest

from city_sync.keys import Keypair, b58encode, verify_signature
from city_sync.ledger import AccountMeta, Instruction, Message, Transaction
from city_sync.ledger.transaction import decode_compact_u16, encode_compact_u16
from tests.city_sync.helpers import decode_sent, make_keypair, make_pubkey

BLOCKHASH = b58encode(b"\x11" * 32)


class TestCompactU16:
    """Compact length prefixes."""

    @pytest.mark.parametrize(
        "value, encoded",
        [
            (0, b"\x00"),
            (0x7F, b"\x7f"),
            (0x80, b"\x80\x01"),
            (0x3FFF, b"\xff\x7f"),
            (0x4000, b"\x80\x80\x01"),
            (0xFFFF, b"\xff\xff\x03"),
        ],
    )
    def test_known_encodings(self, value: int, encoded: bytes) -> None:
        """Seven bits per byte, high bit continues."""
        assert encode_compact_u16(value) == encoded
        assert decode_compact_u16(encoded) == (value, len(encoded))

    def test_out_of_range(self) -> None:
        """Values above 16 bits are rejected."""
        with pytest.raises(ValueError, match="out of range"):
            encode_compact_u16(0x10000)

    def test_truncated(self) -> None:
        """A continuation bit with nothing after it is rejected."""
        with pytest.raises(ValueError, match="Truncated"):
            decode_compact_u16(b"\x80")


class TestMessageCompile:
    """Account ordering and header counts."""

    def test_ordering_and_header(self) -> None:
        """Fee payer first, then signers, writable before read-only."""
        payer = make_pubkey(1)
        other_signer = make_pubkey(2)
        writable = make_pubkey(3)
        readonly = make_pubkey(4)
        program = make_pubkey(5)

        ix = Instruction(
            program_id=program,
            accounts=(
                AccountMeta(readonly),
                AccountMeta(writable, is_writable=True),
                AccountMeta(other_signer, is_signer=True),
                AccountMeta(payer, is_signer=True),
            ),
            data=b"\x01",
        )
        message = Message.compile(payer, BLOCKHASH, [ix])

        assert message.account_keys == (payer, other_signer, writable, readonly, program)
        assert message.num_required_signatures == 2
        assert message.num_readonly_signed == 1
        assert message.num_readonly_unsigned == 2
        assert message.instructions == ((4, (3, 2, 1, 0), b"\x01"),)

    def test_flags_merge_across_instructions(self) -> None:
        """A key writable in any instruction is writable in the message."""
        payer = make_pubkey(1)
        shared = make_pubkey(2)
        program = make_pubkey(5)
        first = Instruction(program, (AccountMeta(shared),), b"")
        second = Instruction(program, (AccountMeta(shared, is_writable=True),), b"")

        message = Message.compile(payer, BLOCKHASH, [first, second])

        assert message.account_keys.index(shared) == 1
        assert message.num_readonly_unsigned == 1


class TestTransaction:
    """Signing and serialization."""

    @staticmethod
    def _transaction(payer: Keypair, *extra_signers: Keypair) -> Transaction:
        accounts = tuple(AccountMeta(kp.pubkey, is_signer=True) for kp in extra_signers)
        target = AccountMeta(make_pubkey(8), is_writable=True)
        ix = Instruction(make_pubkey(9), (target, *accounts), b"")
        return Transaction(instructions=[ix], fee_payer=payer.pubkey, recent_blockhash=BLOCKHASH)

    def test_requires_stamping(self) -> None:
        """A transaction cannot be compiled before fee payer and blockhash are set."""
        with pytest.raises(ValueError, match="fee payer"):
            Transaction().compile_message()
        with pytest.raises(ValueError, match="blockhash"):
            Transaction(fee_payer=make_pubkey(1)).compile_message()

    def test_signature_is_fee_payer_signature(self) -> None:
        """The transaction id is the fee payer's signature in base58."""
        payer = make_keypair(1)
        tx = self._transaction(payer).sign(payer)
        assert tx.signature == b58encode(bytes(tx.signatures[payer.pubkey]))

    def test_unsigned_has_no_id(self) -> None:
        """No signature, no id."""
        assert self._transaction(make_keypair(1)).signature is None

    def test_serialize_requires_every_signature(self) -> None:
        """Missing co-signers block serialization."""
        payer, cosigner = make_keypair(1), make_keypair(2)
        tx = self._transaction(payer, cosigner).sign(payer)
        assert tx.missing_signers() == [cosigner.pubkey]
        with pytest.raises(ValueError, match="Missing signatures"):
            tx.serialize()

    def test_non_signer_cannot_sign(self) -> None:
        """Keys outside the signer set are refused."""
        tx = self._transaction(make_keypair(1))
        with pytest.raises(ValueError, match="not a required signer"):
            tx.sign(make_keypair(3))

    def test_add_signature_verifies(self) -> None:
        """Externally produced signatures must verify."""
        payer = make_keypair(1)
        tx = self._transaction(payer)
        with pytest.raises(ValueError, match="Invalid signature"):
            tx.add_signature(payer.pubkey, b"\x00" * 64)

        tx.add_signature(payer.pubkey, payer.sign(tx.message_bytes()))
        assert tx.missing_signers() == []

    def test_wire_format(self) -> None:
        """Signatures precede the message and verify against it."""
        payer, cosigner = make_keypair(1), make_keypair(2)
        tx = self._transaction(payer, cosigner).sign(payer, cosigner)

        sent = decode_sent(tx.serialize())

        assert sent.signers == [payer.pubkey, cosigner.pubkey]
        assert sent.recent_blockhash == BLOCKHASH
        assert sent.message == tx.message_bytes()
        for key, signature in zip(sent.signers, sent.signatures, strict=True):
            assert verify_signature(key, sent.message, signature)

    def test_base64(self) -> None:
        """The RPC form is base64 of the wire format."""
        payer = make_keypair(1)
        tx = self._transaction(payer).sign(payer)
        assert base64.b64decode(tx.to_base64()) == tx.serialize()
