"""
Configuration for the sync client.

Endpoints, timings and program identities, with defaults for the public
devnet and its rollup. Every field can be overridden from the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from city_sync.keys import CITY_PROGRAM_ID, DELEGATION_PROGRAM_ID, Pubkey
from city_sync.ledger import Commitment

_SUPPORTED_ENVS: list[str] = ["prod", "test"]

CITY_SYNC_ENV = os.environ.get("CITY_SYNC_ENV", "prod").lower()
"""The environment flag ('prod' or 'test'). Defaults to 'prod'."""

if CITY_SYNC_ENV not in _SUPPORTED_ENVS:
    raise ValueError(
        f"Invalid CITY_SYNC_ENV environment variable: '{CITY_SYNC_ENV}'. "
        f"Supported values: {_SUPPORTED_ENVS}"
    )

ENV_PREFIX = "CITY_SYNC_"
"""Prefix of every configuration variable."""


def ws_url_for(rpc_url: str) -> str:
    """Derive the websocket endpoint from an HTTP endpoint."""
    if rpc_url.startswith("https://"):
        return "wss://" + rpc_url.removeprefix("https://")
    if rpc_url.startswith("http://"):
        return "ws://" + rpc_url.removeprefix("http://")
    return rpc_url


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings for one client."""

    base_rpc_url: str = "https://api.devnet.solana.com"
    """Base ledger JSON-RPC endpoint."""

    base_ws_url: str = "wss://api.devnet.solana.com"
    """Base ledger websocket endpoint."""

    rollup_rpc_url: str = "https://devnet.magicblock.app"
    """Rollup JSON-RPC endpoint."""

    rollup_ws_url: str = "wss://devnet.magicblock.app"
    """Rollup websocket endpoint."""

    commitment: Commitment = Commitment.CONFIRMED
    """Commitment for reads, subscriptions and confirmations."""

    settle_delay: float = 2.0
    """Seconds to wait for the base ledger after delegate and undelegate."""

    notice_duration: float = 5.0
    """Seconds a success or error notice stays up."""

    confirm_timeout: float = 60.0
    """Seconds to wait for a transaction to confirm."""

    poll_interval: float = 0.5
    """Seconds between confirmation polls."""

    request_timeout: float = 30.0
    """Seconds before an HTTP request times out."""

    program_id: Pubkey = field(default=CITY_PROGRAM_ID)
    """The city program."""

    delegation_program_id: Pubkey = field(default=DELEGATION_PROGRAM_ID)
    """The delegation program."""

    def __post_init__(self) -> None:
        for name in ("settle_delay", "notice_duration", "confirm_timeout", "poll_interval"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """
        Build a config from `CITY_SYNC_*` variables.

        A base or rollup RPC override without a matching websocket override
        derives the websocket endpoint from it.

        Raises:
            ValueError: If a variable cannot be parsed.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        values: dict[str, object] = {}
        for name, base_key in (("base", "BASE"), ("rollup", "ROLLUP")):
            rpc = get(f"{base_key}_RPC_URL")
            ws = get(f"{base_key}_WS_URL")
            if rpc is not None:
                values[f"{name}_rpc_url"] = rpc
                values[f"{name}_ws_url"] = ws if ws is not None else ws_url_for(rpc)
            elif ws is not None:
                values[f"{name}_ws_url"] = ws

        if (commitment := get("COMMITMENT")) is not None:
            values["commitment"] = Commitment(commitment.lower())

        for name in (
            "settle_delay",
            "notice_duration",
            "confirm_timeout",
            "poll_interval",
            "request_timeout",
        ):
            raw = get(name.upper())
            if raw is not None:
                try:
                    values[name] = float(raw)
                except ValueError:
                    raise ValueError(f"Invalid {ENV_PREFIX}{name.upper()}: {raw!r}") from None

        if (program := get("PROGRAM_ID")) is not None:
            values["program_id"] = Pubkey.from_base58(program)
        if (delegation := get("DELEGATION_PROGRAM_ID")) is not None:
            values["delegation_program_id"] = Pubkey.from_base58(delegation)

        return cls(**values)  # type: ignore[arg-type]
