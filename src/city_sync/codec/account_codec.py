"""
Binary conversion for program-owned accounts.

Decoding checks the discriminator before it reads a single field, and the
body must have exactly the record's length. A buffer that fails either check
never yields a partially decoded record.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, TypeVar, overload

from city_sync.errors import AccountDecodeError
from city_sync.types import Bytes8, CodecError, Record

from .accounts import CITY_DISCRIMINATOR, SESSION_TOKEN_DISCRIMINATOR, CityAccount, SessionToken

DISCRIMINATOR_LENGTH: Final = 8
"""Length of the type tag at the start of every account buffer."""

R = TypeVar("R", bound=Record)


class AccountKind(Enum):
    """Account record types owned by the program."""

    CITY = (CityAccount, CITY_DISCRIMINATOR)
    SESSION_TOKEN = (SessionToken, SESSION_TOKEN_DISCRIMINATOR)

    @property
    def record_type(self) -> type[Record]:
        """The record class for this account kind."""
        return self.value[0]

    @property
    def discriminator(self) -> Bytes8:
        """The 8-byte tag prefixing the account data."""
        return self.value[1]


_KIND_BY_TYPE: Final[dict[type[Record], AccountKind]] = {
    kind.record_type: kind for kind in AccountKind
}


def _kind_for(record_type: type[Record]) -> AccountKind:
    """Look up the account kind of a record class."""
    try:
        return _KIND_BY_TYPE[record_type]
    except KeyError:
        raise TypeError(f"{record_type.__name__} is not a program account") from None


def encode_account(record: Record) -> bytes:
    """Encode a record with its discriminator prefix."""
    kind = _kind_for(type(record))
    return bytes(kind.discriminator) + record.encode_bytes()


@overload
def decode_account(record_type: type[CityAccount], data: bytes) -> CityAccount: ...


@overload
def decode_account(record_type: type[SessionToken], data: bytes) -> SessionToken: ...


def decode_account(record_type: type[R], data: bytes) -> R:
    """
    Decode account data into a record.

    Raises:
        AccountDecodeError: If the discriminator does not match, the length is
            wrong, or any field fails validation.
    """
    kind = _kind_for(record_type)
    name = record_type.__name__

    if len(data) < DISCRIMINATOR_LENGTH:
        raise AccountDecodeError(name, f"buffer of {len(data)} bytes has no discriminator")

    tag = data[:DISCRIMINATOR_LENGTH]
    if tag != bytes(kind.discriminator):
        raise AccountDecodeError(name, f"discriminator mismatch: {tag.hex()}")

    body = data[DISCRIMINATOR_LENGTH:]
    try:
        return record_type.decode_bytes(body)
    except (CodecError, ValueError, OverflowError) as exc:
        raise AccountDecodeError(name, str(exc)) from exc
