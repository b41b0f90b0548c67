"""
Program-derived addresses.

A program-derived address (PDA) is an address with no private key: it is a
hash of some seeds and the owning program, chosen so that it does not lie on
the Ed25519 curve. The city account of an authority is the PDA seeded by the
authority key, so it can always be recomputed without an index.
"""

from __future__ import annotations

import hashlib
from typing import Final, Sequence

from .pubkey import Pubkey

MAX_SEED_LENGTH: Final = 32
"""Maximum length of a single seed in bytes."""

MAX_SEEDS: Final = 16
"""Maximum number of seeds, including the bump."""

PDA_MARKER: Final = b"ProgramDerivedAddress"
"""Domain separator appended to every PDA hash input."""

_P: Final = 2**255 - 19
"""Field prime of Curve25519."""

_D: Final = (-121665 * pow(121666, _P - 2, _P)) % _P
"""Edwards curve constant d = -121665/121666."""

_SQRT_M1: Final = pow(2, (_P - 1) // 4, _P)
"""A square root of -1 in the field."""


def is_on_curve(data: bytes) -> bool:
    """
    Check whether 32 bytes decompress to a point on the Ed25519 curve.

    The encoding stores y in the low 255 bits. The point exists iff
    x^2 = (y^2 - 1) / (d*y^2 + 1) has a square root in the field.
    """
    y = int.from_bytes(data, "little") & ((1 << 255) - 1)
    if y >= _P:
        return False

    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P

    # Candidate root x = u * v^3 * (u * v^7)^((p - 5) / 8).
    v3 = v * v % _P * v % _P
    x = u * v3 % _P * pow(u * v3 % _P * v3 % _P * v % _P, (_P - 5) // 8, _P) % _P
    vx2 = v * x % _P * x % _P

    if vx2 == u:
        return True
    if vx2 == (-u) % _P:
        x = x * _SQRT_M1 % _P
        return v * x % _P * x % _P == u
    return False


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """
    Hash seeds into an address owned by `program_id`.

    Raises:
        ValueError: If a seed is too long, there are too many seeds, or the
            resulting address lies on the curve.
    """
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds are allowed, got {len(seeds)}")

    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise ValueError(f"Seed exceeds {MAX_SEED_LENGTH} bytes: {len(seed)}")
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)

    digest = hasher.digest()
    if is_on_curve(digest):
        raise ValueError("Derived address lies on the Ed25519 curve")
    return Pubkey(digest)


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """
    Find the first off-curve address, trying bump seeds from 255 down to 0.

    Returns:
        The address and the bump seed that produced it.

    Raises:
        ValueError: If no bump produces a valid address.
    """
    for bump in range(255, -1, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except ValueError:
            continue
    raise ValueError("Unable to find a viable program address bump seed")
