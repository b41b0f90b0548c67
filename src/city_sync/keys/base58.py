"""
Base58 encoding/decoding (Bitcoin-style alphabet).

Base58 excludes visually ambiguous characters (0, O, I, l), which is why the
ledger uses it for the text form of every account key and signature.
"""

from __future__ import annotations

from typing import Final

ALPHABET: Final[str] = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
"""Base58 alphabet (Bitcoin style, excludes 0, O, I, l)."""


def b58encode(data: bytes) -> str:
    """
    Encode bytes as a Base58 string.

    Leading zero bytes become leading '1' characters.
    """
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))

    num = int.from_bytes(data, "big")
    result: list[str] = []
    while num > 0:
        num, remainder = divmod(num, 58)
        result.append(ALPHABET[remainder])

    result.extend([ALPHABET[0]] * leading_zeros)
    return "".join(reversed(result))


def b58decode(text: str) -> bytes:
    """
    Decode a Base58 string to bytes.

    Leading '1' characters become leading zero bytes.

    Raises:
        ValueError: If the string contains characters outside the alphabet.
    """
    leading_ones = len(text) - len(text.lstrip(ALPHABET[0]))

    num = 0
    for char in text:
        index = ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"Invalid Base58 character: {char!r}")
        num = num * 58 + index

    body = b"" if num == 0 else num.to_bytes((num.bit_length() + 7) // 8, "big")
    return b"\x00" * leading_ones + body
