"""Tests for Base58 encoding and the Pubkey text form."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from city_sync.keys import DELEGATION_PROGRAM_ID, SYSTEM_PROGRAM_ID, Pubkey, b58decode, b58encode


class TestBase58:
    """Base58 encoding."""

    def test_leading_zeros_become_ones(self) -> None:
        """Each leading zero byte maps to one '1'."""
        assert b58encode(b"\x00\x00\x01") == "112"
        assert b58decode("112") == b"\x00\x00\x01"

    def test_empty(self) -> None:
        """Empty input encodes to the empty string."""
        assert b58encode(b"") == ""
        assert b58decode("") == b""

    @pytest.mark.parametrize("char", ["0", "O", "I", "l", "+"])
    def test_rejects_characters_outside_alphabet(self, char: str) -> None:
        """Ambiguous characters are not part of the alphabet."""
        with pytest.raises(ValueError, match="Invalid Base58 character"):
            b58decode("abc" + char)

    @given(st.binary(max_size=64))
    def test_decode_inverts_encode(self, data: bytes) -> None:
        """Decoding an encoding returns the original bytes."""
        assert b58decode(b58encode(data)) == data


class TestPubkey:
    """Account keys."""

    def test_system_program_is_all_zeros(self) -> None:
        """The system program id is 32 zero bytes."""
        assert bytes(SYSTEM_PROGRAM_ID) == b"\x00" * 32

    def test_text_form_is_base58(self) -> None:
        """str() gives the base58 form it was parsed from."""
        text = "DELeGGvXpWV2fqJUhqcF5ZSYMS4JTLjteaAMARRSaeSh"
        assert str(DELEGATION_PROGRAM_ID) == text
        assert Pubkey(text) == DELEGATION_PROGRAM_ID

    def test_wrong_length_rejected(self) -> None:
        """A base58 string that decodes to the wrong length is rejected."""
        with pytest.raises(ValueError):
            Pubkey.from_base58("abc")

    def test_usable_as_dict_key(self) -> None:
        """Equal keys hash equally."""
        key = Pubkey(b"\x05" * 32)
        assert {key: 1}[Pubkey(b"\x05" * 32)] == 1
