"""
Legacy ledger transactions.

Wire Format
-----------
::

    [compact-u16 n][signature_1 .. signature_n][message]

    message:
    [num_required_signatures u8][num_readonly_signed u8][num_readonly_unsigned u8]
    [compact-u16 k][account_key_1 .. account_key_k]
    [recent_blockhash 32]
    [compact-u16 m][instruction_1 .. instruction_m]

    instruction:
    [program_id_index u8][compact-u16 a][account_index_1 .. a][compact-u16 d][data]

Account keys are ordered writable signers, read-only signers, writable
non-signers, read-only non-signers, with the fee payer always first. The
first n keys sign, in order.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field

from city_sync.keys import Keypair, Pubkey, b58encode, verify_signature
from city_sync.types import Bytes64

SIGNATURE_LENGTH = 64
"""Length of one Ed25519 signature."""

_EMPTY_SIGNATURE = bytes(SIGNATURE_LENGTH)


def encode_compact_u16(value: int) -> bytes:
    """
    Encode a length as a compact-u16 (7 bits per byte, high bit continues).

    Raises:
        ValueError: If the value does not fit in 16 bits.
    """
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"compact-u16 out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_compact_u16(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a compact-u16.

    Returns:
        (value, bytes consumed).
    """
    value = 0
    for i in range(3):
        if offset + i >= len(data):
            raise ValueError("Truncated compact-u16")
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise ValueError("compact-u16 longer than 3 bytes")


@dataclass(frozen=True, slots=True)
class AccountMeta:
    """An account referenced by an instruction, with its access flags."""

    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True, slots=True)
class Instruction:
    """A single program invocation."""

    program_id: Pubkey
    accounts: tuple[AccountMeta, ...]
    data: bytes


@dataclass(frozen=True, slots=True)
class Message:
    """A compiled message: the bytes every signer signs."""

    num_required_signatures: int
    num_readonly_signed: int
    num_readonly_unsigned: int
    account_keys: tuple[Pubkey, ...]
    recent_blockhash: str
    instructions: tuple[tuple[int, tuple[int, ...], bytes], ...]

    @classmethod
    def compile(
        cls,
        fee_payer: Pubkey,
        recent_blockhash: str,
        instructions: list[Instruction],
    ) -> Message:
        """Collect, deduplicate and order accounts, then index instructions."""
        # Flags merge across instructions: a key that is writable anywhere is writable.
        flags: dict[Pubkey, list[bool]] = {fee_payer: [True, True]}
        for ix in instructions:
            for meta in ix.accounts:
                merged = flags.setdefault(meta.pubkey, [False, False])
                merged[0] = merged[0] or meta.is_signer
                merged[1] = merged[1] or meta.is_writable
            flags.setdefault(ix.program_id, [False, False])

        def bucket(key: Pubkey) -> int:
            is_signer, is_writable = flags[key]
            return (0 if is_signer else 2) + (0 if is_writable else 1)

        # Sort is stable, so keys keep first-appearance order within a bucket.
        ordered = sorted(flags, key=lambda key: (key != fee_payer, bucket(key)))
        index = {key: i for i, key in enumerate(ordered)}

        compiled = tuple(
            (
                index[ix.program_id],
                tuple(index[meta.pubkey] for meta in ix.accounts),
                ix.data,
            )
            for ix in instructions
        )

        buckets = [bucket(key) for key in ordered]
        return cls(
            num_required_signatures=sum(1 for b in buckets if b < 2),
            num_readonly_signed=buckets.count(1),
            num_readonly_unsigned=buckets.count(3),
            account_keys=tuple(ordered),
            recent_blockhash=recent_blockhash,
            instructions=compiled,
        )

    @property
    def signer_keys(self) -> tuple[Pubkey, ...]:
        """Keys whose signatures the transaction requires, in order."""
        return self.account_keys[: self.num_required_signatures]

    def serialize(self) -> bytes:
        """Encode the message in wire format."""
        out = bytearray(
            [self.num_required_signatures, self.num_readonly_signed, self.num_readonly_unsigned]
        )
        out += encode_compact_u16(len(self.account_keys))
        for key in self.account_keys:
            out += bytes(key)
        out += bytes(Pubkey.from_base58(self.recent_blockhash))
        out += encode_compact_u16(len(self.instructions))
        for program_index, account_indices, data in self.instructions:
            out.append(program_index)
            out += encode_compact_u16(len(account_indices))
            out += bytes(account_indices)
            out += encode_compact_u16(len(data))
            out += data
        return bytes(out)


@dataclass(slots=True)
class Transaction:
    """
    An unsigned or partially signed transaction.

    The fee payer and recent blockhash must be stamped before signing, and
    the blockhash must come from the ledger the transaction is sent to.
    """

    instructions: list[Instruction] = field(default_factory=list)
    """Instructions, executed in order."""

    fee_payer: Pubkey | None = None
    """The account charged for the transaction. Always the first signer."""

    recent_blockhash: str | None = None
    """Validity anchor from the target ledger, base58."""

    signatures: dict[Pubkey, Bytes64] = field(default_factory=dict)
    """Signatures collected so far, by signer key."""

    def add(self, *instructions: Instruction) -> Transaction:
        """Append instructions. Returns self for chaining."""
        self.instructions.extend(instructions)
        return self

    def compile_message(self) -> Message:
        """
        Compile the message.

        Raises:
            ValueError: If the fee payer or blockhash has not been stamped.
        """
        if self.fee_payer is None:
            raise ValueError("Transaction fee payer required")
        if self.recent_blockhash is None:
            raise ValueError("Transaction recent blockhash required")
        return Message.compile(self.fee_payer, self.recent_blockhash, self.instructions)

    def message_bytes(self) -> bytes:
        """The serialized message, which is what gets signed."""
        return self.compile_message().serialize()

    def sign(self, *keypairs: Keypair) -> Transaction:
        """
        Sign with local keypairs. Existing signatures from other signers are kept.

        Raises:
            ValueError: If a keypair is not a required signer.
        """
        message = self.compile_message()
        payload = message.serialize()
        for keypair in keypairs:
            if keypair.pubkey not in message.signer_keys:
                raise ValueError(f"{keypair.pubkey} is not a required signer")
            self.signatures[keypair.pubkey] = Bytes64(keypair.sign(payload))
        return self

    def add_signature(self, pubkey: Pubkey, signature: bytes) -> None:
        """
        Attach a signature produced elsewhere.

        Raises:
            ValueError: If the signature does not verify against the message.
        """
        if not verify_signature(pubkey, self.message_bytes(), signature):
            raise ValueError(f"Invalid signature for {pubkey}")
        self.signatures[pubkey] = Bytes64(signature)

    @property
    def signature(self) -> str | None:
        """The transaction id: the fee payer's signature, base58."""
        if self.fee_payer is None or self.fee_payer not in self.signatures:
            return None
        return b58encode(bytes(self.signatures[self.fee_payer]))

    def missing_signers(self) -> list[Pubkey]:
        """Required signers that have not signed yet."""
        return [key for key in self.compile_message().signer_keys if key not in self.signatures]

    def serialize(self) -> bytes:
        """
        Encode the signed transaction in wire format.

        Raises:
            ValueError: If any required signature is missing.
        """
        message = self.compile_message()
        missing = [key for key in message.signer_keys if key not in self.signatures]
        if missing:
            raise ValueError(f"Missing signatures for: {', '.join(map(str, missing))}")

        out = bytearray(encode_compact_u16(len(message.signer_keys)))
        for key in message.signer_keys:
            out += bytes(self.signatures.get(key, _EMPTY_SIGNATURE))
        out += message.serialize()
        return bytes(out)

    def to_base64(self) -> str:
        """Wire format as base64, the encoding the RPC expects."""
        return base64.b64encode(self.serialize()).decode("ascii")
