"""
Ed25519 keypairs for wallet and session signers.

Ledger transactions are signed with Ed25519 over the serialized message.
The wallet file format is a JSON array of 64 integers: the 32-byte seed
followed by the 32-byte public key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .pubkey import Pubkey

__all__ = [
    "Keypair",
    "verify_signature",
]


@dataclass(frozen=True, slots=True)
class Keypair:
    """
    Ed25519 keypair.

    Attributes:
        private_key: The Ed25519 private key.
    """

    private_key: ed25519.Ed25519PrivateKey

    @classmethod
    def generate(cls) -> Keypair:
        """Generate a new random keypair."""
        return cls(private_key=ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Keypair:
        """
        Load a keypair from its 32-byte seed.

        Raises:
            ValueError: If the seed is not 32 bytes.
        """
        if len(seed) != 32:
            raise ValueError(f"Expected 32 bytes, got {len(seed)}")
        return cls(private_key=ed25519.Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_secret_bytes(cls, secret: bytes) -> Keypair:
        """
        Load a keypair from the 64-byte `seed || public key` form.

        Raises:
            ValueError: If the length is wrong or the public half does not match.
        """
        if len(secret) != 64:
            raise ValueError(f"Expected 64 bytes, got {len(secret)}")
        keypair = cls.from_seed(secret[:32])
        if bytes(keypair.pubkey) != secret[32:]:
            raise ValueError("Public key does not match the secret seed")
        return keypair

    @classmethod
    def from_json_file(cls, path: Path | str) -> Keypair:
        """Load a keypair from a wallet JSON file."""
        values = json.loads(Path(path).read_text())
        return cls.from_secret_bytes(bytes(values))

    def seed_bytes(self) -> bytes:
        """Return the raw 32-byte seed."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def secret_bytes(self) -> bytes:
        """Return the 64-byte `seed || public key` form."""
        return self.seed_bytes() + bytes(self.pubkey)

    @property
    def pubkey(self) -> Pubkey:
        """The public key as a ledger address."""
        raw = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return Pubkey(raw)

    def sign(self, message: bytes) -> bytes:
        """Sign a message. Returns the 64-byte signature."""
        return self.private_key.sign(message)


def verify_signature(pubkey: Pubkey, message: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    Returns:
        True if the signature is valid, False otherwise.
    """
    public_key = ed25519.Ed25519PublicKey.from_public_bytes(bytes(pubkey))
    try:
        public_key.verify(signature, message)
    except InvalidSignature:
        return False
    return True
