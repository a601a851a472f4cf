"""OPAQUE server setup -- long-lived server state for password login.

A :class:`ServerSetup` bundles the OPRF seed and the server's static
X25519 keypair.  It is generated once per deployment from the OS
CSPRNG, persisted as a fixed-length blob, and loaded on every later
start.

Wire format (128 bytes)::

    oprf_seed (64) || private key (32) || public key (32)
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)

OPRF_SEED_LENGTH = 64
KEY_LENGTH = 32
SERIALIZED_LENGTH = OPRF_SEED_LENGTH + 2 * KEY_LENGTH

_RAW = serialization.Encoding.Raw


class ServerSetupDeserializeError(ValueError):
    """Raised when serialized server setup bytes are corrupt or incompatible."""


@dataclass(frozen=True)
class KeyPair:
    """Static server keypair (raw X25519 encoding)."""

    private: bytes
    public: bytes

    @classmethod
    def generate(cls) -> KeyPair:
        key = X25519PrivateKey.generate()
        return cls(
            private=key.private_bytes(
                _RAW,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            ),
            public=key.public_key().public_bytes(_RAW, serialization.PublicFormat.Raw),
        )

    def private_key(self) -> X25519PrivateKey:
        return X25519PrivateKey.from_private_bytes(self.private)

    def public_key(self) -> X25519PublicKey:
        return X25519PublicKey.from_public_bytes(self.public)

    def __repr__(self) -> str:
        return f"KeyPair(public={self.public.hex()})"


@dataclass(frozen=True)
class ServerSetup:
    """OPRF seed plus server keypair."""

    oprf_seed: bytes
    keypair: KeyPair

    @classmethod
    def generate(cls) -> ServerSetup:
        """Create fresh server state from the OS random source."""
        return cls(
            oprf_seed=secrets.token_bytes(OPRF_SEED_LENGTH),
            keypair=KeyPair.generate(),
        )

    def serialize(self) -> bytes:
        return self.oprf_seed + self.keypair.private + self.keypair.public

    @classmethod
    def deserialize(cls, data: bytes) -> ServerSetup:
        """Parse bytes produced by :meth:`serialize`.

        Raises
        ------
        ServerSetupDeserializeError
            If the length is wrong or the stored public key does not
            belong to the stored private key.

        """
        if len(data) != SERIALIZED_LENGTH:
            msg = (
                f"invalid server setup length: expected {SERIALIZED_LENGTH} "
                f"bytes, got {len(data)}"
            )
            raise ServerSetupDeserializeError(msg)

        seed = data[:OPRF_SEED_LENGTH]
        private = data[OPRF_SEED_LENGTH : OPRF_SEED_LENGTH + KEY_LENGTH]
        public = data[OPRF_SEED_LENGTH + KEY_LENGTH :]

        try:
            derived = (
                X25519PrivateKey.from_private_bytes(private)
                .public_key()
                .public_bytes(_RAW, serialization.PublicFormat.Raw)
            )
        except ValueError as exc:
            msg = f"invalid server private key: {exc}"
            raise ServerSetupDeserializeError(msg) from exc
        if derived != public:
            msg = "server public key does not match private key"
            raise ServerSetupDeserializeError(msg)

        return cls(oprf_seed=seed, keypair=KeyPair(private=private, public=public))

    def __repr__(self) -> str:
        return f"ServerSetup(public_key={self.keypair.public.hex()})"
