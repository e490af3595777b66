"""SessionKeypair — Ed25519 signing credentials for session keys and owners.

The engine never verifies signatures itself; it only compares identities the
host has already authenticated. This module is that host-side piece: it
generates keypairs whose public half becomes a ``key_identity``, signs
request payloads, and turns a (identity, signature, message) triple into a
verified signer identity.
"""
from __future__ import annotations

from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from session_keys.identity.encoding import decode_identity, encode_identity


class SignatureVerificationError(Exception):
    """Raised when a signature does not verify for the claimed identity."""

    def __init__(self, identity: str, reason: str = "signature mismatch") -> None:
        self.identity = identity
        super().__init__(f"Signature verification failed for {identity!r}: {reason}")


@dataclass(frozen=True)
class SessionKeypair:
    """An Ed25519 keypair whose base58 public key is its identity.

    Parameters
    ----------
    private_bytes:
        32-byte raw Ed25519 private key.
    public_bytes:
        32-byte raw Ed25519 public key.
    """

    private_bytes: bytes
    public_bytes: bytes

    @classmethod
    def generate(cls) -> "SessionKeypair":
        """Generate a new random keypair."""
        private_key = Ed25519PrivateKey.generate()
        return cls(
            private_bytes=private_key.private_bytes(
                Encoding.Raw, PrivateFormat.Raw, NoEncryption()
            ),
            public_bytes=private_key.public_key().public_bytes(
                Encoding.Raw, PublicFormat.Raw
            ),
        )

    @classmethod
    def from_private_bytes(cls, private_bytes: bytes) -> "SessionKeypair":
        """Rebuild a keypair from its 32-byte private key."""
        private_key = Ed25519PrivateKey.from_private_bytes(private_bytes)
        return cls(
            private_bytes=private_bytes,
            public_bytes=private_key.public_key().public_bytes(
                Encoding.Raw, PublicFormat.Raw
            ),
        )

    @property
    def identity(self) -> str:
        """Base58 encoding of the public key."""
        return encode_identity(self.public_bytes)

    def sign(self, message: bytes) -> bytes:
        """Return the 64-byte Ed25519 signature of *message*."""
        return Ed25519PrivateKey.from_private_bytes(self.private_bytes).sign(message)

    def __repr__(self) -> str:
        return f"SessionKeypair(identity={self.identity!r})"


def verify_signer(identity: str, signature: bytes, message: bytes) -> str:
    """Authenticate *identity* as the signer of *message*.

    Parameters
    ----------
    identity:
        Base58 public key the caller claims to hold.
    signature:
        Signature over *message*.
    message:
        The signed payload.

    Returns
    -------
    str
        *identity*, now safe to pass to the engine as a verified signer.

    Raises
    ------
    SignatureVerificationError
        If the identity is malformed or the signature does not verify.
    """
    try:
        public_key = Ed25519PublicKey.from_public_bytes(decode_identity(identity))
    except ValueError as exc:
        raise SignatureVerificationError(identity, str(exc)) from exc
    try:
        public_key.verify(signature, message)
    except InvalidSignature as exc:
        raise SignatureVerificationError(identity) from exc
    return identity


__all__ = ["SessionKeypair", "SignatureVerificationError", "verify_signer"]
