"""Identity encoding, address derivation and Ed25519 signing credentials.

Quick start
-----------
::

    from session_keys.identity import SessionKeypair, verify_signer

    keypair = SessionKeypair.generate()
    signature = keypair.sign(b"payload")
    signer = verify_signer(keypair.identity, signature, b"payload")
"""
from __future__ import annotations

from session_keys.identity.derivation import (
    DelegateCredentialBinder,
    DerivedAddress,
    InvalidSeedsError,
    create_program_address,
    derive_delegate_address,
    derive_owner_account_address,
    find_program_address,
)
from session_keys.identity.encoding import (
    decode_identity,
    encode_identity,
    is_valid_identity,
    random_identity,
)
from session_keys.identity.keypair import (
    SessionKeypair,
    SignatureVerificationError,
    verify_signer,
)

__all__ = [
    "DelegateCredentialBinder",
    "DerivedAddress",
    "InvalidSeedsError",
    "SessionKeypair",
    "create_program_address",
    "derive_delegate_address",
    "derive_owner_account_address",
    "find_program_address",
    "SignatureVerificationError",
    "decode_identity",
    "encode_identity",
    "is_valid_identity",
    "random_identity",
    "verify_signer",
]
