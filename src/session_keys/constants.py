"""Published limits and sizing constants.

Storage backends size owner accounts from these values; the engine treats
``MAX_SESSION_KEYS`` and ``MAX_ALLOWED_MINTS`` as hard preconditions.
"""
from __future__ import annotations

MAX_SESSION_KEYS: int = 10
MAX_ALLOWED_MINTS: int = 8

#: Size of the opaque label buffer attached to every session key.
LABEL_SIZE: int = 32

#: Size of a raw identity (public key or derived address) in bytes.
IDENTITY_SIZE: int = 32

# identity + created_at + expires_at + expiration_type + permissions + revoked flag + label
SESSION_KEY_SIZE: int = IDENTITY_SIZE + 8 + 8 + 1 + 32 + 1 + LABEL_SIZE

OWNER_ACCOUNT_SEED: bytes = b"user_account"
DELEGATE_SEED: bytes = b"delegate"

DEFAULT_PROGRAM_ID: str = "SessionKeys11111111111111111111111111111111"


def owner_account_space(
    max_keys: int = MAX_SESSION_KEYS,
    max_mints: int = MAX_ALLOWED_MINTS,
) -> int:
    """Return the number of bytes a storage layer should reserve per owner account.

    Parameters
    ----------
    max_keys:
        Session key capacity to size for.
    max_mints:
        Allowlist capacity to size for.

    Returns
    -------
    int
    """
    return (
        8  # discriminator
        + IDENTITY_SIZE  # authority
        + 4 + max_keys * SESSION_KEY_SIZE
        + 4 + max_mints * IDENTITY_SIZE
        + 1  # bump
    )


__all__ = [
    "DEFAULT_PROGRAM_ID",
    "DELEGATE_SEED",
    "IDENTITY_SIZE",
    "LABEL_SIZE",
    "MAX_ALLOWED_MINTS",
    "MAX_SESSION_KEYS",
    "OWNER_ACCOUNT_SEED",
    "SESSION_KEY_SIZE",
    "owner_account_space",
]
