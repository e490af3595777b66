"""Base58 identity encoding.

Identities (owner authorities, session keys, mints, derived addresses) are
carried through the engine as base58 strings of their raw bytes, using the
Bitcoin alphabet. The engine itself only compares identity strings; raw
bytes are needed only for address derivation and signature checks.
"""
from __future__ import annotations

import secrets

from session_keys.constants import IDENTITY_SIZE

_BASE58_ALPHABET: bytes = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_ALPHABET_STR: str = _BASE58_ALPHABET.decode("ascii")


def encode_identity(data: bytes) -> str:
    """Encode raw identity bytes to a base58 string.

    Parameters
    ----------
    data:
        Raw bytes (normally 32).

    Returns
    -------
    str
        Base58 string (ASCII characters only).
    """
    n = int.from_bytes(data, "big")
    result: list[bytes] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder : remainder + 1])
    # Leading zero bytes survive as '1' characters
    for byte in data:
        if byte == 0:
            result.append(b"1")
        else:
            break
    return b"".join(reversed(result)).decode("ascii")


def decode_identity(encoded: str) -> bytes:
    """Decode a base58 identity string back to raw bytes.

    Parameters
    ----------
    encoded:
        A string as produced by :func:`encode_identity`.

    Returns
    -------
    bytes

    Raises
    ------
    ValueError
        If the string is empty or contains a character outside the alphabet.
    """
    if not encoded:
        raise ValueError("Identity string must not be empty.")
    n = 0
    for char in encoded:
        index = _ALPHABET_STR.find(char)
        if index < 0:
            raise ValueError(
                f"Invalid base58 character {char!r} in identity {encoded!r}"
            )
        n = n * 58 + index
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + body


def is_valid_identity(encoded: str) -> bool:
    """Return True if *encoded* decodes to exactly ``IDENTITY_SIZE`` bytes."""
    try:
        return len(decode_identity(encoded)) == IDENTITY_SIZE
    except ValueError:
        return False


def random_identity() -> str:
    """Return a fresh random identity, e.g. for a mint or a recipient in tests."""
    return encode_identity(secrets.token_bytes(IDENTITY_SIZE))


__all__ = ["decode_identity", "encode_identity", "is_valid_identity", "random_identity"]
