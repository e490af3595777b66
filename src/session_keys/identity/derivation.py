"""Deterministic address derivation and the delegate credential binder.

Derived addresses are SHA-256 digests of a seed list, the program id and a
fixed marker, searched over a one-byte "bump" (255 downward) until the
digest is *not* a valid Ed25519 point. An off-curve address has no private
key, so the only way to act as it is to present the seeds that produce it:
the token program accepts those seeds in place of a signature.

The owner account's own address is derived from ``(b"user_account",
authority)``; each per-mint delegate credential from ``(b"delegate",
owner_account_address, mint)``.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Sequence

from session_keys.constants import DEFAULT_PROGRAM_ID, DELEGATE_SEED, OWNER_ACCOUNT_SEED
from session_keys.errors import InsufficientPermissionsError
from session_keys.identity.encoding import decode_identity, encode_identity

logger = logging.getLogger(__name__)

MAX_SEED_LENGTH: int = 32
MAX_SEEDS: int = 16
_PDA_MARKER: bytes = b"ProgramDerivedAddress"

# Ed25519 curve parameters
_P: int = 2**255 - 19
_D: int = (-121665 * pow(121666, _P - 2, _P)) % _P


class InvalidSeedsError(ValueError):
    """Raised when seeds are malformed or derive an on-curve point."""


@dataclass(frozen=True)
class DerivedAddress:
    """A derived identity plus the proof (seeds) that produces it.

    Parameters
    ----------
    address:
        Base58 derived identity.
    bump:
        The bump byte that made the digest fall off the curve.
    signer_seeds:
        Full seed list including the bump, accepted by collaborators in lieu
        of a signature.
    """

    address: str
    bump: int
    signer_seeds: tuple[bytes, ...]


def _is_on_curve(point: bytes) -> bool:
    """Return True if *point* decompresses to a valid Ed25519 point."""
    y = int.from_bytes(point, "little")
    sign = y >> 255
    y &= (1 << 255) - 1
    if y >= _P:
        return False
    y2 = y * y % _P
    x2 = (y2 - 1) * pow(_D * y2 + 1, _P - 2, _P) % _P
    if x2 == 0:
        return sign == 0
    return pow(x2, (_P - 1) // 2, _P) == 1


def create_program_address(seeds: Sequence[bytes], program_id: str) -> str:
    """Derive an address from an exact seed list (bump included).

    Raises
    ------
    InvalidSeedsError
        If a seed is too long, there are too many seeds, or the digest lies
        on the curve.
    """
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeedsError(f"At most {MAX_SEEDS} seeds are allowed.")
    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidSeedsError(
                f"Seed of length {len(seed)} exceeds {MAX_SEED_LENGTH} bytes."
            )
        hasher.update(seed)
    hasher.update(decode_identity(program_id))
    hasher.update(_PDA_MARKER)
    digest = hasher.digest()
    if _is_on_curve(digest):
        raise InvalidSeedsError("Derived address lies on the Ed25519 curve.")
    return encode_identity(digest)


def find_program_address(seeds: Sequence[bytes], program_id: str) -> DerivedAddress:
    """Search bumps 255..0 and return the first off-curve derivation."""
    for bump in range(255, -1, -1):
        candidate = (*seeds, bytes([bump]))
        try:
            address = create_program_address(candidate, program_id)
        except InvalidSeedsError:
            continue
        return DerivedAddress(address=address, bump=bump, signer_seeds=tuple(candidate))
    raise InvalidSeedsError("No bump produced an off-curve address.")


def derive_owner_account_address(
    authority: str, program_id: str = DEFAULT_PROGRAM_ID
) -> DerivedAddress:
    """Derive the owner account address for *authority*."""
    return find_program_address([OWNER_ACCOUNT_SEED, decode_identity(authority)], program_id)


def derive_delegate_address(
    owner_account_address: str,
    mint: str,
    program_id: str = DEFAULT_PROGRAM_ID,
) -> DerivedAddress:
    """Derive the delegate credential for ``(owner_account_address, mint)``."""
    return find_program_address(
        [DELEGATE_SEED, decode_identity(owner_account_address), decode_identity(mint)],
        program_id,
    )


class DelegateCredentialBinder:
    """Checks caller-supplied delegate identities against the derivation.

    The supplied value is never trusted: the binder recomputes the expected
    identity and refuses any mismatch before a token operation proceeds.

    Parameters
    ----------
    program_id:
        Domain-separation identity mixed into every derivation.
    """

    def __init__(self, program_id: str = DEFAULT_PROGRAM_ID) -> None:
        self._program_id = program_id

    @property
    def program_id(self) -> str:
        return self._program_id

    def expected(self, owner_account_address: str, mint: str) -> DerivedAddress:
        """Return the delegate credential for this owner account and mint."""
        return derive_delegate_address(owner_account_address, mint, self._program_id)

    def bind(self, owner_account_address: str, mint: str, supplied: str) -> DerivedAddress:
        """Return the derived credential if it equals *supplied*.

        Raises
        ------
        InsufficientPermissionsError
            If *supplied* differs from the derivation, or the mint is not a
            decodable identity.
        """
        try:
            derived = self.expected(owner_account_address, mint)
        except ValueError as exc:
            raise InsufficientPermissionsError(f"cannot derive delegate: {exc}") from exc
        if derived.address != supplied:
            logger.warning(
                "Delegate mismatch for owner account %s mint %s: supplied %s",
                owner_account_address,
                mint,
                supplied,
            )
            raise InsufficientPermissionsError(
                "delegate identity does not match the derived delegate credential"
            )
        return derived


__all__ = [
    "DelegateCredentialBinder",
    "DerivedAddress",
    "InvalidSeedsError",
    "create_program_address",
    "derive_delegate_address",
    "derive_owner_account_address",
    "find_program_address",
]
