"""MintAllowlist — optional per-owner restriction on token types.

An empty allowlist places no restriction on the token-delegate path. A
non-empty one admits only the listed mints.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from session_keys.constants import MAX_ALLOWED_MINTS
from session_keys.errors import MintNotAllowedError, TooManyAllowedMintsError

logger = logging.getLogger(__name__)


class MintAllowlist:
    """Bounded allowlist of mint identities.

    Parameters
    ----------
    mints:
        Initial mints. Subject to the same capacity rule as :meth:`replace`.
    """

    def __init__(self, mints: Iterable[str] | None = None) -> None:
        self._mints: tuple[str, ...] = ()
        if mints is not None:
            self.replace(mints)

    def replace(self, mints: Iterable[str]) -> None:
        """Replace the allowlist wholesale.

        Raises
        ------
        TooManyAllowedMintsError
            If more than ``MAX_ALLOWED_MINTS`` mints are supplied. The
            current allowlist is left untouched.
        """
        supplied = list(mints)
        if len(supplied) > MAX_ALLOWED_MINTS:
            raise TooManyAllowedMintsError(len(supplied), MAX_ALLOWED_MINTS)
        self._mints = tuple(dict.fromkeys(supplied))

    @property
    def is_restricted(self) -> bool:
        """True when the allowlist is non-empty."""
        return bool(self._mints)

    def permits(self, mint: str) -> bool:
        """Return True if *mint* may be used."""
        return not self._mints or mint in self._mints

    def require(self, mint: str) -> None:
        """Raise :class:`MintNotAllowedError` unless :meth:`permits` *mint*."""
        if not self.permits(mint):
            logger.warning("Mint %s rejected by allowlist", mint)
            raise MintNotAllowedError(mint)

    def to_list(self) -> list[str]:
        return list(self._mints)

    def __iter__(self) -> Iterator[str]:
        return iter(self._mints)

    def __len__(self) -> int:
        return len(self._mints)

    def __contains__(self, mint: object) -> bool:
        return mint in self._mints

    def __repr__(self) -> str:
        return f"MintAllowlist({list(self._mints)!r})"


__all__ = ["MintAllowlist"]
