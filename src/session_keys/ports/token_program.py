"""Token-transfer collaborator — approve, checked transfer, revoke.

The engine relies on the token program for balances, ownership and
delegate allowances; it only reads an account's recorded owner and mint to
decide whether an approval is authorized. :class:`InMemoryTokenProgram`
implements the same bookkeeping in memory: a delegate may move at most its
approved allowance, and a derived (off-curve) authority proves itself by
presenting the seeds that derive it.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from session_keys.constants import DEFAULT_PROGRAM_ID
from session_keys.identity.derivation import InvalidSeedsError, create_program_address

logger = logging.getLogger(__name__)


class TokenProgramError(Exception):
    """Base class for token-program failures."""


class TokenAccountNotFoundError(TokenProgramError, KeyError):
    """Raised when a token account or mint is unknown."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Token account or mint {address!r} not found.")

    def __str__(self) -> str:
        return str(self.args[0])


class TokenAuthorityError(TokenProgramError):
    """Raised when the acting authority may not operate on the account."""


class TokenMintMismatchError(TokenProgramError):
    """Raised when accounts, mint or decimals disagree."""


class InsufficientTokenBalanceError(TokenProgramError):
    """Raised when the source balance or delegate allowance is too small."""


@dataclass
class TokenAccount:
    """Token holding record.

    Parameters
    ----------
    address:
        Identity of the token account.
    owner:
        Identity that owns the holding.
    mint:
        Token type held.
    amount:
        Balance in base units.
    delegate:
        Identity approved to spend on the owner's behalf, if any.
    delegated_amount:
        Remaining allowance of *delegate*.
    """

    address: str
    owner: str
    mint: str
    amount: int = 0
    delegate: str | None = None
    delegated_amount: int = 0


@dataclass(frozen=True)
class MintInfo:
    """Token type metadata."""

    address: str
    decimals: int


class TokenProgram(ABC):
    """Contract for the external token-transfer mechanism."""

    @abstractmethod
    def get_account(self, address: str) -> TokenAccount:
        """Return the token account at *address*."""

    @abstractmethod
    def get_mint(self, mint: str) -> MintInfo:
        """Return metadata for *mint*."""

    @abstractmethod
    def approve(self, token_account: str, delegate: str, authority: str, amount: int) -> None:
        """Let *delegate* spend up to *amount* from *token_account*."""

    @abstractmethod
    def transfer_checked(
        self,
        source: str,
        mint: str,
        destination: str,
        authority: str,
        amount: int,
        decimals: int,
        signer_seeds: Sequence[bytes] | None = None,
    ) -> None:
        """Move *amount* of *mint* from *source* to *destination*."""

    @abstractmethod
    def revoke(self, token_account: str, authority: str) -> None:
        """Clear any delegate on *token_account*."""


class InMemoryTokenProgram(TokenProgram):
    """Thread-safe in-memory token program.

    Parameters
    ----------
    program_id:
        The program whose derived addresses may sign via seeds.
    """

    def __init__(self, program_id: str = DEFAULT_PROGRAM_ID) -> None:
        self._program_id = program_id
        self._accounts: dict[str, TokenAccount] = {}
        self._mints: dict[str, MintInfo] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def create_mint(self, mint: str, decimals: int = 6) -> MintInfo:
        info = MintInfo(address=mint, decimals=decimals)
        with self._lock:
            self._mints[mint] = info
        return info

    def create_account(self, address: str, owner: str, mint: str, amount: int = 0) -> TokenAccount:
        with self._lock:
            if mint not in self._mints:
                raise TokenAccountNotFoundError(mint)
            account = TokenAccount(address=address, owner=owner, mint=mint, amount=amount)
            self._accounts[address] = account
            return account

    # ------------------------------------------------------------------
    # TokenProgram
    # ------------------------------------------------------------------

    def get_account(self, address: str) -> TokenAccount:
        with self._lock:
            return self._require_account(address)

    def get_mint(self, mint: str) -> MintInfo:
        with self._lock:
            if mint not in self._mints:
                raise TokenAccountNotFoundError(mint)
            return self._mints[mint]

    def approve(self, token_account: str, delegate: str, authority: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("approve amount must be non-negative.")
        with self._lock:
            account = self._require_account(token_account)
            if account.owner != authority:
                raise TokenAuthorityError(
                    f"{authority!r} does not own token account {token_account!r}."
                )
            account.delegate = delegate
            account.delegated_amount = amount
        logger.debug("Approved %s for %d on %s", delegate, amount, token_account)

    def transfer_checked(
        self,
        source: str,
        mint: str,
        destination: str,
        authority: str,
        amount: int,
        decimals: int,
        signer_seeds: Sequence[bytes] | None = None,
    ) -> None:
        with self._lock:
            src = self._require_account(source)
            dst = self._require_account(destination)
            info = self._mints.get(mint)
            if info is None:
                raise TokenAccountNotFoundError(mint)
            if src.mint != mint or dst.mint != mint:
                raise TokenMintMismatchError("Source, destination and mint do not agree.")
            if info.decimals != decimals:
                raise TokenMintMismatchError(
                    f"Decimals mismatch: mint has {info.decimals}, got {decimals}."
                )
            if signer_seeds is not None and not self._seeds_sign_for(signer_seeds, authority):
                raise TokenAuthorityError(f"Signer seeds do not derive {authority!r}.")

            acting_as_delegate = authority != src.owner
            if acting_as_delegate:
                if signer_seeds is None or src.delegate != authority:
                    raise TokenAuthorityError(
                        f"{authority!r} is neither owner nor delegate of {source!r}."
                    )
                if src.delegated_amount < amount:
                    raise InsufficientTokenBalanceError(
                        f"Delegate allowance {src.delegated_amount} is below {amount}."
                    )
            if src.amount < amount:
                raise InsufficientTokenBalanceError(
                    f"Balance {src.amount} of {source!r} is below {amount}."
                )

            src.amount -= amount
            dst.amount += amount
            if acting_as_delegate:
                src.delegated_amount -= amount
                if src.delegated_amount == 0:
                    src.delegate = None
        logger.debug("Transferred %d of %s from %s to %s", amount, mint, source, destination)

    def revoke(self, token_account: str, authority: str) -> None:
        with self._lock:
            account = self._require_account(token_account)
            if account.owner != authority:
                raise TokenAuthorityError(
                    f"{authority!r} does not own token account {token_account!r}."
                )
            account.delegate = None
            account.delegated_amount = 0

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_account(self, address: str) -> TokenAccount:
        account = self._accounts.get(address)
        if account is None:
            raise TokenAccountNotFoundError(address)
        return account

    def _seeds_sign_for(self, seeds: Sequence[bytes], authority: str) -> bool:
        try:
            return create_program_address(seeds, self._program_id) == authority
        except InvalidSeedsError:
            return False


__all__ = [
    "InMemoryTokenProgram",
    "InsufficientTokenBalanceError",
    "MintInfo",
    "TokenAccount",
    "TokenAccountNotFoundError",
    "TokenAuthorityError",
    "TokenMintMismatchError",
    "TokenProgram",
    "TokenProgramError",
]
