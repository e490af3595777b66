"""Value-transfer collaborator — moves native units between identities.

The engine calls :meth:`ValueTransfer.transfer` only after every session-key
check has passed. Failures raised here (insufficient balance, missing spender
authorization) propagate to the engine's caller unchanged.

Every transfer names a ``spender``: the identity acting on the source's
behalf. For session-key transfers that is the owner account's derived
address, and the ledger refuses to debit a source that has not authorized
that spender. This makes the owner's consent to each direct transfer leg an
explicit, checkable fact rather than an assumption about upstream signers.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for value-transfer failures."""


class InsufficientFundsError(LedgerError):
    """Raised when the source balance cannot cover the transfer."""

    def __init__(self, source: str, balance: int, amount: int) -> None:
        self.source = source
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds in {source!r}: balance {balance}, requested {amount}."
        )


class UnauthorizedSpenderError(LedgerError):
    """Raised when the spender has not been authorized by the source."""

    def __init__(self, source: str, spender: str) -> None:
        self.source = source
        self.spender = spender
        super().__init__(f"{spender!r} is not authorized to spend from {source!r}.")


class ValueTransfer(ABC):
    """Contract for the native value-transfer mechanism."""

    @abstractmethod
    def transfer(self, source: str, destination: str, amount: int, spender: str) -> None:
        """Move *amount* from *source* to *destination* on behalf of *spender*.

        Raises
        ------
        LedgerError
            On any failure. No balance changes when raised.
        """


class InMemoryLedger(ValueTransfer):
    """Thread-safe in-memory balances with explicit spender authorizations."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self._authorized: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def credit(self, identity: str, amount: int) -> None:
        """Add *amount* to *identity*'s balance."""
        if amount < 0:
            raise ValueError("credit amount must be non-negative.")
        with self._lock:
            self._balances[identity] = self._balances.get(identity, 0) + amount

    def authorize(self, source: str, spender: str) -> None:
        """Record that *source* lets *spender* move its funds."""
        with self._lock:
            self._authorized.add((source, spender))

    def deauthorize(self, source: str, spender: str) -> None:
        """Withdraw a previous :meth:`authorize`. No-op if absent."""
        with self._lock:
            self._authorized.discard((source, spender))

    # ------------------------------------------------------------------
    # ValueTransfer
    # ------------------------------------------------------------------

    def transfer(self, source: str, destination: str, amount: int, spender: str) -> None:
        if amount < 0:
            raise ValueError("transfer amount must be non-negative.")
        with self._lock:
            if spender != source and (source, spender) not in self._authorized:
                raise UnauthorizedSpenderError(source, spender)
            balance = self._balances.get(source, 0)
            if balance < amount:
                raise InsufficientFundsError(source, balance, amount)
            self._balances[source] = balance - amount
            self._balances[destination] = self._balances.get(destination, 0) + amount
        logger.debug("Ledger moved %d from %s to %s", amount, source, destination)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def balance(self, identity: str) -> int:
        """Return the balance of *identity* (0 if unknown)."""
        with self._lock:
            return self._balances.get(identity, 0)


__all__ = [
    "InMemoryLedger",
    "InsufficientFundsError",
    "LedgerError",
    "UnauthorizedSpenderError",
    "ValueTransfer",
]
