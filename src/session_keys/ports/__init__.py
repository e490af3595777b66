"""Contracts for the engine's external collaborators, with in-memory implementations.

- :mod:`~session_keys.ports.clock` — time and height source.
- :mod:`~session_keys.ports.ledger` — native value transfer.
- :mod:`~session_keys.ports.token_program` — approve / checked transfer / revoke.
"""
from __future__ import annotations

from session_keys.ports.clock import Clock, ClockReading, ManualClock, SystemClock
from session_keys.ports.ledger import (
    InMemoryLedger,
    InsufficientFundsError,
    LedgerError,
    UnauthorizedSpenderError,
    ValueTransfer,
)
from session_keys.ports.token_program import (
    InMemoryTokenProgram,
    InsufficientTokenBalanceError,
    MintInfo,
    TokenAccount,
    TokenAccountNotFoundError,
    TokenAuthorityError,
    TokenMintMismatchError,
    TokenProgram,
    TokenProgramError,
)

__all__ = [
    "Clock",
    "ClockReading",
    "InMemoryLedger",
    "InMemoryTokenProgram",
    "InsufficientFundsError",
    "InsufficientTokenBalanceError",
    "LedgerError",
    "ManualClock",
    "MintInfo",
    "SystemClock",
    "TokenAccount",
    "TokenAccountNotFoundError",
    "TokenAuthorityError",
    "TokenMintMismatchError",
    "TokenProgram",
    "TokenProgramError",
    "UnauthorizedSpenderError",
    "ValueTransfer",
]
