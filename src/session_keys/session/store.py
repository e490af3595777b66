"""Owner account storage — abstract interface plus memory and filesystem backends.

Every mutating operation runs inside :meth:`AccountStore.transaction`, which
holds a per-authority lock for the duration of the call. That lock is the
single-writer-per-account guarantee the engine relies on; operations on
different authorities never contend. The account is persisted only when the
block exits without an exception.
"""
from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from session_keys.errors import OwnerAccountExistsError, OwnerAccountNotFoundError
from session_keys.session.registry import OwnerAccount


class AccountStore(ABC):
    """Abstract base class for owner account storage backends."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Backend interface
    # ------------------------------------------------------------------

    @abstractmethod
    def load(self, authority: str) -> OwnerAccount:
        """Return the account for *authority*.

        Raises
        ------
        OwnerAccountNotFoundError
            If no account exists for *authority*.
        """

    @abstractmethod
    def save(self, account: OwnerAccount) -> None:
        """Persist *account*, replacing any previous state."""

    @abstractmethod
    def exists(self, authority: str) -> bool:
        """Return True if an account exists for *authority*."""

    @abstractmethod
    def list_authorities(self) -> list[str]:
        """Return all authorities with stored accounts, sorted."""

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def create(self, account: OwnerAccount) -> OwnerAccount:
        """Store a new account.

        Raises
        ------
        OwnerAccountExistsError
            If *account.authority* already has an account.
        """
        with self._lock_for(account.authority):
            if self.exists(account.authority):
                raise OwnerAccountExistsError(account.authority)
            self.save(account)
        return account

    @contextmanager
    def transaction(self, authority: str, write: bool = True) -> Iterator[OwnerAccount]:
        """Serialize access to one authority's account.

        Parameters
        ----------
        authority:
            The account to open.
        write:
            Persist the account when the block completes successfully.
        """
        with self._lock_for(authority):
            account = self.load(authority)
            yield account
            if write:
                self.save(account)

    def _lock_for(self, authority: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(authority)
            if lock is None:
                lock = threading.Lock()
                self._locks[authority] = lock
            return lock


class InMemoryAccountStore(AccountStore):
    """Accounts held in a process-local dict.

    Accounts are copied on the way in and out, so callers never hold the
    stored objects and a transaction that raises leaves nothing behind.
    """

    def __init__(self) -> None:
        super().__init__()
        self._accounts: dict[str, OwnerAccount] = {}

    def load(self, authority: str) -> OwnerAccount:
        account = self._accounts.get(authority)
        if account is None:
            raise OwnerAccountNotFoundError(authority)
        return OwnerAccount.from_dict(account.to_dict())

    def save(self, account: OwnerAccount) -> None:
        self._accounts[account.authority] = OwnerAccount.from_dict(account.to_dict())

    def exists(self, authority: str) -> bool:
        return authority in self._accounts

    def list_authorities(self) -> list[str]:
        return sorted(self._accounts)


class FilesystemAccountStore(AccountStore):
    """One JSON document per authority under *base_dir*.

    Parameters
    ----------
    base_dir:
        Root directory for account files. Created if missing.
    """

    def __init__(self, base_dir: Path) -> None:
        super().__init__()
        self._base_dir = base_dir
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def load(self, authority: str) -> OwnerAccount:
        path = self._account_path(authority)
        if not path.exists():
            raise OwnerAccountNotFoundError(authority)
        return OwnerAccount.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def save(self, account: OwnerAccount) -> None:
        path = self._account_path(account.authority)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(account.to_dict(), indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def exists(self, authority: str) -> bool:
        return self._account_path(authority).exists()

    def list_authorities(self) -> list[str]:
        return sorted(p.stem for p in self._base_dir.glob("*.json"))

    def _account_path(self, authority: str) -> Path:
        safe_name = authority.replace("/", "_").replace("\\", "_")
        return self._base_dir / f"{safe_name}.json"


__all__ = ["AccountStore", "FilesystemAccountStore", "InMemoryAccountStore"]
