"""SessionKeyManager — issue, update, revoke and prune session keys.

Every operation opens the owner's account through the store's transaction,
runs all of its checks, and only then mutates. A failed check raises a
:class:`~session_keys.errors.SessionKeyError` subclass with the account left
exactly as it was. Notifications are emitted after the mutation is stored.

Example
-------
::

    store = InMemoryAccountStore()
    manager = SessionKeyManager(store=store, clock=SystemClock())
    manager.initialize_owner_account(owner.identity)
    manager.create(
        authority=owner.identity,
        key_identity=agent_key.identity,
        expires_at=expiry_from_duration(manager.now(), 3600),
        permissions=permissions_from_preset("limited_transfer"),
    )
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from session_keys.audit.events import (
    AllSessionKeysRevoked,
    NotificationSink,
    SessionKeyCreated,
    SessionKeyRevoked,
    SessionKeyUpdated,
    notify,
)
from session_keys.constants import DEFAULT_PROGRAM_ID
from session_keys.errors import SessionKeyAlreadyRevokedError, SessionKeyRevokedError
from session_keys.ports.clock import Clock, ClockReading
from session_keys.session.record import (
    ExpirationType,
    SessionKeyRecord,
    SessionPermissions,
    make_label,
)
from session_keys.session.registry import OwnerAccount
from session_keys.session.store import AccountStore
from session_keys.session.validity import (
    is_expired,
    is_valid,
    remaining,
    require_future_expiry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionKeySpec:
    """Parameters for one key in :meth:`SessionKeyManager.create_batch`."""

    key_identity: str
    expires_at: int
    expiration_type: ExpirationType = ExpirationType.TIME
    permissions: SessionPermissions = field(default_factory=SessionPermissions)
    label: str = ""


@dataclass(frozen=True)
class SessionKeyStatus:
    """A record together with its standing at one clock reading.

    Parameters
    ----------
    record:
        The session key record.
    is_expired:
        Threshold reached at the reading.
    is_revoked:
        Revocation state.
    is_active:
        Neither revoked nor expired.
    remaining:
        Seconds or height units until expiry, floored at zero.
    """

    record: SessionKeyRecord
    is_expired: bool
    is_revoked: bool
    is_active: bool
    remaining: int

    @property
    def key_identity(self) -> str:
        return self.record.key_identity

    def to_dict(self) -> dict[str, object]:
        return {
            **self.record.to_dict(),
            "is_expired": self.is_expired,
            "is_active": self.is_active,
            "remaining": self.remaining,
        }


class SessionKeyManager:
    """Lifecycle operations over owner accounts held in an :class:`AccountStore`.

    Parameters
    ----------
    store:
        Where owner accounts live. Its transactions serialize writers per owner.
    clock:
        Time and height source; read once per operation.
    sink:
        Optional notification sink.
    program_id:
        Domain-separation identity for owner account address derivation.
    """

    def __init__(
        self,
        store: AccountStore,
        clock: Clock,
        sink: NotificationSink | None = None,
        program_id: str = DEFAULT_PROGRAM_ID,
    ) -> None:
        self._store = store
        self._clock = clock
        self._sink = sink
        self._program_id = program_id

    def now(self) -> ClockReading:
        """Return the current clock reading."""
        return self._clock.now()

    # ------------------------------------------------------------------
    # Owner accounts
    # ------------------------------------------------------------------

    def initialize_owner_account(self, authority: str) -> OwnerAccount:
        """Create an empty owner account for *authority*.

        Raises
        ------
        OwnerAccountExistsError
            If *authority* already has an account.
        """
        account = self._store.create(OwnerAccount.initialize(authority, self._program_id))
        logger.info("Owner account %s initialized for authority %s", account.address, authority)
        return account

    def get_account(self, authority: str) -> OwnerAccount:
        """Return the owner account for *authority*."""
        with self._store.transaction(authority, write=False) as account:
            return account

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        authority: str,
        key_identity: str,
        expires_at: int,
        expiration_type: ExpirationType = ExpirationType.TIME,
        permissions: SessionPermissions | None = None,
        label: str = "",
    ) -> SessionKeyRecord:
        """Issue a new session key.

        Raises
        ------
        InvalidExpiryError
            If *expires_at* is not strictly after the current reference for
            *expiration_type*.
        TooManySessionKeysError
            If the registry is full.
        SessionKeyAlreadyExistsError
            If *key_identity* is already present (revoked and expired
            records included).
        """
        clock = self._clock.now()
        expiration_type = ExpirationType(expiration_type)
        permissions = permissions or SessionPermissions()
        label_bytes = make_label(label)

        with self._store.transaction(authority) as account:
            require_future_expiry(expires_at, expiration_type, clock)
            record = SessionKeyRecord(
                key_identity=key_identity,
                created_at=clock.unix_timestamp,
                expires_at=expires_at,
                expiration_type=expiration_type,
                permissions=permissions,
                label=label_bytes,
            )
            account.session_keys.add(record)

        logger.info(
            "Session key %s created for %s (%s expiry %d)",
            key_identity,
            authority,
            expiration_type.value,
            expires_at,
        )
        notify(
            self._sink,
            SessionKeyCreated(
                authority=authority,
                key_identity=key_identity,
                expires_at=expires_at,
                expiration_type=expiration_type.value,
                permissions=permissions.to_dict(),
            ),
        )
        return record

    def create_batch(
        self, authority: str, specs: Iterable[SessionKeySpec]
    ) -> list[SessionKeyRecord]:
        """Create several keys in order, stopping at the first failure.

        Each create is its own atomic operation: keys created before a
        failure stay in place and the failure propagates.
        """
        created: list[SessionKeyRecord] = []
        for spec in specs:
            created.append(
                self.create(
                    authority=authority,
                    key_identity=spec.key_identity,
                    expires_at=spec.expires_at,
                    expiration_type=spec.expiration_type,
                    permissions=spec.permissions,
                    label=spec.label,
                )
            )
        return created

    def update(
        self,
        authority: str,
        key_identity: str,
        expires_at: int | None = None,
        permissions: SessionPermissions | None = None,
    ) -> SessionKeyRecord:
        """Change a live key's expiry and/or replace its permission set.

        The new expiry is checked against the record's own expiration type.
        Both fields are optional and applied independently.

        Raises
        ------
        SessionKeyNotFoundError
            If *key_identity* is absent.
        SessionKeyRevokedError
            If the key is revoked; revoked keys are immutable.
        InvalidExpiryError
            If *expires_at* is given and not strictly in the future.
        """
        clock = self._clock.now()
        with self._store.transaction(authority) as account:
            record = account.session_keys.get(key_identity)
            if record.is_revoked:
                raise SessionKeyRevokedError(key_identity)
            if expires_at is not None:
                require_future_expiry(expires_at, record.expiration_type, clock)
                record.expires_at = expires_at
            if permissions is not None:
                record.permissions = permissions

        logger.info(
            "Session key %s updated for %s (expires_at=%d)",
            key_identity,
            authority,
            record.expires_at,
        )
        notify(
            self._sink,
            SessionKeyUpdated(
                authority=authority,
                key_identity=key_identity,
                expires_at=record.expires_at,
                permissions=record.permissions.to_dict(),
            ),
        )
        return record

    def revoke(self, authority: str, key_identity: str) -> SessionKeyRecord:
        """Revoke one key.

        Raises
        ------
        SessionKeyNotFoundError
            If *key_identity* is absent.
        SessionKeyAlreadyRevokedError
            If the key is already revoked.
        """
        with self._store.transaction(authority) as account:
            record = account.session_keys.get(key_identity)
            if record.is_revoked:
                raise SessionKeyAlreadyRevokedError(key_identity)
            record.revoke()

        logger.info("Session key %s revoked for %s", key_identity, authority)
        notify(self._sink, SessionKeyRevoked(authority=authority, key_identity=key_identity))
        return record

    def revoke_all(self, authority: str) -> int:
        """Revoke every key of *authority*.

        Returns
        -------
        int
            The registry size, counting keys that were already revoked.
        """
        with self._store.transaction(authority) as account:
            for record in account.session_keys:
                record.revoke()
            count = len(account.session_keys)

        logger.info("All %d session keys revoked for %s", count, authority)
        notify(self._sink, AllSessionKeysRevoked(authority=authority, count=count))
        return count

    def prune(self, authority: str) -> int:
        """Remove every revoked or expired key, keeping survivors in order.

        Returns
        -------
        int
            Number of records removed.
        """
        clock = self._clock.now()
        with self._store.transaction(authority) as account:
            removed = account.session_keys.retain(lambda record: is_valid(record, clock))

        logger.info("Pruned %d expired/revoked session keys for %s", len(removed), authority)
        return len(removed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_key(self, authority: str, key_identity: str) -> SessionKeyRecord:
        """Return the record for *key_identity*.

        Raises
        ------
        SessionKeyNotFoundError
            If absent.
        """
        with self._store.transaction(authority, write=False) as account:
            return account.session_keys.get(key_identity)

    def list_keys(self, authority: str) -> list[SessionKeyStatus]:
        """Return every key of *authority* with its status, in registry order."""
        clock = self._clock.now()
        with self._store.transaction(authority, write=False) as account:
            records = account.session_keys.records()
        return [self._status(record, clock) for record in records]

    def active_keys(self, authority: str) -> list[SessionKeyStatus]:
        """Return the keys that are neither revoked nor expired."""
        return [status for status in self.list_keys(authority) if status.is_active]

    def is_key_valid(self, authority: str, key_identity: str) -> bool:
        """Return True if *key_identity* exists and is currently valid."""
        return any(s.key_identity == key_identity for s in self.active_keys(authority))

    def expiring_keys(self, authority: str, within: int) -> list[SessionKeyStatus]:
        """Return active keys with at most *within* seconds/height units left."""
        return [s for s in self.active_keys(authority) if s.remaining <= within]

    @staticmethod
    def _status(record: SessionKeyRecord, clock: ClockReading) -> SessionKeyStatus:
        expired = is_expired(record, clock)
        return SessionKeyStatus(
            record=record,
            is_expired=expired,
            is_revoked=record.is_revoked,
            is_active=not record.is_revoked and not expired,
            remaining=remaining(record, clock),
        )


__all__ = ["SessionKeyManager", "SessionKeySpec", "SessionKeyStatus"]
