"""Tests for session_keys.session.lifecycle — SessionKeyManager."""
from __future__ import annotations

import pytest

from session_keys.audit.events import (
    AllSessionKeysRevoked,
    CollectingSink,
    NotificationSink,
    SessionEvent,
    SessionKeyCreated,
    SessionKeyRevoked,
    SessionKeyUpdated,
)
from session_keys.constants import MAX_SESSION_KEYS
from session_keys.errors import (
    InvalidExpiryError,
    OwnerAccountExistsError,
    OwnerAccountNotFoundError,
    SessionKeyAlreadyExistsError,
    SessionKeyAlreadyRevokedError,
    SessionKeyError,
    SessionKeyNotFoundError,
    SessionKeyRevokedError,
    TooManySessionKeysError,
)
from session_keys.identity.encoding import random_identity
from session_keys.ports.clock import ManualClock
from session_keys.session.lifecycle import SessionKeyManager, SessionKeySpec
from session_keys.session.record import ExpirationType, SessionPermissions
from session_keys.session.store import InMemoryAccountStore

T = 1_700_000_000
H = 250_000


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(unix_timestamp=T, height=H)


@pytest.fixture()
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture()
def manager(clock: ManualClock, sink: CollectingSink) -> SessionKeyManager:
    return SessionKeyManager(store=InMemoryAccountStore(), clock=clock, sink=sink)


@pytest.fixture()
def owner(manager: SessionKeyManager) -> str:
    authority = random_identity()
    manager.initialize_owner_account(authority)
    return authority


def _fill(manager: SessionKeyManager, owner: str, count: int, expires_at: int = T + 1000) -> list[str]:
    keys = [random_identity() for _ in range(count)]
    for key in keys:
        manager.create(owner, key, expires_at=expires_at)
    return keys


class _ExplodingSink(NotificationSink):
    def emit(self, event: SessionEvent) -> None:
        raise RuntimeError("sink offline")


# ---------------------------------------------------------------------------
# Owner accounts
# ---------------------------------------------------------------------------


class TestOwnerAccounts:
    def test_initialize_creates_empty_account(self, manager: SessionKeyManager, owner: str) -> None:
        account = manager.get_account(owner)
        assert account.authority == owner
        assert len(account.session_keys) == 0

    def test_initialize_twice_rejected(self, manager: SessionKeyManager, owner: str) -> None:
        with pytest.raises(OwnerAccountExistsError):
            manager.initialize_owner_account(owner)

    def test_operations_on_unknown_owner_rejected(self, manager: SessionKeyManager) -> None:
        with pytest.raises(OwnerAccountNotFoundError):
            manager.create(random_identity(), random_identity(), expires_at=T + 10)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_appends_active_record(self, manager: SessionKeyManager, owner: str) -> None:
        key = random_identity()
        perms = SessionPermissions(can_transfer=True, max_transfer_amount=500)
        record = manager.create(owner, key, expires_at=T + 1000, permissions=perms)
        assert record.created_at == T
        assert record.is_revoked is False
        assert record.permissions == perms
        assert record.label_text() == ""
        assert manager.get_key(owner, key).expires_at == T + 1000

    def test_create_with_label(self, manager: SessionKeyManager, owner: str) -> None:
        record = manager.create(owner, random_identity(), expires_at=T + 10, label="ci-runner")
        assert record.label_text() == "ci-runner"

    def test_create_emits_notification(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        key = random_identity()
        manager.create(owner, key, expires_at=T + 10)
        events = sink.of_type(SessionKeyCreated)
        assert len(events) == 1
        event = events[0]
        assert isinstance(event, SessionKeyCreated)
        assert event.authority == owner
        assert event.key_identity == key
        assert event.expiration_type == "time"

    def test_far_future_time_expiry_commits_and_notifies(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        key = random_identity()
        record = manager.create(owner, key, expires_at=2**62)
        assert record.expires_at == 2**62
        assert manager.get_key(owner, key).expires_at == 2**62
        assert manager.is_key_valid(owner, key) is True
        assert len(sink.of_type(SessionKeyCreated)) == 1

    @pytest.mark.parametrize("offset", [0, -1, -1000])
    def test_expiry_not_in_future_rejected(
        self, manager: SessionKeyManager, owner: str, offset: int
    ) -> None:
        with pytest.raises(InvalidExpiryError):
            manager.create(owner, random_identity(), expires_at=T + offset)
        assert manager.list_keys(owner) == []

    def test_height_expiry_checked_against_height(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        with pytest.raises(InvalidExpiryError):
            manager.create(
                owner, random_identity(), expires_at=H, expiration_type=ExpirationType.BLOCK_HEIGHT
            )
        record = manager.create(
            owner, random_identity(), expires_at=H + 1, expiration_type="block_height"
        )
        assert record.expiration_type is ExpirationType.BLOCK_HEIGHT

    def test_eleventh_key_rejected(self, manager: SessionKeyManager, owner: str) -> None:
        _fill(manager, owner, MAX_SESSION_KEYS)
        with pytest.raises(TooManySessionKeysError):
            manager.create(owner, random_identity(), expires_at=T + 10)
        assert len(manager.list_keys(owner)) == MAX_SESSION_KEYS

    def test_duplicate_rejected_even_when_revoked(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        with pytest.raises(SessionKeyAlreadyExistsError):
            manager.create(owner, key, expires_at=T + 5000)
        assert manager.get_key(owner, key).is_revoked is True

    def test_duplicate_rejected_even_when_expired(
        self, manager: SessionKeyManager, owner: str, clock: ManualClock
    ) -> None:
        (key,) = _fill(manager, owner, 1, expires_at=T + 10)
        clock.advance(seconds=100)
        with pytest.raises(SessionKeyAlreadyExistsError):
            manager.create(owner, key, expires_at=T + 5000)

    def test_failed_create_emits_nothing(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        with pytest.raises(InvalidExpiryError):
            manager.create(owner, random_identity(), expires_at=T)
        assert sink.events == []

    def test_failing_sink_does_not_fail_create(self, clock: ManualClock) -> None:
        manager = SessionKeyManager(InMemoryAccountStore(), clock, sink=_ExplodingSink())
        owner = random_identity()
        manager.initialize_owner_account(owner)
        key = random_identity()
        manager.create(owner, key, expires_at=T + 10)
        assert manager.is_key_valid(owner, key)


class TestCreateBatch:
    def test_creates_in_order(self, manager: SessionKeyManager, owner: str) -> None:
        specs = [SessionKeySpec(random_identity(), T + 100 * (i + 1)) for i in range(3)]
        created = manager.create_batch(owner, specs)
        assert [r.key_identity for r in created] == [s.key_identity for s in specs]

    def test_stops_at_first_failure(self, manager: SessionKeyManager, owner: str) -> None:
        good = SessionKeySpec(random_identity(), T + 100)
        bad = SessionKeySpec(random_identity(), T - 1)
        never = SessionKeySpec(random_identity(), T + 100)
        with pytest.raises(InvalidExpiryError):
            manager.create_batch(owner, [good, bad, never])
        identities = [s.key_identity for s in manager.list_keys(owner)]
        assert identities == [good.key_identity]


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_update_expiry_and_permissions(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        perms = SessionPermissions(can_execute_custom=True)
        record = manager.update(owner, key, expires_at=T + 9000, permissions=perms)
        assert record.expires_at == T + 9000
        assert record.permissions == perms
        assert len(sink.of_type(SessionKeyUpdated)) == 1

    def test_update_permissions_only_keeps_expiry(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1, expires_at=T + 1234)
        record = manager.update(owner, key, permissions=SessionPermissions(can_delegate=True))
        assert record.expires_at == T + 1234

    def test_update_missing_key(self, manager: SessionKeyManager, owner: str) -> None:
        with pytest.raises(SessionKeyNotFoundError):
            manager.update(owner, random_identity(), expires_at=T + 10)

    def test_update_revoked_key_rejected(self, manager: SessionKeyManager, owner: str) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        with pytest.raises(SessionKeyRevokedError):
            manager.update(owner, key, expires_at=T + 9000)
        assert manager.get_key(owner, key).expires_at == T + 1000

    def test_revoked_checked_before_expiry_validation(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        with pytest.raises(SessionKeyRevokedError):
            manager.update(owner, key, expires_at=T - 1)

    def test_invalid_expiry_leaves_record_unchanged(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        with pytest.raises(InvalidExpiryError):
            manager.update(
                owner, key, expires_at=T, permissions=SessionPermissions(can_transfer=True)
            )
        record = manager.get_key(owner, key)
        assert record.expires_at == T + 1000
        assert record.permissions == SessionPermissions()

    def test_update_uses_record_expiration_type(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        key = random_identity()
        manager.create(owner, key, expires_at=H + 10, expiration_type=ExpirationType.BLOCK_HEIGHT)
        # A height-sized value is in the future by height even though it is far below T.
        record = manager.update(owner, key, expires_at=H + 50)
        assert record.expires_at == H + 50
        assert record.expiration_type is ExpirationType.BLOCK_HEIGHT

    def test_expired_but_unrevoked_key_can_be_extended(
        self, manager: SessionKeyManager, owner: str, clock: ManualClock
    ) -> None:
        (key,) = _fill(manager, owner, 1, expires_at=T + 10)
        clock.advance(seconds=20)
        assert manager.is_key_valid(owner, key) is False
        manager.update(owner, key, expires_at=T + 100)
        assert manager.is_key_valid(owner, key) is True


# ---------------------------------------------------------------------------
# Revoke / revoke-all
# ---------------------------------------------------------------------------


class TestRevoke:
    def test_revoke_marks_record(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        assert manager.get_key(owner, key).is_revoked is True
        assert manager.is_key_valid(owner, key) is False
        assert len(sink.of_type(SessionKeyRevoked)) == 1

    def test_revoke_twice_rejected(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        with pytest.raises(SessionKeyAlreadyRevokedError):
            manager.revoke(owner, key)
        assert len(sink.of_type(SessionKeyRevoked)) == 1

    def test_revoke_missing_key(self, manager: SessionKeyManager, owner: str) -> None:
        with pytest.raises(SessionKeyNotFoundError):
            manager.revoke(owner, random_identity())

    def test_revoke_all_counts_registry_size(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        keys = _fill(manager, owner, 4)
        manager.revoke(owner, keys[0])
        assert manager.revoke_all(owner) == 4
        assert all(status.is_revoked for status in manager.list_keys(owner))
        (event,) = sink.of_type(AllSessionKeysRevoked)
        assert isinstance(event, AllSessionKeysRevoked)
        assert event.count == 4

    def test_revoke_all_on_empty_registry(self, manager: SessionKeyManager, owner: str) -> None:
        assert manager.revoke_all(owner) == 0

    def test_revoked_key_never_reactivated(self, manager: SessionKeyManager, owner: str) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke_all(owner)
        for attempt in (
            lambda: manager.update(owner, key, expires_at=T + 99_999),
            lambda: manager.revoke(owner, key),
            lambda: manager.create(owner, key, expires_at=T + 99_999),
        ):
            with pytest.raises(SessionKeyError):
                attempt()
            assert manager.get_key(owner, key).is_revoked is True


# ---------------------------------------------------------------------------
# Prune
# ---------------------------------------------------------------------------


class TestPrune:
    def test_prune_removes_revoked_and_expired(
        self, manager: SessionKeyManager, owner: str, clock: ManualClock
    ) -> None:
        short = _fill(manager, owner, 1, expires_at=T + 10)[0]
        keep_a, revoked, keep_b = _fill(manager, owner, 3, expires_at=T + 1000)
        manager.revoke(owner, revoked)
        clock.advance(seconds=10)

        assert manager.prune(owner) == 2
        remaining = [s.key_identity for s in manager.list_keys(owner)]
        assert remaining == [keep_a, keep_b]
        assert short not in remaining

    def test_prune_is_idempotent(
        self, manager: SessionKeyManager, owner: str, clock: ManualClock
    ) -> None:
        _fill(manager, owner, 3, expires_at=T + 10)
        clock.advance(seconds=10)
        assert manager.prune(owner) == 3
        assert manager.prune(owner) == 0

    def test_prune_emits_no_notification(
        self, manager: SessionKeyManager, owner: str, sink: CollectingSink
    ) -> None:
        keys = _fill(manager, owner, 1)
        manager.revoke(owner, keys[0])
        before = len(sink.events)
        manager.prune(owner)
        assert len(sink.events) == before

    def test_prune_frees_capacity(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        keys = _fill(manager, owner, MAX_SESSION_KEYS)
        manager.revoke(owner, keys[3])
        manager.prune(owner)
        manager.create(owner, random_identity(), expires_at=T + 10)
        assert len(manager.list_keys(owner)) == MAX_SESSION_KEYS

    def test_pruned_identity_can_be_reused(self, manager: SessionKeyManager, owner: str) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)
        manager.prune(owner)
        record = manager.create(owner, key, expires_at=T + 10)
        assert record.is_revoked is False


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_list_keys_reports_status(
        self, manager: SessionKeyManager, owner: str, clock: ManualClock
    ) -> None:
        live = _fill(manager, owner, 1, expires_at=T + 100)[0]
        expired = _fill(manager, owner, 1, expires_at=T + 5)[0]
        revoked = _fill(manager, owner, 1, expires_at=T + 100)[0]
        manager.revoke(owner, revoked)
        clock.advance(seconds=10)

        statuses = {s.key_identity: s for s in manager.list_keys(owner)}
        assert statuses[live].is_active and statuses[live].remaining == 90
        assert statuses[expired].is_expired and not statuses[expired].is_active
        assert statuses[expired].remaining == 0
        assert statuses[revoked].is_revoked and not statuses[revoked].is_active

    def test_active_keys(self, manager: SessionKeyManager, owner: str) -> None:
        keys = _fill(manager, owner, 3)
        manager.revoke(owner, keys[1])
        assert [s.key_identity for s in manager.active_keys(owner)] == [keys[0], keys[2]]

    def test_is_key_valid_unknown_key(self, manager: SessionKeyManager, owner: str) -> None:
        assert manager.is_key_valid(owner, random_identity()) is False

    def test_expiring_keys(self, manager: SessionKeyManager, owner: str) -> None:
        soon = _fill(manager, owner, 1, expires_at=T + 60)[0]
        _fill(manager, owner, 1, expires_at=T + 86_400)
        expiring = manager.expiring_keys(owner, within=300)
        assert [s.key_identity for s in expiring] == [soon]

    def test_status_to_dict(self, manager: SessionKeyManager, owner: str) -> None:
        _fill(manager, owner, 1, expires_at=T + 100)
        data = manager.list_keys(owner)[0].to_dict()
        assert data["is_active"] is True
        assert data["remaining"] == 100
        assert data["is_revoked"] is False

    def test_mutating_returned_record_does_not_touch_stored_key(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.revoke(owner, key)

        copy = manager.get_key(owner, key)
        copy.permissions = SessionPermissions(can_transfer=True)
        copy.expires_at = 999_999

        stored = manager.get_key(owner, key)
        assert stored.permissions == SessionPermissions()
        assert stored.expires_at == T + 1000
        assert stored.is_revoked is True

    def test_mutating_created_record_does_not_touch_stored_key(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        key = random_identity()
        record = manager.create(owner, key, expires_at=T + 10)
        record.revoke()
        assert manager.is_key_valid(owner, key) is True

    def test_mutating_listed_status_does_not_touch_stored_key(
        self, manager: SessionKeyManager, owner: str
    ) -> None:
        (key,) = _fill(manager, owner, 1)
        manager.list_keys(owner)[0].record.expires_at = T + 5
        assert manager.get_key(owner, key).expires_at == T + 1000


# ---------------------------------------------------------------------------
# Isolation between owners
# ---------------------------------------------------------------------------


class TestOwnerIsolation:
    def test_same_key_identity_under_two_owners(self, manager: SessionKeyManager) -> None:
        first, second = random_identity(), random_identity()
        manager.initialize_owner_account(first)
        manager.initialize_owner_account(second)
        key = random_identity()
        manager.create(first, key, expires_at=T + 10)
        manager.create(second, key, expires_at=T + 10)
        manager.revoke(first, key)
        assert manager.is_key_valid(second, key) is True
