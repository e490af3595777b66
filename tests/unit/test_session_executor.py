"""Tests for session_keys.session.executor — DelegatedActionExecutor."""
from __future__ import annotations

import pytest

from session_keys.audit.events import CollectingSink, SessionActionExecuted
from session_keys.errors import (
    InsufficientPermissionsError,
    SessionKeyExpiredError,
    SessionKeyNotFoundError,
    SessionKeyRevokedError,
)
from session_keys.identity.encoding import random_identity
from session_keys.ports.clock import ManualClock
from session_keys.ports.ledger import InMemoryLedger, InsufficientFundsError, UnauthorizedSpenderError
from session_keys.session.executor import DelegatedActionExecutor
from session_keys.session.lifecycle import SessionKeyManager
from session_keys.session.permissions import CustomAction, DelegateAction, TransferAction
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
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture()
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture()
def manager(store: InMemoryAccountStore, clock: ManualClock) -> SessionKeyManager:
    return SessionKeyManager(store=store, clock=clock)


@pytest.fixture()
def owner(manager: SessionKeyManager) -> str:
    authority = random_identity()
    manager.initialize_owner_account(authority)
    return authority


@pytest.fixture()
def ledger(manager: SessionKeyManager, owner: str) -> InMemoryLedger:
    ledger = InMemoryLedger({owner: 10_000})
    ledger.authorize(owner, manager.get_account(owner).address)
    return ledger


@pytest.fixture()
def executor(
    store: InMemoryAccountStore, clock: ManualClock, ledger: InMemoryLedger, sink: CollectingSink
) -> DelegatedActionExecutor:
    return DelegatedActionExecutor(store=store, clock=clock, ledger=ledger, sink=sink)


@pytest.fixture()
def recipient() -> str:
    return random_identity()


def _create(
    manager: SessionKeyManager,
    owner: str,
    permissions: SessionPermissions,
    expires_at: int = T + 1000,
    expiration_type: ExpirationType = ExpirationType.TIME,
) -> str:
    key = random_identity()
    manager.create(
        owner, key, expires_at=expires_at, expiration_type=expiration_type, permissions=permissions
    )
    return key


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------


class TestCappedTransferScenario:
    def test_full_scenario(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        clock: ManualClock,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True, max_transfer_amount=500))

        clock.set(unix_timestamp=T + 1)
        executor.execute(owner, key, TransferAction(recipient, 500))
        assert ledger.balance(recipient) == 500

        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, 501))
        assert ledger.balance(recipient) == 500

        clock.set(unix_timestamp=T + 1000)
        with pytest.raises(SessionKeyExpiredError):
            executor.execute(owner, key, TransferAction(recipient, 1))

        manager.revoke(owner, key)
        with pytest.raises(SessionKeyRevokedError):
            executor.execute(owner, key, TransferAction(recipient, 1))

    def test_revoked_reported_before_expired_on_live_key(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        manager.revoke(owner, key)
        with pytest.raises(SessionKeyRevokedError):
            executor.execute(owner, key, TransferAction(recipient, 1))


# ---------------------------------------------------------------------------
# Error precedence
# ---------------------------------------------------------------------------


class TestErrorPrecedence:
    def test_unknown_key(self, executor: DelegatedActionExecutor, owner: str, recipient: str) -> None:
        with pytest.raises(SessionKeyNotFoundError):
            executor.execute(owner, random_identity(), TransferAction(recipient, 1))

    def test_expired_reported_before_permission(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        clock: ManualClock,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(), expires_at=T + 5)
        clock.advance(seconds=5)
        with pytest.raises(SessionKeyExpiredError):
            executor.execute(owner, key, TransferAction(recipient, 1))

    def test_revoked_reported_before_expired(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        clock: ManualClock,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(), expires_at=T + 5)
        manager.revoke(owner, key)
        clock.advance(seconds=50)
        with pytest.raises(SessionKeyRevokedError):
            executor.execute(owner, key, TransferAction(recipient, 1))

    def test_permission_checked_before_identity_binding(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True, max_transfer_amount=10))
        with pytest.raises(InsufficientPermissionsError) as exc_info:
            executor.execute(
                owner, key, TransferAction(recipient, 11), source=random_identity()
            )
        assert "exceeds cap" in exc_info.value.reason

    def test_height_expiry(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        clock: ManualClock,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(
            manager,
            owner,
            SessionPermissions(can_transfer=True),
            expires_at=H + 3,
            expiration_type=ExpirationType.BLOCK_HEIGHT,
        )
        clock.advance(seconds=10_000, height=2)
        executor.execute(owner, key, TransferAction(recipient, 1))
        clock.advance(height=1)
        with pytest.raises(SessionKeyExpiredError):
            executor.execute(owner, key, TransferAction(recipient, 1))


# ---------------------------------------------------------------------------
# Transfer branch
# ---------------------------------------------------------------------------


class TestTransfer:
    @pytest.mark.parametrize("amount", [1, 100, 10_000])
    def test_no_transfer_flag_always_denied(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        owner: str,
        recipient: str,
        amount: int,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_delegate=True, can_execute_custom=True))
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, amount))

    def test_cap_boundary(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True, max_transfer_amount=100))
        executor.execute(owner, key, TransferAction(recipient, 100))
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, 101))
        assert ledger.balance(recipient) == 100

    def test_unlimited_cap(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        executor.execute(owner, key, TransferAction(recipient, 10_000))
        assert ledger.balance(owner) == 0
        assert ledger.balance(recipient) == 10_000

    def test_substituted_source_rejected(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        victim = random_identity()
        ledger.credit(victim, 1_000)
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, 10), source=victim)
        assert ledger.balance(victim) == 1_000

    def test_substituted_destination_rejected(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        attacker = random_identity()
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, 10), destination=attacker)
        assert ledger.balance(attacker) == 0

    def test_explicit_matching_accounts_accepted(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        executor.execute(
            owner, key, TransferAction(recipient, 25), source=owner, destination=recipient
        )
        assert ledger.balance(recipient) == 25

    def test_ledger_failure_propagates(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        owner: str,
        recipient: str,
        sink: CollectingSink,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        with pytest.raises(InsufficientFundsError):
            executor.execute(owner, key, TransferAction(recipient, 10_001))
        assert sink.of_type(SessionActionExecuted) == []

    def test_owner_must_authorize_the_account(
        self,
        store: InMemoryAccountStore,
        manager: SessionKeyManager,
        clock: ManualClock,
        owner: str,
        recipient: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        unauthorized = DelegatedActionExecutor(store, clock, InMemoryLedger({owner: 100}))
        with pytest.raises(UnauthorizedSpenderError):
            unauthorized.execute(owner, key, TransferAction(recipient, 10))


# ---------------------------------------------------------------------------
# Delegate / custom branches and notifications
# ---------------------------------------------------------------------------


class TestAcknowledgedActions:
    def test_delegate_action_acknowledged(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        ledger: InMemoryLedger,
        owner: str,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_delegate=True))
        executor.execute(owner, key, DelegateAction(random_identity(), SessionPermissions()))
        assert ledger.balance(owner) == 10_000

    def test_delegate_action_requires_flag(
        self, manager: SessionKeyManager, executor: DelegatedActionExecutor, owner: str
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, DelegateAction(random_identity(), SessionPermissions()))

    def test_custom_action_acknowledged(
        self, manager: SessionKeyManager, executor: DelegatedActionExecutor, owner: str
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_execute_custom=True))
        record = executor.execute(owner, key, CustomAction(random_identity(), b"\x01"))
        assert record.key_identity == key

    def test_custom_action_requires_flag(
        self, manager: SessionKeyManager, executor: DelegatedActionExecutor, owner: str
    ) -> None:
        key = _create(manager, owner, SessionPermissions())
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, CustomAction(random_identity()))

    def test_success_emits_action_executed(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        clock: ManualClock,
        owner: str,
        recipient: str,
        sink: CollectingSink,
    ) -> None:
        key = _create(manager, owner, SessionPermissions(can_transfer=True))
        clock.advance(seconds=7)
        executor.execute(owner, key, TransferAction(recipient, 3))
        (event,) = sink.of_type(SessionActionExecuted)
        assert isinstance(event, SessionActionExecuted)
        assert event.authority == owner
        assert event.key_identity == key
        assert event.timestamp == T + 7
        assert event.action == {"type": "transfer", "recipient": recipient, "amount": 3}

    def test_failure_emits_nothing(
        self,
        manager: SessionKeyManager,
        executor: DelegatedActionExecutor,
        owner: str,
        recipient: str,
        sink: CollectingSink,
    ) -> None:
        key = _create(manager, owner, SessionPermissions())
        with pytest.raises(InsufficientPermissionsError):
            executor.execute(owner, key, TransferAction(recipient, 1))
        assert sink.events == []
