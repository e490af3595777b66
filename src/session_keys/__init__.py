"""session-keys — scoped, expiring, revocable session keys for owner accounts.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import session_keys
>>> session_keys.__version__
'0.1.0'

Quick start
-----------
::

    from session_keys import (
        InMemoryAccountStore, InMemoryLedger, ManualClock, SessionKeypair,
        SessionKeyManager, DelegatedActionExecutor, TransferAction,
        permissions_from_preset, random_identity,
    )

    store, clock, ledger = InMemoryAccountStore(), ManualClock(1_700_000_000), InMemoryLedger()
    owner, agent = SessionKeypair.generate(), SessionKeypair.generate()

    manager = SessionKeyManager(store, clock)
    account = manager.initialize_owner_account(owner.identity)
    manager.create(owner.identity, agent.identity, expires_at=1_700_003_600,
                   permissions=permissions_from_preset("limited_transfer"))

    ledger.credit(owner.identity, 1_000)
    ledger.authorize(owner.identity, account.address)
    DelegatedActionExecutor(store, clock, ledger).execute(
        owner.identity, agent.identity, TransferAction(random_identity(), 250)
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

from session_keys.constants import (
    DEFAULT_PROGRAM_ID,
    MAX_ALLOWED_MINTS,
    MAX_SESSION_KEYS,
    owner_account_space,
)
from session_keys.errors import (
    InsufficientPermissionsError,
    InvalidExpiryError,
    MintNotAllowedError,
    OwnerAccountExistsError,
    OwnerAccountNotFoundError,
    SessionKeyAlreadyExistsError,
    SessionKeyAlreadyRevokedError,
    SessionKeyError,
    SessionKeyExpiredError,
    SessionKeyNotFoundError,
    SessionKeyRevokedError,
    TooManyAllowedMintsError,
    TooManySessionKeysError,
)

# ------------------------------------------------------------------
# Identities and derivation
# ------------------------------------------------------------------
from session_keys.identity.derivation import (
    DelegateCredentialBinder,
    DerivedAddress,
    derive_delegate_address,
    derive_owner_account_address,
)
from session_keys.identity.encoding import random_identity
from session_keys.identity.keypair import SessionKeypair, verify_signer

# ------------------------------------------------------------------
# Collaborators
# ------------------------------------------------------------------
from session_keys.ports.clock import Clock, ClockReading, ManualClock, SystemClock
from session_keys.ports.ledger import InMemoryLedger, ValueTransfer
from session_keys.ports.token_program import InMemoryTokenProgram, TokenProgram

# ------------------------------------------------------------------
# Audit
# ------------------------------------------------------------------
from session_keys.audit.events import CollectingSink, NotificationSink, SessionEvent
from session_keys.audit.logger import SessionAuditLogger

# ------------------------------------------------------------------
# Session keys
# ------------------------------------------------------------------
from session_keys.session.record import ExpirationType, SessionKeyRecord, SessionPermissions
from session_keys.session.validity import expiry_from_duration, is_expired, is_valid
from session_keys.session.permissions import (
    CustomAction,
    DelegateAction,
    PermissionPreset,
    TransferAction,
    evaluate_permission,
    permissions_from_preset,
)
from session_keys.session.allowlist import MintAllowlist
from session_keys.session.registry import OwnerAccount, SessionKeyRegistry
from session_keys.session.store import (
    AccountStore,
    FilesystemAccountStore,
    InMemoryAccountStore,
)
from session_keys.session.lifecycle import SessionKeyManager, SessionKeySpec, SessionKeyStatus
from session_keys.session.executor import DelegatedActionExecutor

# ------------------------------------------------------------------
# Token delegates
# ------------------------------------------------------------------
from session_keys.tokens.delegate import TokenDelegateService

from session_keys.config import EngineSettings

__all__ = [
    "__version__",
    # Constants
    "DEFAULT_PROGRAM_ID",
    "MAX_ALLOWED_MINTS",
    "MAX_SESSION_KEYS",
    "owner_account_space",
    # Errors
    "InsufficientPermissionsError",
    "InvalidExpiryError",
    "MintNotAllowedError",
    "OwnerAccountExistsError",
    "OwnerAccountNotFoundError",
    "SessionKeyAlreadyExistsError",
    "SessionKeyAlreadyRevokedError",
    "SessionKeyError",
    "SessionKeyExpiredError",
    "SessionKeyNotFoundError",
    "SessionKeyRevokedError",
    "TooManyAllowedMintsError",
    "TooManySessionKeysError",
    # Identity
    "DelegateCredentialBinder",
    "DerivedAddress",
    "SessionKeypair",
    "derive_delegate_address",
    "derive_owner_account_address",
    "random_identity",
    "verify_signer",
    # Collaborators
    "Clock",
    "ClockReading",
    "InMemoryLedger",
    "InMemoryTokenProgram",
    "ManualClock",
    "SystemClock",
    "TokenProgram",
    "ValueTransfer",
    # Audit
    "CollectingSink",
    "NotificationSink",
    "SessionAuditLogger",
    "SessionEvent",
    # Session keys
    "AccountStore",
    "CustomAction",
    "DelegateAction",
    "DelegatedActionExecutor",
    "ExpirationType",
    "FilesystemAccountStore",
    "InMemoryAccountStore",
    "MintAllowlist",
    "OwnerAccount",
    "PermissionPreset",
    "SessionKeyManager",
    "SessionKeyRecord",
    "SessionKeyRegistry",
    "SessionKeySpec",
    "SessionKeyStatus",
    "SessionPermissions",
    "TransferAction",
    "evaluate_permission",
    "expiry_from_duration",
    "is_expired",
    "is_valid",
    "permissions_from_preset",
    # Token delegates
    "TokenDelegateService",
    # Config
    "EngineSettings",
]
