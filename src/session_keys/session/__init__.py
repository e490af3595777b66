"""Session key records, their evaluation, and the lifecycle around them."""
from __future__ import annotations

from session_keys.session.record import (
    ExpirationType,
    KeyState,
    SessionKeyRecord,
    SessionPermissions,
    make_label,
)
from session_keys.session.validity import (
    current_reference,
    expiry_from_duration,
    is_expired,
    is_valid,
    remaining,
    require_future_expiry,
)
from session_keys.session.permissions import (
    CustomAction,
    DelegateAction,
    PermissionCheck,
    PermissionPreset,
    SessionAction,
    TransferAction,
    action_from_dict,
    evaluate_permission,
    permissions_from_preset,
    require_permission,
)
from session_keys.session.allowlist import MintAllowlist
from session_keys.session.registry import OwnerAccount, SessionKeyRegistry
from session_keys.session.store import (
    AccountStore,
    FilesystemAccountStore,
    InMemoryAccountStore,
)
from session_keys.session.lifecycle import SessionKeyManager, SessionKeySpec, SessionKeyStatus
from session_keys.session.executor import DelegatedActionExecutor, authorize_session_key

__all__ = [
    "AccountStore",
    "CustomAction",
    "DelegateAction",
    "DelegatedActionExecutor",
    "ExpirationType",
    "FilesystemAccountStore",
    "InMemoryAccountStore",
    "KeyState",
    "MintAllowlist",
    "OwnerAccount",
    "PermissionCheck",
    "PermissionPreset",
    "SessionAction",
    "SessionKeyManager",
    "SessionKeyRecord",
    "SessionKeyRegistry",
    "SessionKeySpec",
    "SessionKeyStatus",
    "SessionPermissions",
    "TransferAction",
    "action_from_dict",
    "authorize_session_key",
    "current_reference",
    "evaluate_permission",
    "expiry_from_duration",
    "is_expired",
    "is_valid",
    "make_label",
    "permissions_from_preset",
    "remaining",
    "require_future_expiry",
    "require_permission",
]
