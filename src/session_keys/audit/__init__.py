"""Session-key notifications and the JSONL audit sink.

Quick start
-----------
::

    from pathlib import Path
    from session_keys.audit import SessionAuditLogger

    sink = SessionAuditLogger(log_path=Path("audit/session-keys.jsonl"))
    # pass ``sink`` to SessionKeyManager / DelegatedActionExecutor
"""
from __future__ import annotations

from session_keys.audit.events import (
    AllowedMintsUpdated,
    AllSessionKeysRevoked,
    CollectingSink,
    NotificationSink,
    SessionActionExecuted,
    SessionEvent,
    SessionKeyCreated,
    SessionKeyRevoked,
    SessionKeyUpdated,
    TokenDelegateApproved,
    TokenDelegatedTransfer,
    TokenDelegateRevoked,
    notify,
)
from session_keys.audit.logger import SessionAuditLogger

__all__ = [
    "AllSessionKeysRevoked",
    "AllowedMintsUpdated",
    "CollectingSink",
    "NotificationSink",
    "SessionActionExecuted",
    "SessionAuditLogger",
    "SessionEvent",
    "SessionKeyCreated",
    "SessionKeyRevoked",
    "SessionKeyUpdated",
    "TokenDelegateApproved",
    "TokenDelegateRevoked",
    "TokenDelegatedTransfer",
    "notify",
]
