"""Session-key notifications and the sink contract that receives them.

Events are plain frozen dataclasses built from already-serialized values so
they can be handed to any sink without further conversion. Delivery is
best-effort: :func:`notify` logs a failing sink and carries on, so an
observer can never change the outcome of the operation that produced the
event.
"""
from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEvent:
    """Base class for every notification. ``authority`` is the owner."""

    event_type: ClassVar[str] = "session_event"

    authority: str

    def to_dict(self) -> dict[str, object]:
        """Serialize to ``{"event_type": ..., "authority": ..., "details": {...}}``."""
        details = dataclasses.asdict(self)
        details.pop("authority")
        return {
            "event_type": self.event_type,
            "authority": self.authority,
            "details": details,
        }


@dataclass(frozen=True)
class SessionKeyCreated(SessionEvent):
    event_type: ClassVar[str] = "session_key_created"

    key_identity: str
    expires_at: int
    expiration_type: str
    permissions: dict[str, object]


@dataclass(frozen=True)
class SessionKeyUpdated(SessionEvent):
    event_type: ClassVar[str] = "session_key_updated"

    key_identity: str
    expires_at: int
    permissions: dict[str, object]


@dataclass(frozen=True)
class SessionKeyRevoked(SessionEvent):
    event_type: ClassVar[str] = "session_key_revoked"

    key_identity: str


@dataclass(frozen=True)
class AllSessionKeysRevoked(SessionEvent):
    """``count`` is the registry size, including keys revoked earlier."""

    event_type: ClassVar[str] = "all_session_keys_revoked"

    count: int


@dataclass(frozen=True)
class SessionActionExecuted(SessionEvent):
    event_type: ClassVar[str] = "session_action_executed"

    key_identity: str
    action: dict[str, object]
    timestamp: int


@dataclass(frozen=True)
class TokenDelegateApproved(SessionEvent):
    event_type: ClassVar[str] = "token_delegate_approved"

    token_account: str
    mint: str
    delegate: str
    amount: int


@dataclass(frozen=True)
class TokenDelegatedTransfer(SessionEvent):
    event_type: ClassVar[str] = "token_delegated_transfer"

    key_identity: str
    from_token: str
    to_token: str
    mint: str
    amount: int


@dataclass(frozen=True)
class TokenDelegateRevoked(SessionEvent):
    event_type: ClassVar[str] = "token_delegate_revoked"

    token_account: str


@dataclass(frozen=True)
class AllowedMintsUpdated(SessionEvent):
    event_type: ClassVar[str] = "allowed_mints_updated"

    mints: tuple[str, ...]


# ------------------------------------------------------------------
# Sinks
# ------------------------------------------------------------------


class NotificationSink(ABC):
    """Receiver of session-key notifications."""

    @abstractmethod
    def emit(self, event: SessionEvent) -> None:
        """Deliver *event*. May raise; callers go through :func:`notify`."""


class CollectingSink(NotificationSink):
    """Keeps every event in memory, oldest first."""

    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    def emit(self, event: SessionEvent) -> None:
        self.events.append(event)

    def of_type(self, event_cls: type[SessionEvent]) -> list[SessionEvent]:
        """Return collected events that are instances of *event_cls*."""
        return [e for e in self.events if isinstance(e, event_cls)]


def notify(sink: NotificationSink | None, event: SessionEvent) -> None:
    """Deliver *event* to *sink* without letting a sink failure escape."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception:
        logger.warning("Notification sink failed for %s", event.event_type, exc_info=True)


__all__ = [
    "AllSessionKeysRevoked",
    "AllowedMintsUpdated",
    "CollectingSink",
    "NotificationSink",
    "SessionActionExecuted",
    "SessionEvent",
    "SessionKeyCreated",
    "SessionKeyRevoked",
    "SessionKeyUpdated",
    "TokenDelegateApproved",
    "TokenDelegateRevoked",
    "TokenDelegatedTransfer",
    "notify",
]
