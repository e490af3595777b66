"""Session key records and the permission set they carry.

A :class:`SessionKeyRecord` is the unit of delegated trust: one ephemeral
signing identity, an expiry threshold measured in wall-clock seconds or in
height, a :class:`SessionPermissions` value and a one-way revocation state.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum

from session_keys.constants import LABEL_SIZE

_U64_MAX: int = 2**64 - 1
_U32_MAX: int = 2**32 - 1


class ExpirationType(str, Enum):
    """What a session key's ``expires_at`` is compared against.

    TIME         — wall-clock unix seconds.
    BLOCK_HEIGHT — the monotonic height counter.
    """

    TIME = "time"
    BLOCK_HEIGHT = "block_height"


class KeyState(str, Enum):
    """Revocation state. The only transition is ACTIVE -> REVOKED."""

    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass(frozen=True)
class SessionPermissions:
    """Capabilities granted to a session key.

    Replaced wholesale on update; never patched field by field.

    Parameters
    ----------
    can_transfer:
        May perform value transfers (direct and token-delegate).
    can_delegate:
        May perform delegate actions.
    can_execute_custom:
        May perform custom actions.
    max_transfer_amount:
        Inclusive cap on a single transfer. ``0`` means unlimited.
    custom_flags:
        Opaque 32-bit field reserved for application use; the engine does not
        interpret it.
    """

    can_transfer: bool = False
    can_delegate: bool = False
    can_execute_custom: bool = False
    max_transfer_amount: int = 0
    custom_flags: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.max_transfer_amount <= _U64_MAX:
            raise ValueError("max_transfer_amount must fit in an unsigned 64-bit integer.")
        if not 0 <= self.custom_flags <= _U32_MAX:
            raise ValueError("custom_flags must fit in an unsigned 32-bit integer.")

    @property
    def is_unlimited(self) -> bool:
        """True when no per-transfer cap applies."""
        return self.max_transfer_amount == 0

    def allows_amount(self, amount: int) -> bool:
        """Return True if *amount* is within the transfer cap."""
        return self.is_unlimited or amount <= self.max_transfer_amount

    def has_custom_flags(self, mask: int) -> bool:
        """Return True if every bit of *mask* is set in ``custom_flags``."""
        return self.custom_flags & mask == mask

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "can_transfer": self.can_transfer,
            "can_delegate": self.can_delegate,
            "can_execute_custom": self.can_execute_custom,
            "max_transfer_amount": self.max_transfer_amount,
            "custom_flags": self.custom_flags,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "SessionPermissions":
        """Reconstruct from :meth:`to_dict` output."""
        return cls(
            can_transfer=bool(data.get("can_transfer", False)),
            can_delegate=bool(data.get("can_delegate", False)),
            can_execute_custom=bool(data.get("can_execute_custom", False)),
            max_transfer_amount=int(data.get("max_transfer_amount", 0)),  # type: ignore[arg-type]
            custom_flags=int(data.get("custom_flags", 0)),  # type: ignore[arg-type]
        )


_IMMUTABLE_FIELDS = frozenset({"key_identity", "created_at", "expiration_type"})


@dataclass
class SessionKeyRecord:
    """One session key held in an owner's registry.

    Parameters
    ----------
    key_identity:
        Identity of the ephemeral signing credential. Unique per registry.
    created_at:
        Unix timestamp at issuance. Informational only.
    expires_at:
        Threshold compared against time or height per ``expiration_type``.
    expiration_type:
        Fixed at creation.
    permissions:
        The capabilities granted to this key.
    label:
        Opaque caller-assigned bytes, ``LABEL_SIZE`` long.

    ``key_identity``, ``created_at`` and ``expiration_type`` cannot be
    reassigned once set. Revocation goes through :meth:`revoke` and cannot
    be undone.
    """

    key_identity: str
    created_at: int
    expires_at: int
    expiration_type: ExpirationType
    permissions: SessionPermissions = field(default_factory=SessionPermissions)
    label: bytes = bytes(LABEL_SIZE)
    _state: KeyState = field(default=KeyState.ACTIVE, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.label) != LABEL_SIZE:
            raise ValueError(f"label must be exactly {LABEL_SIZE} bytes.")

    def __setattr__(self, name: str, value: object) -> None:
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"{name} cannot be changed after creation.")
        if name == "_state" and self.__dict__.get("_state") is KeyState.REVOKED:
            if value is not KeyState.REVOKED:
                raise AttributeError("A revoked session key cannot be reactivated.")
        object.__setattr__(self, name, value)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    @property
    def state(self) -> KeyState:
        return self._state

    @property
    def is_revoked(self) -> bool:
        return self._state is KeyState.REVOKED

    def revoke(self) -> None:
        """Move to REVOKED. Calling again is harmless."""
        self._state = KeyState.REVOKED

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def expiration_description(self) -> str:
        """Human-readable description of the expiry threshold.

        The ISO date is omitted for timestamps outside the range ``datetime``
        can represent.
        """
        if self.expiration_type is ExpirationType.TIME:
            try:
                when = datetime.datetime.fromtimestamp(self.expires_at, datetime.timezone.utc)
            except (OverflowError, ValueError, OSError):
                return f"Expires at timestamp {self.expires_at}"
            return f"Expires at timestamp {self.expires_at} ({when.isoformat()})"
        return f"Expires at block height {self.expires_at}"

    def label_text(self) -> str:
        """The label decoded as UTF-8 with trailing zero bytes stripped."""
        return self.label.rstrip(b"\x00").decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "key_identity": self.key_identity,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "expiration_type": self.expiration_type.value,
            "permissions": self.permissions.to_dict(),
            "is_revoked": self.is_revoked,
            "label": self.label.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "SessionKeyRecord":
        """Reconstruct a record from :meth:`to_dict` output."""
        label_hex = str(data.get("label") or "")
        record = cls(
            key_identity=str(data["key_identity"]),
            created_at=int(data["created_at"]),  # type: ignore[arg-type]
            expires_at=int(data["expires_at"]),  # type: ignore[arg-type]
            expiration_type=ExpirationType(str(data["expiration_type"])),
            permissions=SessionPermissions.from_dict(
                dict(data.get("permissions") or {})  # type: ignore[arg-type]
            ),
            label=bytes.fromhex(label_hex) if label_hex else bytes(LABEL_SIZE),
        )
        if data.get("is_revoked"):
            record.revoke()
        return record


def make_label(text: str) -> bytes:
    """Encode *text* into a zero-padded label buffer.

    Raises
    ------
    ValueError
        If the UTF-8 encoding is longer than ``LABEL_SIZE``.
    """
    raw = text.encode("utf-8")
    if len(raw) > LABEL_SIZE:
        raise ValueError(f"label text exceeds {LABEL_SIZE} bytes when encoded.")
    return raw.ljust(LABEL_SIZE, b"\x00")


__all__ = [
    "ExpirationType",
    "KeyState",
    "SessionKeyRecord",
    "SessionPermissions",
    "make_label",
]
