"""Requested actions and the permission evaluator.

Actions form a closed set: :class:`TransferAction`, :class:`DelegateAction`
and :class:`CustomAction`. :func:`evaluate_permission` decides whether a
:class:`SessionPermissions` value authorizes one of them; anything outside
the set is a programming error and raises ``TypeError``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from session_keys.errors import InsufficientPermissionsError
from session_keys.session.record import SessionPermissions

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TransferAction:
    """Move ``amount`` native units from the owner to ``recipient``."""

    recipient: str
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("TransferAction.amount must be non-negative.")

    def to_dict(self) -> dict[str, object]:
        return {"type": "transfer", "recipient": self.recipient, "amount": self.amount}


@dataclass(frozen=True)
class DelegateAction:
    """Declared capability point for sub-delegation. Acknowledged, no effect."""

    new_key_identity: str
    permissions: SessionPermissions

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "delegate",
            "new_key_identity": self.new_key_identity,
            "permissions": self.permissions.to_dict(),
        }


@dataclass(frozen=True)
class CustomAction:
    """Declared capability point for custom actions. Acknowledged, no effect."""

    target_identity: str
    payload: bytes = b""

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "custom",
            "target_identity": self.target_identity,
            "payload": self.payload.hex(),
        }


SessionAction = Union[TransferAction, DelegateAction, CustomAction]


def action_from_dict(data: dict[str, object]) -> SessionAction:
    """Reconstruct an action from its ``to_dict`` form.

    Raises
    ------
    ValueError
        If ``type`` is not one of transfer, delegate, custom.
    """
    kind = data.get("type")
    if kind == "transfer":
        return TransferAction(recipient=str(data["recipient"]), amount=int(data["amount"]))  # type: ignore[arg-type]
    if kind == "delegate":
        return DelegateAction(
            new_key_identity=str(data["new_key_identity"]),
            permissions=SessionPermissions.from_dict(dict(data.get("permissions") or {})),  # type: ignore[arg-type]
        )
    if kind == "custom":
        return CustomAction(
            target_identity=str(data["target_identity"]),
            payload=bytes.fromhex(str(data.get("payload") or "")),
        )
    raise ValueError(f"Unknown action type {kind!r}.")


# ------------------------------------------------------------------
# Evaluation
# ------------------------------------------------------------------


@dataclass(frozen=True)
class PermissionCheck:
    """Result of evaluating an action against a permission set.

    Parameters
    ----------
    allowed:
        Whether the action is authorized.
    reason:
        Human-readable explanation of the decision.
    """

    allowed: bool
    reason: str


def evaluate_permission(permissions: SessionPermissions, action: SessionAction) -> PermissionCheck:
    """Decide whether *permissions* authorize *action*.

    Transfers need ``can_transfer`` and, when a cap is set, an amount no
    greater than ``max_transfer_amount``. Delegate and custom actions need
    their respective flags.
    """
    if isinstance(action, TransferAction):
        if not permissions.can_transfer:
            return PermissionCheck(False, "session key may not transfer")
        if not permissions.allows_amount(action.amount):
            return PermissionCheck(
                False,
                f"amount {action.amount} exceeds cap {permissions.max_transfer_amount}",
            )
        return PermissionCheck(True, "transfer permitted")
    if isinstance(action, DelegateAction):
        if not permissions.can_delegate:
            return PermissionCheck(False, "session key may not delegate")
        return PermissionCheck(True, "delegate permitted")
    if isinstance(action, CustomAction):
        if not permissions.can_execute_custom:
            return PermissionCheck(False, "session key may not execute custom actions")
        return PermissionCheck(True, "custom action permitted")
    raise TypeError(f"Unsupported session action type: {type(action).__name__}")


def require_permission(permissions: SessionPermissions, action: SessionAction) -> None:
    """Raise :class:`InsufficientPermissionsError` unless *action* is authorized."""
    check = evaluate_permission(permissions, action)
    logger.debug("Permission check for %s: %s", type(action).__name__, check.reason)
    if not check.allowed:
        raise InsufficientPermissionsError(check.reason)


# ------------------------------------------------------------------
# Presets
# ------------------------------------------------------------------


class PermissionPreset(str, Enum):
    """Common permission templates."""

    FULL_ACCESS = "full_access"
    TRANSFER_ONLY = "transfer_only"
    LIMITED_TRANSFER = "limited_transfer"
    DELEGATE_ONLY = "delegate_only"
    CUSTOM_ONLY = "custom_only"
    READ_ONLY = "read_only"


LIMITED_TRANSFER_CAP: int = 100_000_000

_PRESETS: dict[PermissionPreset, SessionPermissions] = {
    PermissionPreset.FULL_ACCESS: SessionPermissions(
        can_transfer=True, can_delegate=True, can_execute_custom=True
    ),
    PermissionPreset.TRANSFER_ONLY: SessionPermissions(can_transfer=True),
    PermissionPreset.LIMITED_TRANSFER: SessionPermissions(
        can_transfer=True, max_transfer_amount=LIMITED_TRANSFER_CAP
    ),
    PermissionPreset.DELEGATE_ONLY: SessionPermissions(can_delegate=True),
    PermissionPreset.CUSTOM_ONLY: SessionPermissions(can_execute_custom=True),
    PermissionPreset.READ_ONLY: SessionPermissions(),
}


def permissions_from_preset(preset: PermissionPreset | str) -> SessionPermissions:
    """Return the permission set for *preset*.

    Raises
    ------
    ValueError
        If *preset* is not a known preset name.
    """
    return _PRESETS[PermissionPreset(preset)]


__all__ = [
    "CustomAction",
    "DelegateAction",
    "LIMITED_TRANSFER_CAP",
    "PermissionCheck",
    "PermissionPreset",
    "SessionAction",
    "TransferAction",
    "action_from_dict",
    "evaluate_permission",
    "permissions_from_preset",
    "require_permission",
]
