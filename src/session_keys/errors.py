"""Error taxonomy for session-key operations.

Every authorization or validation failure is raised as a subclass of
:class:`SessionKeyError`. Each subclass carries a stable ``code`` string so
callers (CLI, HTTP hosts, audit consumers) can branch on the failure kind
without parsing messages. None of these failures are transient; retrying
the same call against the same state yields the same error.

Failures raised by external collaborators (ledger, token program) are not
wrapped here and propagate to the caller unchanged.
"""
from __future__ import annotations


class SessionKeyError(Exception):
    """Base class for all engine failures.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    """

    code: str = "session_key_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidExpiryError(SessionKeyError):
    """Raised when an expiry threshold is not strictly in the future."""

    code = "invalid_expiry"

    def __init__(self, expires_at: int, current: int, expiration_type: str) -> None:
        self.expires_at = expires_at
        self.current = current
        super().__init__(
            f"Session key expiry must be in the future: {expiration_type} "
            f"threshold {expires_at} is not greater than current {current}."
        )


class TooManySessionKeysError(SessionKeyError):
    """Raised when the owner's registry is already at capacity."""

    code = "too_many_session_keys"

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"Maximum number of session keys reached ({limit}). "
            "Revoke and prune unused keys before creating new ones."
        )


class SessionKeyAlreadyExistsError(SessionKeyError):
    """Raised when a key identity is already present in the registry."""

    code = "session_key_already_exists"

    def __init__(self, key_identity: str) -> None:
        self.key_identity = key_identity
        super().__init__(f"Session key {key_identity!r} already exists.")


class SessionKeyNotFoundError(SessionKeyError):
    """Raised when a key identity is not present in the registry."""

    code = "session_key_not_found"

    def __init__(self, key_identity: str) -> None:
        self.key_identity = key_identity
        super().__init__(f"Session key {key_identity!r} not found.")


class SessionKeyRevokedError(SessionKeyError):
    """Raised when a revoked key is used or modified."""

    code = "session_key_revoked"

    def __init__(self, key_identity: str) -> None:
        self.key_identity = key_identity
        super().__init__(f"Session key {key_identity!r} has been revoked.")


class SessionKeyAlreadyRevokedError(SessionKeyError):
    """Raised when revoking a key that is already revoked."""

    code = "session_key_already_revoked"

    def __init__(self, key_identity: str) -> None:
        self.key_identity = key_identity
        super().__init__(f"Session key {key_identity!r} has already been revoked.")


class SessionKeyExpiredError(SessionKeyError):
    """Raised when an expired key is used."""

    code = "session_key_expired"

    def __init__(self, key_identity: str) -> None:
        self.key_identity = key_identity
        super().__init__(f"Session key {key_identity!r} has expired.")


class InsufficientPermissionsError(SessionKeyError):
    """Raised when a key lacks the capability or an identity check fails."""

    code = "insufficient_permissions"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Insufficient permissions for this action: {reason}")


class MintNotAllowedError(SessionKeyError):
    """Raised when a mint is outside a non-empty allowlist."""

    code = "mint_not_allowed"

    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"Mint {mint!r} is not in the owner's allowlist.")


class TooManyAllowedMintsError(SessionKeyError):
    """Raised when an allowlist update exceeds the capacity."""

    code = "too_many_allowed_mints"

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            f"Too many allowed mints: {count} supplied, at most {limit} permitted."
        )


class OwnerAccountNotFoundError(SessionKeyError, KeyError):
    """Raised when no owner account exists for an authority."""

    code = "owner_account_not_found"

    def __init__(self, authority: str) -> None:
        self.authority = authority
        SessionKeyError.__init__(
            self,
            f"No owner account for authority {authority!r}. "
            "Use initialize_owner_account() first.",
        )

    def __str__(self) -> str:
        return self.message


class OwnerAccountExistsError(SessionKeyError):
    """Raised when initializing an owner account that already exists."""

    code = "owner_account_exists"

    def __init__(self, authority: str) -> None:
        self.authority = authority
        super().__init__(f"Owner account for authority {authority!r} already exists.")


__all__ = [
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
]
