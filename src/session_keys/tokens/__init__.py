"""Token movement through derived, program-controlled delegate credentials."""
from __future__ import annotations

from session_keys.tokens.delegate import TokenDelegateService

__all__ = ["TokenDelegateService"]
