"""EngineSettings — deployment configuration for the session-key engine.

Settings come from keyword arguments or from ``SESSION_KEYS_*`` environment
variables via :meth:`EngineSettings.from_env`. Sensible defaults are provided
for every field.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field, field_validator

from session_keys.constants import DEFAULT_PROGRAM_ID
from session_keys.identity.encoding import is_valid_identity

ENV_PREFIX = "SESSION_KEYS_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EngineSettings(BaseModel):
    """Engine configuration.

    Parameters
    ----------
    program_id:
        Domain-separation identity mixed into every address derivation.
    audit_log_path:
        JSONL file for the audit sink. None keeps events in memory.
    store_dir:
        Directory for the filesystem account store. None selects the
        in-memory store.
    log_level:
        Level name applied by :meth:`configure_logging`.
    """

    program_id: str = DEFAULT_PROGRAM_ID
    audit_log_path: Path | None = None
    store_dir: Path | None = None
    log_level: str = Field(default="INFO")

    @field_validator("program_id")
    @classmethod
    def _check_program_id(cls, value: str) -> str:
        if not is_valid_identity(value):
            raise ValueError(f"program_id {value!r} is not a base58 identity")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        """Build settings from ``SESSION_KEYS_*`` variables.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to ``os.environ``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for field_name, var in (
            ("program_id", "PROGRAM_ID"),
            ("audit_log_path", "AUDIT_LOG"),
            ("store_dir", "STORE_DIR"),
            ("log_level", "LOG_LEVEL"),
        ):
            raw = env.get(ENV_PREFIX + var)
            if raw:
                values[field_name] = raw
        return cls(**values)

    def configure_logging(self) -> None:
        """Apply :attr:`log_level` to the ``session_keys`` logger hierarchy."""
        logging.getLogger("session_keys").setLevel(self.log_level)


__all__ = ["ENV_PREFIX", "EngineSettings"]
