"""SessionAuditLogger — JSONL audit trail for session-key events.

Every notification (key created, updated, revoked, all keys revoked, action
executed, token delegate approved / used / revoked, allowlist updated) is
appended as one JSON line to the configured log file. This gives an
append-only, human-readable trail for compliance and incident review.

If no file path is configured the logger keeps lines in an in-memory buffer
that can be drained via :meth:`drain_buffer`.
"""
from __future__ import annotations

import datetime
import json
import threading
from pathlib import Path

from session_keys.audit.events import NotificationSink, SessionEvent


class SessionAuditLogger(NotificationSink):
    """Append-only JSONL notification sink.

    Thread-safe. Each call to :meth:`emit` appends one JSON line to the
    configured file path (or to the in-memory buffer if no path is set).

    Parameters
    ----------
    log_path:
        Path to the JSONL log file. Parent directories are created
        automatically. If None, events are buffered in memory only.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._buffer: list[str] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # NotificationSink
    # ------------------------------------------------------------------

    def emit(self, event: SessionEvent) -> None:
        """Append *event* to the log, stamped with the wall-clock time."""
        entry = {
            "recorded_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            **event.to_dict(),
        }
        line = json.dumps(entry, separators=(",", ":"))
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory buffer (oldest first)."""
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events

    def read_log(self, tail: int | None = None) -> list[dict[str, object]]:
        """Read events from the log file, or from the buffer if there is none.

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* events.

        Returns
        -------
        list[dict[str, object]]
            Parsed event dictionaries in chronological order. Lines that are
            not valid JSON are skipped.
        """
        with self._lock:
            if self._log_path is None or not self._log_path.exists():
                lines = list(self._buffer)
            else:
                lines = self._log_path.read_text(encoding="utf-8").splitlines()

        parsed: list[dict[str, object]] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                parsed.append(json.loads(stripped))
            except json.JSONDecodeError:
                continue

        if tail is not None:
            return parsed[-tail:]
        return parsed


__all__ = ["SessionAuditLogger"]
