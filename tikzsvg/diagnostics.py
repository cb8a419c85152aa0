"""
Append-only diagnostic log for toolchain invocations.

Every compile job records the commands it runs and any stage failure
as one timestamped line::

    [2024-05-01T12:00:00.000Z] Compiling: latex -interaction=nonstopmode ...

The file is a debugging aid for humans and is never parsed.  It is
shared by all concurrent jobs, so each record is emitted with a single
``write`` on an append-mode handle while holding a process-wide lock.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEBUG_LOG_NAME = "tikz-debug.log"

_WRITE_LOCK = threading.Lock()


def iso_timestamp(moment: datetime | None = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


class DiagnosticLog:
    """Line-oriented, append-only log file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def format_record(self, message: str) -> str:
        # Tool output spans many lines; keep the record on one.
        body = "\\n".join(message.rstrip().splitlines())
        return f"[{iso_timestamp()}] {body}\n"

    def write(self, message: str) -> None:
        """Append one record. Never raises."""
        record = self.format_record(message)
        try:
            with _WRITE_LOCK:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as fh:
                    fh.write(record)
        except OSError as exc:
            logger.warning("Could not write diagnostic log %s: %s", self.path, exc)
