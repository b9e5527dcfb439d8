"""NDJSON event log of a calculator.

Events are appended one JSON object per line to ``<log_dir>/events.ndjson``
with sorted keys.  Appends hold an exclusive ``fcntl.flock`` and reads a
shared one, so several processes may log to the same directory.  Where
``fcntl`` does not exist (Windows) the file is used without locks.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from calcengine.logging.events import CalcEvent

try:
    import fcntl
except ImportError:
    fcntl = None  # type: ignore[assignment]

EVENTS_FILE = "events.ndjson"

# Only the end of the log is read back (2 MB)
DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
MAX_READ = 2000


@contextmanager
def _locked(path: Path, flags: int, exclusive: bool) -> Iterator[int]:
    fd = os.open(str(path), flags)
    try:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        yield fd
    finally:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class EventSink:
    """Append-only event log under *log_dir*.

    Attributes:
        log_dir: Directory holding the log.
        path: The NDJSON file.
    """

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = log_dir
        self.path = log_dir / EVENTS_FILE
        self._fsync = fsync
        self._tail_bytes = tail_bytes if tail_bytes is not None else DEFAULT_TAIL_BYTES
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, event: CalcEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"
        with _locked(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, exclusive=True) as fd:
            os.write(fd, line.encode("utf-8"))
            if self._fsync:
                os.fsync(fd)

    def read_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        formula: str | None = None,
        limit: int = 200,
    ) -> list[CalcEvent]:
        """Return logged events, most recent first.

        Args:
            level: Keep only events of this level.
            event_type: Keep only events of this type.
            formula: Keep only events about this exact formula.
            limit: Maximum number of events, capped at ``MAX_READ``.

        Lines that are not valid events are skipped.
        """
        if not self.path.exists():
            return []

        events: list[CalcEvent] = []
        for line in self._tail().splitlines():
            if not line.strip():
                continue
            try:
                event = CalcEvent.model_validate_json(line)
            except ValidationError:
                continue
            if level and event.level != level:
                continue
            if event_type and event.event_type != event_type:
                continue
            if formula is not None and event.formula != formula:
                continue
            events.append(event)

        events.reverse()
        return events[:min(limit, MAX_READ)]

    def _tail(self) -> str:
        with _locked(self.path, os.O_RDONLY, exclusive=False) as fd:
            size = os.fstat(fd).st_size
            start = max(0, size - self._tail_bytes)
            os.lseek(fd, start, os.SEEK_SET)
            data = os.read(fd, size - start)
        if start:
            # the first line is cut
            data = data.partition(b"\n")[2]
        return data.decode("utf-8", errors="replace")
