"""
Chain-of-custody logging with two independent sinks.

Provides:
- AuditRecord: one staged file or directory
- AuditLedger: append-only CSV table of AuditRecords (collection_summary.csv)
- Transcript: narrative of every status message emitted during a run

Key Design:
- The ledger and the transcript are separate files with separate owners
- Ledger rows are written and flushed in emission order; read_ledger() returns
  them in the order written
- The transcript is a FileHandler on the application namespace logger, so every
  module's messages land in it without extra plumbing
- The transcript is finalized (handler detached and closed) and moved out of
  the staging tree before the archive is built, keeping the tool's own log out
  of the evidence
"""

from __future__ import annotations

import csv
import logging
import shutil
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Optional, Tuple

from .enums import ArtifactKind
from .exceptions import TranscriptError
from .logging import build_formatter, get_logger

LOGGER = get_logger("core.audit_logging")

LEDGER_COLUMNS: Tuple[str, ...] = (
    "Timestamp",
    "Browser",
    "User",
    "ArtifactType",
    "SourcePath",
    "DestinationPath",
)
LEDGER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class AuditRecord:
    """One copy action: what was staged, from where, to where, and when (UTC)."""

    timestamp: datetime
    browser: str
    user: str
    kind: ArtifactKind
    source: Path
    destination: Path

    def to_row(self) -> List[str]:
        """Render in LEDGER_COLUMNS order."""
        ts = self.timestamp
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)
        return [
            ts.strftime(LEDGER_TIMESTAMP_FORMAT),
            self.browser,
            self.user,
            str(self.kind),
            str(self.source),
            str(self.destination),
        ]


class AuditLedger:
    """
    Append-only structured record of every copy action.

    The header row is written by open(), before any record. Each append writes
    and flushes one row while holding a lock, so rows are totally ordered even
    when collection runs on worker threads.

    Usage:
        with AuditLedger(path) as ledger:
            ledger.extend(result.records)
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._records: List[AuditRecord] = []
        self._handle: Optional[IO[str]] = None
        self._writer: Any = None
        self._lock = threading.Lock()

    def open(self) -> "AuditLedger":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._handle)
        self._writer.writerow(LEDGER_COLUMNS)
        self._handle.flush()
        LOGGER.debug("Audit ledger initialized: %s", self.path)
        return self

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def records(self) -> Tuple[AuditRecord, ...]:
        """Records appended so far, in emission order."""
        with self._lock:
            return tuple(self._records)

    def append(self, record: AuditRecord) -> None:
        with self._lock:
            if self._handle is None:
                raise RuntimeError(f"Audit ledger {self.path} is not open")
            self._writer.writerow(record.to_row())
            self._handle.flush()
            self._records.append(record)

    def extend(self, records: Iterable[AuditRecord]) -> None:
        for record in records:
            self.append(record)

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None
                LOGGER.debug("Audit ledger closed with %d record(s)", len(self._records))

    def __enter__(self) -> "AuditLedger":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def read_ledger(path: Path) -> List[Dict[str, str]]:
    """Read ledger rows back in the order they were written."""
    with Path(path).open("r", newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if tuple(reader.fieldnames or ()) != LEDGER_COLUMNS:
            raise ValueError(f"Unexpected ledger header in {path}: {reader.fieldnames}")
        return list(reader)


class Transcript:
    """
    Full narrative of a run, captured from the application logger.

    start() attaches a file handler to the namespace logger; finalize()
    detaches it, closes the file and moves it to its final location.
    """

    def __init__(self, path: Path, level: int = logging.INFO) -> None:
        self.path = Path(path)
        self.level = level
        self._handler: Optional[logging.FileHandler] = None
        self._previous_level: Optional[int] = None
        self._final_path: Optional[Path] = None

    @property
    def active(self) -> bool:
        return self._handler is not None

    @property
    def final_path(self) -> Optional[Path]:
        return self._final_path

    def start(self, header_lines: Iterable[str] = ()) -> None:
        if self._handler is not None or self._final_path is not None:
            raise TranscriptError(f"Transcript {self.path} already started")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(self.path, mode="w", encoding="utf-8")
        handler.setFormatter(build_formatter())
        handler.setLevel(self.level)

        namespace = get_logger()
        # Make sure status messages reach the handler even without configure_logging()
        if namespace.getEffectiveLevel() > self.level:
            self._previous_level = namespace.level
            namespace.setLevel(self.level)
        namespace.addHandler(handler)
        self._handler = handler

        LOGGER.info("Transcript started: %s", self.path)
        for line in header_lines:
            LOGGER.info("%s", line)

    def finalize(self, destination: Path) -> Path:
        """Stop capture and relocate the transcript; returns the final path."""
        if self._handler is None:
            raise TranscriptError(f"Transcript {self.path} is not active")

        LOGGER.info("Transcript finalized; relocating to %s", destination)
        namespace = get_logger()
        namespace.removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        if self._previous_level is not None:
            namespace.setLevel(self._previous_level)
            self._previous_level = None

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(self.path), str(destination))
        self._final_path = destination
        return destination

    def append_outcome(self, level: int, msg: str, *args) -> None:
        """
        Append one formatted line to the finalized transcript.

        Used for the sealing outcome, which happens after capture has stopped.
        """
        if self._final_path is None:
            raise TranscriptError(f"Transcript {self.path} has not been finalized")
        record = LOGGER.makeRecord(LOGGER.name, level, __file__, 0, msg, args, None)
        with self._final_path.open("a", encoding="utf-8") as handle:
            handle.write(build_formatter().format(record) + "\n")
