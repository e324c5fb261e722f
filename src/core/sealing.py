"""
Evidence archive sealing.

Compresses the staging tree into one ZIP, hashes the finalized archive and
writes a self-describing integrity record next to it. Any failure here is
fatal for the run: an unsealed archive has no forensic value, so callers get a
SealingError and the staging tree is left untouched.

Integrity record layout (UTF-8 text):

    # Browser artifact evidence archive - integrity record
    # Purpose: ...
    # Archive: BrowserArtifacts_20261018_101500.zip
    # Generated: 2026-10-18 10:15:03 UTC
    # Algorithm: SHA256
    # Audit ledger: BrowserArtifacts_20261018_101500_audit/collection_summary.csv (SHA256 9f2c...)
    # Note: ...
    SHA256: 4b7e...

Header lines start with ``#`` and are commentary; the last line is the
machine-checkable digest.
"""

from __future__ import annotations

import re
import time
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from .enums import HashAlgorithm
from .exceptions import SealingError
from .hashing import hash_file
from .logging import get_logger
from .run_context import integrity_path_for, utc_now

LOGGER = get_logger("core.sealing")

RECORD_TITLE = "Browser artifact evidence archive - integrity record"
RECORD_PURPOSE = (
    "Cryptographic digest of the archive named below, recorded for "
    "chain-of-custody verification."
)
RECORD_NOTE = (
    "The digest covers the archive bytes exactly as written. "
    "Re-hash the archive with the algorithm above and compare."
)
GENERATED_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

_DIGEST_LINE = re.compile(r"^(?P<alg>[A-Z0-9]+):\s*(?P<digest>[0-9a-fA-F]+)\s*$")
_LEDGER_LINE = re.compile(r"^(?P<name>.+) \((?P<alg>[A-Z0-9]+) (?P<digest>[0-9a-fA-F]+)\)$")


@dataclass(frozen=True)
class IntegrityRecord:
    """Digest of a finalized archive plus descriptive metadata."""

    archive_name: str
    generated_at: datetime
    algorithm: HashAlgorithm
    digest: str
    ledger_name: Optional[str] = None
    ledger_digest: Optional[str] = None

    def render(self) -> str:
        lines = [
            f"# {RECORD_TITLE}",
            f"# Purpose: {RECORD_PURPOSE}",
            f"# Archive: {self.archive_name}",
            f"# Generated: {self.generated_at.astimezone(timezone.utc).strftime(GENERATED_FORMAT)}",
            f"# Algorithm: {self.algorithm.label}",
        ]
        if self.ledger_name and self.ledger_digest:
            lines.append(f"# Audit ledger: {self.ledger_name} ({self.algorithm.label} {self.ledger_digest})")
        lines.append(f"# Note: {RECORD_NOTE}")
        lines.append(f"{self.algorithm.label}: {self.digest}")
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class SealResult:
    """Everything produced by a successful seal."""

    archive_path: Path
    record_path: Path
    record: IntegrityRecord
    entry_count: int
    archive_size_bytes: int
    duration_seconds: float


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of re-hashing an archive against its integrity record."""

    archive_path: Path
    algorithm: HashAlgorithm
    expected: str
    actual: Optional[str]
    error: Optional[str] = None
    ledger_ok: Optional[bool] = None  # None when the record names no ledger or it is absent

    @property
    def ok(self) -> bool:
        return self.error is None and self.actual is not None and self.actual.lower() == self.expected.lower()


def create_archive(
    staging_root: Path,
    archive_path: Path,
    *,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> int:
    """
    Compress the staging tree into ``archive_path`` (overwriting it).

    Arcnames are relative to ``staging_root`` in POSIX form, so entries read
    ``<Browser>/<User>/...``. Directory entries are kept so empty per-user
    directories survive. Modification times before 1980 are clamped to the
    earliest ZIP timestamp; the staged bytes are stored unchanged. Returns the
    number of entries written.

    Raises:
        FileNotFoundError: If staging_root doesn't exist
        OSError: If the archive cannot be written
    """
    if not staging_root.is_dir():
        raise FileNotFoundError(f"Staging tree not found: {staging_root}")

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    entries: List[Path] = sorted(staging_root.rglob("*"), key=lambda p: p.relative_to(staging_root).as_posix())
    total = len(entries)

    written = 0
    with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False) as zipf:
        for index, entry in enumerate(entries, start=1):
            arcname = entry.relative_to(staging_root).as_posix()
            if entry.is_dir():
                zipf.write(entry, arcname + "/")
            elif entry.is_file():
                LOGGER.debug("Adding to ZIP: %s -> %s", entry, arcname)
                zipf.write(entry, arcname)
            else:
                continue
            written += 1
            if progress_callback:
                progress_callback(index, total, arcname)
    return written


def parse_integrity_record(record_path: Path) -> IntegrityRecord:
    """
    Parse an integrity record written by IntegrityRecord.render().

    Raises:
        ValueError: If the archive name or digest line is missing
    """
    archive_name: Optional[str] = None
    generated_at: Optional[datetime] = None
    ledger_name = ledger_digest = None
    digest_match = None

    for raw in record_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            key, _, value = line.lstrip("# ").partition(": ")
            if key == "Archive":
                archive_name = value
            elif key == "Generated":
                generated_at = datetime.strptime(value, GENERATED_FORMAT).replace(tzinfo=timezone.utc)
            elif key == "Audit ledger":
                ledger = _LEDGER_LINE.match(value)
                if ledger:
                    ledger_name, ledger_digest = ledger.group("name"), ledger.group("digest")
            continue
        digest_match = _DIGEST_LINE.match(line) or digest_match

    if archive_name is None or digest_match is None:
        raise ValueError(f"Not an integrity record: {record_path}")

    try:
        algorithm = HashAlgorithm(digest_match.group("alg").lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported algorithm in {record_path}: {digest_match.group('alg')}") from exc

    return IntegrityRecord(
        archive_name=archive_name,
        generated_at=generated_at or datetime.fromtimestamp(record_path.stat().st_mtime, tz=timezone.utc),
        algorithm=algorithm,
        digest=digest_match.group("digest").lower(),
        ledger_name=ledger_name,
        ledger_digest=ledger_digest,
    )


def _ledger_reference(ledger_path: Path, archive_path: Path) -> str:
    """Ledger location relative to the integrity record's directory, POSIX form."""
    try:
        return ledger_path.resolve().relative_to(archive_path.parent.resolve()).as_posix()
    except ValueError:
        return ledger_path.name


def verify_integrity_record(record_path: Path, archive_path: Optional[Path] = None) -> VerificationResult:
    """
    Re-hash the archive named in an integrity record and compare digests.

    The archive is looked up next to the record unless ``archive_path`` is given.
    When the record names an audit ledger that is still present relative to the
    record, its digest is checked too and reported in ``ledger_ok``.
    """
    record = parse_integrity_record(record_path)
    archive = archive_path or record_path.parent / record.archive_name
    if not archive.is_file():
        return VerificationResult(archive, record.algorithm, record.digest, None,
                                  error=f"Archive not found: {archive}")
    actual = hash_file(archive, record.algorithm.value)

    ledger_ok = None
    if record.ledger_name and record.ledger_digest:
        ledger = record_path.parent.joinpath(*PurePosixPath(record.ledger_name).parts)
        if ledger.is_file():
            ledger_ok = hash_file(ledger, record.algorithm.value) == record.ledger_digest.lower()
            if not ledger_ok:
                LOGGER.warning("Audit ledger %s no longer matches its recorded digest", ledger)

    result = VerificationResult(archive, record.algorithm, record.digest, actual, ledger_ok=ledger_ok)
    if result.ok:
        LOGGER.info("Integrity verified: %s %s", record.algorithm.label, actual)
    else:
        LOGGER.warning("Integrity mismatch for %s: expected %s, got %s", archive, record.digest, actual)
    return result


class ArchiveSealer:
    """Compress, hash and describe one staging tree."""

    def __init__(
        self,
        algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.algorithm = HashAlgorithm(algorithm)
        self.clock = clock

    def seal(
        self,
        staging_root: Path,
        archive_path: Path,
        *,
        ledger_path: Optional[Path] = None,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ) -> SealResult:
        """
        Seal ``staging_root`` into ``archive_path`` and write its integrity record.

        Raises:
            SealingError: compression, hashing or record writing failed. A
                partial archive is removed; the staging tree is never touched.
        """
        start_time = time.time()
        record_path = integrity_path_for(archive_path, self.algorithm)
        LOGGER.info("Sealing %s -> %s", staging_root, archive_path)

        try:
            entry_count = create_archive(staging_root, archive_path, progress_callback=progress_callback)
            digest = hash_file(archive_path, self.algorithm.value)
        except (OSError, zipfile.BadZipFile, ValueError) as exc:
            LOGGER.error("Archive creation failed for %s: %s", staging_root, exc)
            self._discard_partial(archive_path)
            raise SealingError(f"Could not seal {staging_root}: {exc}", staging_root=staging_root) from exc

        ledger_digest = None
        if ledger_path is not None and ledger_path.is_file():
            try:
                ledger_digest = hash_file(ledger_path, self.algorithm.value)
            except OSError as exc:
                LOGGER.warning("Could not hash audit ledger %s: %s", ledger_path, exc)

        record = IntegrityRecord(
            archive_name=archive_path.name,
            generated_at=self.clock(),
            algorithm=self.algorithm,
            digest=digest,
            ledger_name=_ledger_reference(ledger_path, archive_path) if ledger_digest else None,
            ledger_digest=ledger_digest,
        )
        try:
            record_path.write_text(record.render(), encoding="utf-8")
        except OSError as exc:
            LOGGER.error("Could not write integrity record %s: %s", record_path, exc)
            raise SealingError(f"Could not write integrity record {record_path}: {exc}",
                               staging_root=staging_root) from exc

        size = archive_path.stat().st_size
        duration = time.time() - start_time
        LOGGER.info(
            "Archive sealed: %d entries, %d bytes, %s %s (%.2f seconds)",
            entry_count, size, self.algorithm.label, digest, duration,
        )
        return SealResult(
            archive_path=archive_path,
            record_path=record_path,
            record=record,
            entry_count=entry_count,
            archive_size_bytes=size,
            duration_seconds=duration,
        )

    @staticmethod
    def _discard_partial(archive_path: Path) -> None:
        if archive_path.is_file():
            try:
                archive_path.unlink()
                LOGGER.info("Cleaned up partial archive: %s", archive_path)
            except OSError as exc:
                LOGGER.warning("Could not remove partial archive %s: %s", archive_path, exc)
