"""
Run context resolved once at process start.

Carries the run timestamp, acquisition mode and every output path derived
from them. Components receive the context explicitly; nothing reads run
state from module globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PureWindowsPath
from typing import Optional, Union

from .config import DEFAULT_ARCHIVE_PREFIX, default_live_users_root
from .enums import AcquisitionMode, HashAlgorithm
from .exceptions import ConfigurationError

RUN_STAMP_FORMAT = "%Y%m%d_%H%M%S"
LEDGER_FILE_NAME = "collection_summary.csv"
AUDIT_DIR_SUFFIX = "_audit"
TRANSCRIPT_PREFIX = "collection_log_"
USERS_DIR_NAME = "Users"


def utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def integrity_path_for(archive_path: Path, alg: HashAlgorithm = HashAlgorithm.SHA256) -> Path:
    """Integrity record path: ``<archive>.<alg>.txt``."""
    return archive_path.with_name(f"{archive_path.name}.{HashAlgorithm(alg).value}.txt")


def normalize_image_root(image_root: Union[str, Path]) -> str:
    """
    Strip trailing path separators from a mounted image root.

    Both separators are stripped so ``/mnt/image/`` and ``/mnt/image`` behave
    alike. A bare separator stays as the filesystem root, and a bare drive
    keeps its root separator (``E:`` -> ``E:\\``) so joins stay absolute.
    """
    raw = str(image_root)
    stripped = raw.rstrip("/\\") or raw[:1]
    drive = PureWindowsPath(raw).drive
    if drive and stripped == drive:
        return drive + "\\"
    return stripped


@dataclass(frozen=True)
class RunContext:
    """Immutable per-run configuration: mode, roots, output paths, timestamp."""

    mode: AcquisitionMode
    users_root: Path
    output_dir: Path
    run_timestamp: datetime
    archive_prefix: str = DEFAULT_ARCHIVE_PREFIX

    @property
    def run_stamp(self) -> str:
        return self.run_timestamp.strftime(RUN_STAMP_FORMAT)

    @property
    def run_name(self) -> str:
        return f"{self.archive_prefix}_{self.run_stamp}"

    @property
    def staging_root(self) -> Path:
        return self.output_dir / self.run_name

    @property
    def archive_path(self) -> Path:
        return self.output_dir / f"{self.run_name}.zip"

    @property
    def transcript_path(self) -> Path:
        """Final transcript location, outside the staging tree."""
        return self.output_dir / f"{TRANSCRIPT_PREFIX}{self.run_stamp}.txt"

    @property
    def audit_dir(self) -> Path:
        """Per-run directory for the audit ledger, beside (not inside) the staging tree."""
        return self.output_dir / f"{self.run_name}{AUDIT_DIR_SUFFIX}"

    @property
    def ledger_path(self) -> Path:
        return self.audit_dir / LEDGER_FILE_NAME

    def integrity_path(self, alg: HashAlgorithm = HashAlgorithm.SHA256) -> Path:
        return integrity_path_for(self.archive_path, alg)

    def destination_for(self, browser_label: str, user: str, profile_name: Optional[str] = None) -> Path:
        """Staging sub-tree for one browser/user (and Firefox profile) pair."""
        dest = self.staging_root / browser_label / user
        if profile_name:
            dest = dest / profile_name
        return dest


def resolve_run_context(
    mode: AcquisitionMode,
    output_dir: Path,
    *,
    image_root: Optional[Union[str, Path]] = None,
    live_users_root: Optional[str] = None,
    archive_prefix: str = DEFAULT_ARCHIVE_PREFIX,
    now: Optional[datetime] = None,
) -> RunContext:
    """
    Build the RunContext for one acquisition.

    Live mode reads the running system's users directory; offline mode reads
    ``<image_root>/Users`` of a mounted forensic image.

    Raises:
        ConfigurationError: offline mode without an image root, or an image
            root given in live mode.
    """
    mode = AcquisitionMode(mode)
    if mode is AcquisitionMode.OFFLINE:
        if image_root is None or not str(image_root).strip():
            raise ConfigurationError("Offline acquisition requires a mounted image root")
        users_root = Path(normalize_image_root(image_root)) / USERS_DIR_NAME
    else:
        if image_root is not None:
            raise ConfigurationError("An image root cannot be combined with live acquisition")
        users_root = Path(live_users_root or default_live_users_root())

    timestamp = now or utc_now()
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)

    return RunContext(
        mode=mode,
        users_root=users_root,
        output_dir=Path(output_dir),
        run_timestamp=timestamp,
        archive_prefix=archive_prefix,
    )
