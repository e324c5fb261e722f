"""
Selective artifact copier.

Copies only catalogued files and directories of one profile into the staging
tree at ``<staging>/<Browser>/<User>[/<Profile>]/`` and returns one result per
catalogue item. Only items that reached the staging tree carry an
AuditRecord, so the ledger lists exactly what was staged.

Per-item failures (locked files, permission denied) never abort a run; they
are reported as ``CopyStatus.FAILED`` results and narrated in the transcript.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from core.audit_logging import AuditRecord
from core.enums import ArtifactKind, CopyStatus
from core.logging import get_logger
from core.run_context import RunContext, utc_now

from .catalog import ArtifactSpec, get_browser_label, spec_for
from .locator import ProfileRef

LOGGER = get_logger("collectors.copier")


@dataclass(frozen=True)
class ItemResult:
    """Outcome of copying one catalogue item."""

    name: str
    kind: ArtifactKind
    status: CopyStatus
    source: Path
    destination: Path
    error: Optional[str] = None
    record: Optional[AuditRecord] = None


@dataclass
class CollectionResult:
    """All item outcomes for one profile."""

    profile: ProfileRef
    destination: Optional[Path] = None
    items: List[ItemResult] = field(default_factory=list)

    @property
    def records(self) -> List[AuditRecord]:
        """AuditRecords in emission order (staged items only)."""
        return [item.record for item in self.items if item.record is not None]

    @property
    def failures(self) -> List[ItemResult]:
        return [item for item in self.items if item.status in (CopyStatus.FAILED, CopyStatus.PARTIAL)]

    @property
    def skipped(self) -> bool:
        """True when the profile path did not exist and nothing was attempted."""
        return self.destination is None


def _relative(name: str) -> Path:
    return Path(*PurePosixPath(name).parts)


class SelectiveCopier:
    """Stage catalogued artifacts of browser profiles for one run."""

    def __init__(self, context: RunContext, clock: Callable[[], datetime] = utc_now) -> None:
        self.context = context
        self.clock = clock

    def destination_for(self, profile: ProfileRef) -> Path:
        return self.context.destination_for(
            get_browser_label(profile.browser), profile.user, profile.profile_name
        )

    def collect(self, profile: ProfileRef, spec: Optional[ArtifactSpec] = None) -> CollectionResult:
        """
        Copy every catalogued item present in ``profile`` into staging.

        Returns an empty result without touching the staging tree when the
        profile path does not exist.
        """
        spec = spec or spec_for(profile.browser)
        result = CollectionResult(profile=profile)

        if not profile.source_path.is_dir():
            LOGGER.debug("Profile path absent, skipping: %s", profile.source_path)
            return result

        dest_root = self.destination_for(profile)
        dest_root.mkdir(parents=True, exist_ok=True)
        result.destination = dest_root

        label = get_browser_label(profile.browser)
        LOGGER.info("Collecting %s artifacts for user %s from %s", label, profile.user, profile.source_path)

        for name in sorted(spec.files):
            result.items.append(self._copy_file(profile, name, dest_root))
        for name in sorted(spec.directories):
            result.items.append(self._copy_directory(profile, name, dest_root))

        LOGGER.info(
            "%s/%s: %d item(s) staged, %d failed",
            label, profile.user, len(result.records), len(result.failures),
        )
        return result

    def _record(self, profile: ProfileRef, kind: ArtifactKind, source: Path, destination: Path) -> AuditRecord:
        return AuditRecord(
            timestamp=self.clock(),
            browser=get_browser_label(profile.browser),
            user=profile.user,
            kind=kind,
            source=source,
            destination=destination,
        )

    def _copy_file(self, profile: ProfileRef, name: str, dest_root: Path) -> ItemResult:
        source = profile.source_path / _relative(name)
        destination = dest_root / _relative(name)

        if not source.is_file():
            return ItemResult(name, ArtifactKind.FILE, CopyStatus.MISSING, source, destination)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as exc:
            LOGGER.warning("Could not copy file %s: %s", source, exc)
            self._discard_partial_file(destination, dest_root)
            return ItemResult(name, ArtifactKind.FILE, CopyStatus.FAILED, source, destination, error=str(exc))

        LOGGER.info("Copied file %s -> %s", source, destination)
        record = self._record(profile, ArtifactKind.FILE, source, destination)
        return ItemResult(name, ArtifactKind.FILE, CopyStatus.COPIED, source, destination, record=record)

    def _copy_directory(self, profile: ProfileRef, name: str, dest_root: Path) -> ItemResult:
        source = profile.source_path / _relative(name)
        destination = dest_root / _relative(name)

        if not source.is_dir():
            return ItemResult(name, ArtifactKind.DIRECTORY, CopyStatus.MISSING, source, destination)

        status = CopyStatus.COPIED
        error = None
        try:
            shutil.copytree(source, destination, copy_function=shutil.copy2, dirs_exist_ok=True)
        except shutil.Error as exc:
            # copytree collects per-member failures and raises once at the end
            failed_members = exc.args[0] if exc.args and isinstance(exc.args[0], list) else []
            status = CopyStatus.PARTIAL
            error = f"{len(failed_members)} member(s) not copied"
            for member_source, _member_dest, reason in failed_members:
                LOGGER.warning("Could not copy %s: %s", member_source, reason)
        except OSError as exc:
            LOGGER.warning("Could not copy directory %s: %s", source, exc)
            if destination.exists():
                shutil.rmtree(destination, ignore_errors=True)
            return ItemResult(name, ArtifactKind.DIRECTORY, CopyStatus.FAILED, source, destination, error=str(exc))

        if status is CopyStatus.PARTIAL:
            LOGGER.warning("Copied directory %s -> %s with gaps (%s)", source, destination, error)
        else:
            LOGGER.info("Copied directory %s -> %s", source, destination)
        record = self._record(profile, ArtifactKind.DIRECTORY, source, destination)
        return ItemResult(name, ArtifactKind.DIRECTORY, status, source, destination, error=error, record=record)

    @staticmethod
    def _discard_partial_file(destination: Path, dest_root: Path) -> None:
        """Remove a half-written copy and any sub-directories created for it."""
        try:
            destination.unlink(missing_ok=True)
            parent = destination.parent
            while parent != dest_root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent
        except OSError as exc:
            LOGGER.warning("Could not remove partial copy %s: %s", destination, exc)
