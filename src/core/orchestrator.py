from __future__ import annotations

import getpass
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .app_version import get_app_version
from .audit_logging import AuditLedger, Transcript
from .config import AppConfig
from .enums import Browser, CopyStatus, RunStage
from .logging import get_logger
from .run_context import RunContext, utc_now
from .sealing import ArchiveSealer, SealResult

from collectors.catalog import describe_catalog, spec_for
from collectors.copier import CollectionResult, SelectiveCopier
from collectors.locator import enumerate_users, resolve_profiles

LOGGER = get_logger("core.orchestrator")

StepCallback = Callable[[RunStage, str], None]


@dataclass(frozen=True)
class ItemFailure:
    """A catalogue item that existed but was not (fully) staged."""

    browser: str
    user: str
    name: str
    status: CopyStatus
    source: Path
    error: Optional[str]


@dataclass(frozen=True)
class AcquisitionSummary:
    """Final report of one acquisition run."""

    archive_path: Path
    integrity_path: Path
    transcript_path: Path
    ledger_path: Path
    digest: str
    users_scanned: int
    profiles_found: int
    record_count: int
    failures: List[ItemFailure] = field(default_factory=list)
    staging_removed: bool = True

    def report_lines(self) -> List[str]:
        lines = [
            f"Archive:          {self.archive_path}",
            f"Integrity record: {self.integrity_path}",
            f"Transcript:       {self.transcript_path}",
            f"Audit ledger:     {self.ledger_path}",
            f"Digest:           {self.digest}",
            f"Users scanned: {self.users_scanned}, profiles: {self.profiles_found}, "
            f"items staged: {self.record_count}, items failed: {len(self.failures)}",
        ]
        return lines


class AcquisitionOrchestrator:
    """
    Runs one acquisition through its linear stages.

    Init -> ModeSelect -> Collect -> FinalizeLedger -> Seal -> Cleanup -> Report

    Cleanup is only reached after a successful seal; a SealingError propagates
    with the staging tree intact for manual recovery.
    """

    def __init__(
        self,
        context: RunContext,
        config: AppConfig,
        *,
        step_cb: Optional[StepCallback] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.context = context
        self.config = config
        self.step_cb = step_cb
        self.clock = clock
        self.copier = SelectiveCopier(context, clock=clock)
        self._users_scanned = 0
        self._profiles_found = 0
        self._failures: List[ItemFailure] = []

    def _enter(self, stage: RunStage, message: str) -> None:
        LOGGER.info("[%s] %s", stage.value, message)
        if self.step_cb:
            self.step_cb(stage, message)

    def run(self) -> AcquisitionSummary:
        ctx = self.context
        acq = self.config.acquisition

        # Init
        self._enter(RunStage.INIT, f"Preparing staging tree {ctx.staging_root}")
        ctx.staging_root.mkdir(parents=True, exist_ok=True)
        transcript = Transcript(ctx.staging_root / ctx.transcript_path.name)
        transcript.start(header_lines=self._transcript_header())
        ledger = AuditLedger(ctx.ledger_path)

        try:
            ledger.open()

            # ModeSelect
            self._enter(RunStage.MODE_SELECT, f"Mode {ctx.mode.value}: users root {ctx.users_root}")

            # Discover & Collect
            self._enter(RunStage.COLLECT, "Enumerating users and collecting browser artifacts")
            self._collect_all(ledger, acq.browsers, acq.max_workers)
            LOGGER.info(
                "Collection finished: %d user(s), %d profile(s), %d item(s) staged, %d failed",
                self._users_scanned, self._profiles_found, len(ledger.records), len(self._failures),
            )

            # FinalizeLedger
            self._enter(RunStage.FINALIZE_LEDGER, "Closing audit ledger and transcript")
            ledger.close()
            transcript_path = transcript.finalize(ctx.transcript_path)
        except BaseException:
            ledger.close()
            if transcript.active:
                transcript.finalize(ctx.transcript_path)
            raise

        # Seal (SealingError is fatal and skips cleanup)
        self._enter(RunStage.SEAL, f"Compressing and hashing {ctx.staging_root}")
        sealer = ArchiveSealer(acq.hash_algorithm, clock=self.clock)
        try:
            sealed: SealResult = sealer.seal(ctx.staging_root, ctx.archive_path, ledger_path=ctx.ledger_path)
        except Exception as exc:
            LOGGER.error("Sealing failed; staging tree preserved at %s", ctx.staging_root)
            transcript.append_outcome(
                logging.ERROR, "Sealing failed: %s; staging tree preserved at %s", exc, ctx.staging_root,
            )
            raise
        transcript.append_outcome(
            logging.INFO, "Archive sealed: %s %s %s", sealed.archive_path,
            sealed.record.algorithm.label, sealed.record.digest,
        )

        # Cleanup
        staging_removed = False
        if acq.keep_staging:
            self._enter(RunStage.CLEANUP, f"Keeping staging tree {ctx.staging_root} (keep_staging)")
        else:
            self._enter(RunStage.CLEANUP, f"Removing staging tree {ctx.staging_root}")
            try:
                shutil.rmtree(ctx.staging_root)
                staging_removed = True
            except OSError as exc:
                LOGGER.warning("Could not remove staging tree %s: %s", ctx.staging_root, exc)

        # Report
        summary = AcquisitionSummary(
            archive_path=sealed.archive_path,
            integrity_path=sealed.record_path,
            transcript_path=transcript_path,
            ledger_path=ctx.ledger_path,
            digest=sealed.record.digest,
            users_scanned=self._users_scanned,
            profiles_found=self._profiles_found,
            record_count=len(ledger.records),
            failures=list(self._failures),
            staging_removed=staging_removed,
        )
        self._enter(RunStage.REPORT, "Acquisition complete")
        for line in summary.report_lines():
            LOGGER.info("%s", line)
        return summary

    def _transcript_header(self) -> List[str]:
        ctx = self.context
        try:
            operator = getpass.getuser()
        except (KeyError, OSError):
            operator = "unknown"
        lines = [
            f"BrowserCustody {get_app_version()} acquisition {ctx.run_name}",
            f"Run timestamp (UTC): {ctx.run_timestamp.isoformat()}",
            f"Operator: {operator}",
            f"Mode: {ctx.mode.value}",
            f"Users root: {ctx.users_root}",
            f"Output directory: {ctx.output_dir}",
            f"Configuration: {self.config.to_json()}",
        ]
        for label, scope in describe_catalog().items():
            lines.append(f"Scope {label} files: {', '.join(scope['files'])}")
            lines.append(f"Scope {label} directories: {', '.join(scope['directories'])}")
        return lines

    def _collect_all(self, ledger: AuditLedger, browsers: Iterable[Browser], max_workers: int) -> None:
        users = enumerate_users(self.context.users_root, self.config.acquisition.excluded_users)
        browsers = list(browsers)

        if max_workers <= 1:
            for user in users:
                self._record(ledger, self._collect_user(user, browsers))
            return

        # Each user owns a disjoint staging sub-tree; results are appended in user order
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="collect") as pool:
            futures = [pool.submit(self._collect_user, user, browsers) for user in users]
            for future in futures:
                self._record(ledger, future.result())

    def _collect_user(self, user: str, browsers: List[Browser]) -> List[CollectionResult]:
        home = self.context.users_root / user
        LOGGER.info("Scanning user %s", user)
        results = []
        for browser in browsers:
            for profile in resolve_profiles(home, browser):
                results.append(self.copier.collect(profile, spec_for(browser)))
        return results

    def _record(self, ledger: AuditLedger, results: List[CollectionResult]) -> None:
        self._users_scanned += 1
        for result in results:
            self._profiles_found += 1
            ledger.extend(result.records)
            for item in result.failures:
                self._failures.append(ItemFailure(
                    browser=result.profile.browser.value,
                    user=result.profile.user,
                    name=item.name,
                    status=item.status,
                    source=item.source,
                    error=item.error,
                ))


def run_acquisition(
    context: RunContext,
    config: AppConfig,
    *,
    step_cb: Optional[StepCallback] = None,
) -> AcquisitionSummary:
    """Execute one full acquisition; see AcquisitionOrchestrator."""
    return AcquisitionOrchestrator(context, config, step_cb=step_cb).run()
