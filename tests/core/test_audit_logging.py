"""
Unit tests for the chain-of-custody audit ledger and run transcript.

Tests cover:
- AuditRecord row rendering and UTC timestamps
- AuditLedger header, ordering, flushing and lifecycle
- read_ledger header validation
- Transcript capture, relocation and misuse errors
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from core.audit_logging import (
    LEDGER_COLUMNS,
    AuditLedger,
    AuditRecord,
    Transcript,
    read_ledger,
)
from core.enums import ArtifactKind
from core.exceptions import TranscriptError
from core.logging import get_logger


def _record(index: int = 0, kind: ArtifactKind = ArtifactKind.FILE) -> AuditRecord:
    return AuditRecord(
        timestamp=datetime(2026, 10, 18, 10, 15, index, tzinfo=timezone.utc),
        browser="Chrome",
        user="alice",
        kind=kind,
        source=Path(f"/img/Users/alice/History{index}"),
        destination=Path(f"/out/stage/Chrome/alice/History{index}"),
    )


class TestAuditRecord:
    def test_row_in_column_order(self):
        row = _record(5).to_row()
        assert row == [
            "2026-10-18 10:15:05",
            "Chrome",
            "alice",
            "File",
            str(Path("/img/Users/alice/History5")),
            str(Path("/out/stage/Chrome/alice/History5")),
        ]

    def test_timestamp_rendered_in_utc(self):
        record = AuditRecord(
            timestamp=datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone(timedelta(hours=2))),
            browser="Edge",
            user="bob",
            kind=ArtifactKind.DIRECTORY,
            source=Path("s"),
            destination=Path("d"),
        )
        assert record.to_row()[0] == "2026-10-18 10:00:00"
        assert record.to_row()[3] == "Directory"


class TestAuditLedger:
    def test_header_written_on_open(self, tmp_path):
        path = tmp_path / "collection_summary.csv"
        with AuditLedger(path):
            pass
        assert path.read_text(encoding="utf-8").splitlines() == [",".join(LEDGER_COLUMNS)]
        assert read_ledger(path) == []

    def test_rows_in_emission_order(self, tmp_path):
        path = tmp_path / "ledger.csv"
        with AuditLedger(path) as ledger:
            ledger.append(_record(0))
            ledger.extend([_record(1), _record(2, ArtifactKind.DIRECTORY)])
            assert len(ledger.records) == 3

        rows = read_ledger(path)
        assert [row["Timestamp"][-2:] for row in rows] == ["00", "01", "02"]
        assert rows[2]["ArtifactType"] == "Directory"

    def test_rows_flushed_immediately(self, tmp_path):
        path = tmp_path / "ledger.csv"
        ledger = AuditLedger(path).open()
        try:
            ledger.append(_record(0))
            # Readable while still open
            assert len(read_ledger(path)) == 1
        finally:
            ledger.close()

    def test_paths_with_commas_survive(self, tmp_path):
        path = tmp_path / "ledger.csv"
        record = AuditRecord(
            timestamp=datetime(2026, 10, 18, tzinfo=timezone.utc),
            browser="Chrome",
            user="Smith, John",
            kind=ArtifactKind.FILE,
            source=Path("/Users/Smith, John/Login Data"),
            destination=Path("/stage/Chrome/Smith, John/Login Data"),
        )
        with AuditLedger(path) as ledger:
            ledger.append(record)
        row = read_ledger(path)[0]
        assert row["User"] == "Smith, John"
        assert row["SourcePath"] == str(record.source)

    def test_append_after_close_raises(self, tmp_path):
        ledger = AuditLedger(tmp_path / "ledger.csv").open()
        ledger.close()
        assert not ledger.is_open
        with pytest.raises(RuntimeError):
            ledger.append(_record())

    def test_close_is_idempotent(self, tmp_path):
        ledger = AuditLedger(tmp_path / "ledger.csv").open()
        ledger.close()
        ledger.close()

    def test_concurrent_appends_are_all_written(self, tmp_path):
        path = tmp_path / "ledger.csv"
        with AuditLedger(path) as ledger:
            threads = [
                threading.Thread(target=ledger.extend, args=([_record(i % 60) for i in range(25)],))
                for _ in range(4)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
        assert len(read_ledger(path)) == 100

    def test_read_ledger_rejects_foreign_csv(self, tmp_path):
        path = tmp_path / "other.csv"
        path.write_text("a,b,c\n1,2,3\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unexpected ledger header"):
            read_ledger(path)


class TestTranscript:
    def test_captures_namespace_messages(self, tmp_path):
        transcript = Transcript(tmp_path / "staging" / "collection_log.txt")
        transcript.start(header_lines=["Mode: offline", "Users root: /img/Users"])
        get_logger("collectors.copier").info("Copied file %s", "History")
        get_logger("collectors.copier").debug("not captured at INFO")
        final = transcript.finalize(tmp_path / "collection_log.txt")

        assert final == tmp_path / "collection_log.txt"
        assert transcript.final_path == final
        assert not (tmp_path / "staging" / "collection_log.txt").exists()
        text = final.read_text(encoding="utf-8")
        assert "Mode: offline" in text
        assert "Copied file History" in text
        assert "not captured" not in text
        assert "browsercustody.collectors.copier" in text

    def test_messages_after_finalize_not_captured(self, tmp_path):
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start()
        final = transcript.finalize(tmp_path / "final" / "t.txt")
        get_logger("core.sealing").info("sealing happens later")
        assert "sealing happens later" not in final.read_text(encoding="utf-8")

    def test_append_outcome_after_finalize(self, tmp_path):
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start(header_lines=["Mode: offline"])
        final = transcript.finalize(tmp_path / "final" / "t.txt")
        transcript.append_outcome(logging.ERROR, "Sealing failed: %s", "disk full")

        lines = final.read_text(encoding="utf-8").splitlines()
        assert "Mode: offline" in lines[1]
        assert "Sealing failed: disk full" in lines[-1]
        assert "ERROR" in lines[-1]

    def test_append_outcome_before_finalize_raises(self, tmp_path):
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start()
        with pytest.raises(TranscriptError):
            transcript.append_outcome(logging.INFO, "Archive sealed")
        transcript.finalize(tmp_path / "t2.txt")

    def test_restores_logger_level(self, tmp_path):
        namespace = get_logger()
        namespace.setLevel(logging.WARNING)
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start()
        assert namespace.level == logging.INFO
        transcript.finalize(tmp_path / "t2.txt")
        assert namespace.level == logging.WARNING
        assert transcript.active is False

    def test_start_twice_raises(self, tmp_path):
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start()
        with pytest.raises(TranscriptError):
            transcript.start()
        transcript.finalize(tmp_path / "t2.txt")

    def test_finalize_without_start_raises(self, tmp_path):
        with pytest.raises(TranscriptError):
            Transcript(tmp_path / "t.txt").finalize(tmp_path / "t2.txt")

    def test_restart_after_finalize_raises(self, tmp_path):
        transcript = Transcript(tmp_path / "t.txt")
        transcript.start()
        transcript.finalize(tmp_path / "t2.txt")
        with pytest.raises(TranscriptError):
            transcript.start()
