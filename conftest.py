from datetime import datetime, timezone
from pathlib import Path

import pytest


@pytest.fixture()
def image_root(tmp_path: Path) -> Path:
    """Create a minimal mounted-image root with an empty Users directory."""
    root = tmp_path / "image"
    (root / "Users").mkdir(parents=True)
    return root


@pytest.fixture()
def output_dir(tmp_path: Path) -> Path:
    """Output root that receives archive, integrity record, transcript and ledger."""
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture()
def run_time() -> datetime:
    return datetime(2026, 10, 18, 10, 15, 0, tzinfo=timezone.utc)
