"""Application version helpers sourced from ``pyproject.toml``."""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata
from pathlib import Path
import re

DISTRIBUTION_NAME = "browser-custody"


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the project version from ``pyproject.toml`` (or installed metadata)."""
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        content = pyproject_path.read_text(encoding="utf-8")
    except OSError:
        try:
            return metadata.version(DISTRIBUTION_NAME)
        except metadata.PackageNotFoundError:
            return "0.0.0"

    match = re.search(r'^\s*version\s*=\s*"([^"]+)"\s*$', content, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"
