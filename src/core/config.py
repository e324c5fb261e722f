from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft202012Validator

from .enums import Browser, HashAlgorithm
from .exceptions import ConfigurationError
from .logging import get_logger

LOGGER = get_logger("core.config")

DEFAULT_EXCLUDED_USERS = ("Public", "Default", "Default User", "All Users")
DEFAULT_ARCHIVE_PREFIX = "BrowserArtifacts"
MAX_WORKERS_ENV = "BROWSERCUSTODY_MAX_WORKERS"

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
                "app_log_max_mb": {"type": "integer", "minimum": 1},
                "app_log_backup_count": {"type": "integer", "minimum": 0},
            },
        },
        "acquisition": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "live_users_root": {"type": "string", "minLength": 1},
                "excluded_users": {"type": "array", "items": {"type": "string"}},
                "browsers": {
                    "type": "array",
                    "items": {"enum": [b.value for b in Browser]},
                    "uniqueItems": True,
                },
                "hash_algorithm": {"enum": [h.value for h in HashAlgorithm]},
                "max_workers": {"type": "integer", "minimum": 1},
                "keep_staging": {"type": "boolean"},
                "archive_prefix": {"type": "string", "pattern": "^[A-Za-z0-9_.-]+$"},
            },
        },
    },
}


def default_live_users_root() -> str:
    """Return the live system's users directory (%SystemDrive%\\Users)."""
    return os.environ.get("SystemDrive", "C:") + "\\Users"


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    app_log_max_mb: int = 50
    app_log_backup_count: int = 10


@dataclass(slots=True)
class AcquisitionConfig:
    """Acquisition configuration from config.yml."""

    live_users_root: str = field(default_factory=default_live_users_root)
    excluded_users: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_USERS))
    browsers: List[Browser] = field(default_factory=lambda: list(Browser.all_browsers()))
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    max_workers: int = 1
    keep_staging: bool = False
    archive_prefix: str = DEFAULT_ARCHIVE_PREFIX

    def __post_init__(self) -> None:
        # Respect environment variable override
        if MAX_WORKERS_ENV in os.environ:
            try:
                workers = int(os.environ[MAX_WORKERS_ENV])
            except ValueError:
                LOGGER.warning("Ignoring non-integer %s=%r", MAX_WORKERS_ENV, os.environ[MAX_WORKERS_ENV])
            else:
                if workers >= 1:
                    self.max_workers = workers


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    source_path: Optional[Path] = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for the run transcript."""
        acq = self.acquisition
        data = {
            "source_path": str(self.source_path) if self.source_path else None,
            "logging": {"level": self.logging.level},
            "acquisition": {
                "live_users_root": acq.live_users_root,
                "excluded_users": list(acq.excluded_users),
                "browsers": [str(b) for b in acq.browsers],
                "hash_algorithm": str(acq.hash_algorithm),
                "max_workers": acq.max_workers,
                "keep_staging": acq.keep_staging,
                "archive_prefix": acq.archive_prefix,
            },
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping at the top level.")
        return content


def validate_config_document(document: Dict[str, Any]) -> List[str]:
    """Return human-readable schema violations (empty when valid)."""
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(document), key=lambda e: list(e.path)):
        path = "/".join(str(p) for p in error.path)
        pointer = f"{path}: " if path else ""
        errors.append(f"{pointer}{error.message}")
    return errors


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration from disk, providing sensible defaults."""

    overrides: Dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        overrides = _load_yaml(config_path)

    errors = validate_config_document(overrides)
    if errors:
        LOGGER.error("Config validation failed: %s", " | ".join(errors))
        raise ConfigurationError(" | ".join(errors))

    logging_cfg = overrides.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_cfg.get("level", "INFO"),
        app_log_max_mb=logging_cfg.get("app_log_max_mb", 50),
        app_log_backup_count=logging_cfg.get("app_log_backup_count", 10),
    )

    acq_cfg = overrides.get("acquisition", {})
    acquisition_config = AcquisitionConfig(
        live_users_root=acq_cfg.get("live_users_root", default_live_users_root()),
        excluded_users=list(acq_cfg.get("excluded_users", DEFAULT_EXCLUDED_USERS)),
        browsers=[Browser(b) for b in acq_cfg.get("browsers", Browser.all_browsers())],
        hash_algorithm=HashAlgorithm(acq_cfg.get("hash_algorithm", HashAlgorithm.SHA256)),
        max_workers=acq_cfg.get("max_workers", 1),
        keep_staging=acq_cfg.get("keep_staging", False),
        archive_prefix=acq_cfg.get("archive_prefix", DEFAULT_ARCHIVE_PREFIX),
    )

    return AppConfig(
        source_path=config_path,
        logging=logging_config,
        acquisition=acquisition_config,
    )
