"""Tests for YAML configuration loading and schema validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.config import (
    DEFAULT_ARCHIVE_PREFIX,
    DEFAULT_EXCLUDED_USERS,
    MAX_WORKERS_ENV,
    AcquisitionConfig,
    load_app_config,
    validate_config_document,
)
from core.enums import Browser, HashAlgorithm
from core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clear_worker_override(monkeypatch):
    monkeypatch.delenv(MAX_WORKERS_ENV, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_no_file_gives_defaults(self):
        config = load_app_config()
        acq = config.acquisition
        assert config.source_path is None
        assert config.logging.level == "INFO"
        assert acq.excluded_users == list(DEFAULT_EXCLUDED_USERS)
        assert acq.browsers == list(Browser.all_browsers())
        assert acq.hash_algorithm is HashAlgorithm.SHA256
        assert acq.max_workers == 1
        assert acq.keep_staging is False
        assert acq.archive_prefix == DEFAULT_ARCHIVE_PREFIX

    def test_live_users_root_uses_system_drive(self, monkeypatch):
        monkeypatch.setenv("SystemDrive", "D:")
        assert AcquisitionConfig().live_users_root == "D:\\Users"

    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_app_config(_write(tmp_path, ""))
        assert config.acquisition.max_workers == 1


class TestLoading:
    def test_overrides_applied(self, tmp_path):
        path = _write(tmp_path, (
            "logging:\n"
            "  level: DEBUG\n"
            "acquisition:\n"
            "  excluded_users: [Guest]\n"
            "  browsers: [firefox, chrome]\n"
            "  hash_algorithm: sha512\n"
            "  max_workers: 4\n"
            "  keep_staging: true\n"
            "  archive_prefix: Case42\n"
        ))
        config = load_app_config(path)
        acq = config.acquisition
        assert config.source_path == path
        assert config.logging.level == "DEBUG"
        assert acq.excluded_users == ["Guest"]
        assert acq.browsers == [Browser.FIREFOX, Browser.CHROME]
        assert acq.hash_algorithm is HashAlgorithm.SHA512
        assert acq.max_workers == 4
        assert acq.keep_staging is True
        assert acq.archive_prefix == "Case42"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_app_config(tmp_path / "absent.yml")

    def test_non_mapping_document_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="mapping"):
            load_app_config(_write(tmp_path, "- just\n- a list\n"))

    def test_unknown_key_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_app_config(_write(tmp_path, "acquisition:\n  compress_level: 9\n"))

    def test_weak_hash_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError, match="hash_algorithm"):
            load_app_config(_write(tmp_path, "acquisition:\n  hash_algorithm: md5\n"))


class TestValidateDocument:
    def test_valid_document_has_no_errors(self):
        assert validate_config_document({"acquisition": {"max_workers": 2}}) == []

    def test_errors_carry_path(self):
        errors = validate_config_document({"acquisition": {"max_workers": 0}})
        assert len(errors) == 1
        assert errors[0].startswith("acquisition/max_workers: ")

    def test_unsafe_archive_prefix(self):
        assert validate_config_document({"acquisition": {"archive_prefix": "../evil"}})


class TestWorkerOverride:
    def test_env_overrides_max_workers(self, monkeypatch):
        monkeypatch.setenv(MAX_WORKERS_ENV, "3")
        assert AcquisitionConfig().max_workers == 3

    def test_invalid_env_ignored(self, monkeypatch):
        monkeypatch.setenv(MAX_WORKERS_ENV, "many")
        assert AcquisitionConfig().max_workers == 1

    def test_non_positive_env_ignored(self, monkeypatch):
        monkeypatch.setenv(MAX_WORKERS_ENV, "0")
        assert AcquisitionConfig(max_workers=2).max_workers == 2


def test_to_json_round_trips_through_json():
    data = json.loads(load_app_config().to_json())
    assert data["acquisition"]["hash_algorithm"] == "sha256"
    assert "firefox" in data["acquisition"]["browsers"]
    assert data["source_path"] is None
