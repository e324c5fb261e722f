"""Tests for src/core/enums.py - Core enumerations."""

import pytest

from core.enums import (
    AcquisitionMode,
    ArtifactKind,
    Browser,
    BrowserEngine,
    CopyStatus,
    HashAlgorithm,
    RunStage,
)


class TestBrowser:
    """Tests for Browser enum."""

    def test_browser_values(self):
        """Verify browser string values match expected keys."""
        assert Browser.CHROME == "chrome"
        assert Browser.EDGE == "edge"
        assert Browser.BRAVE == "brave"
        assert Browser.FIREFOX == "firefox"

    def test_chromium_browsers(self):
        """Verify chromium browser subset."""
        chromium = Browser.chromium_browsers()
        assert Browser.CHROME in chromium
        assert Browser.EDGE in chromium
        assert Browser.BRAVE in chromium
        assert Browser.FIREFOX not in chromium

    def test_all_browsers(self):
        assert set(Browser.all_browsers()) == set(Browser)

    def test_string_serialization(self):
        assert str(Browser.FIREFOX) == "firefox"
        assert f"{Browser.EDGE}" == "edge"


class TestArtifactKind:
    def test_ledger_values(self):
        """ArtifactType column values are capitalized words."""
        assert str(ArtifactKind.FILE) == "File"
        assert str(ArtifactKind.DIRECTORY) == "Directory"


class TestHashAlgorithm:
    @pytest.mark.parametrize("alg,label", [
        (HashAlgorithm.SHA256, "SHA256"),
        (HashAlgorithm.SHA384, "SHA384"),
        (HashAlgorithm.SHA512, "SHA512"),
    ])
    def test_label(self, alg, label):
        assert alg.label == label

    def test_from_value(self):
        assert HashAlgorithm("sha256") is HashAlgorithm.SHA256

    def test_rejects_weak_algorithms(self):
        with pytest.raises(ValueError):
            HashAlgorithm("md5")


class TestRunStage:
    def test_stages_are_linear(self):
        assert RunStage.ordered() == (
            RunStage.INIT,
            RunStage.MODE_SELECT,
            RunStage.COLLECT,
            RunStage.FINALIZE_LEDGER,
            RunStage.SEAL,
            RunStage.CLEANUP,
            RunStage.REPORT,
        )


def test_misc_enum_values():
    assert BrowserEngine.GECKO == "gecko"
    assert AcquisitionMode.OFFLINE == "offline"
    assert CopyStatus.PARTIAL == "partial"
