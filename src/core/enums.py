"""
Core Enumerations

Centralized enum definitions for consistent typing across the codebase.
Using StrEnum (Python 3.11+) for string-based enums that serialize naturally.
"""

from enum import StrEnum


class Browser(StrEnum):
    """Supported browser identifiers matching BROWSER_LAYOUTS keys."""

    CHROME = "chrome"
    EDGE = "edge"
    BRAVE = "brave"
    FIREFOX = "firefox"

    @classmethod
    def chromium_browsers(cls) -> tuple["Browser", ...]:
        """Return browsers using Chromium engine (shared profile layout)."""
        return (cls.CHROME, cls.EDGE, cls.BRAVE)

    @classmethod
    def all_browsers(cls) -> tuple["Browser", ...]:
        """Return all supported browsers."""
        return tuple(cls)


class BrowserEngine(StrEnum):
    """Browser rendering engine types."""

    CHROMIUM = "chromium"
    GECKO = "gecko"      # Firefox


class ArtifactKind(StrEnum):
    """Kind of staged artifact, written verbatim to the ledger ArtifactType column."""

    FILE = "File"
    DIRECTORY = "Directory"


class CopyStatus(StrEnum):
    """Outcome of a single catalog item copy."""

    COPIED = "copied"
    PARTIAL = "partial"  # Directory staged, some members could not be read
    MISSING = "missing"  # Not present in the profile (expected absence)
    FAILED = "failed"    # Present but could not be copied (locked, denied)


class AcquisitionMode(StrEnum):
    """Where the users root comes from."""

    LIVE = "live"        # Running system's own filesystem
    OFFLINE = "offline"  # Mounted forensic image


class HashAlgorithm(StrEnum):
    """Digest algorithms accepted for sealing (SHA-256 or stronger)."""

    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @property
    def label(self) -> str:
        """Upper-case label used in integrity records (e.g. SHA256)."""
        return self.value.upper()


class RunStage(StrEnum):
    """Linear acquisition stages, in execution order."""

    INIT = "init"
    MODE_SELECT = "mode_select"
    COLLECT = "collect"
    FINALIZE_LEDGER = "finalize_ledger"
    SEAL = "seal"
    CLEANUP = "cleanup"
    REPORT = "report"

    @classmethod
    def ordered(cls) -> tuple["RunStage", ...]:
        return tuple(cls)
