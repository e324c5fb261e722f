"""
Exceptions for the acquisition pipeline.

Expected absence (browser not installed, file not present) and per-item copy
failures are reported as results, never raised. Only conditions that must stop
a run live here.
"""


class AcquisitionError(Exception):
    """Base exception for acquisition errors."""
    pass


class ConfigurationError(AcquisitionError):
    """Raised when run configuration is invalid."""
    pass


class TranscriptError(AcquisitionError):
    """Raised when the run transcript is used out of order."""
    pass


class SealingError(AcquisitionError):
    """Raised when the evidence archive cannot be compressed or hashed."""

    def __init__(self, message: str, staging_root=None):
        self.staging_root = staging_root
        super().__init__(message)
