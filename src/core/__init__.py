"""Core run-wide services for browser artifact acquisition."""

from .config import AppConfig, load_app_config  # noqa: F401
from .enums import AcquisitionMode, ArtifactKind, Browser, CopyStatus, HashAlgorithm  # noqa: F401
from .exceptions import AcquisitionError, ConfigurationError, SealingError  # noqa: F401
from .run_context import RunContext, resolve_run_context  # noqa: F401
# NOTE: orchestrator not exported from package to avoid circular import with collectors
# Import directly: from core.orchestrator import run_acquisition
