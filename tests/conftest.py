"""Global pytest configuration."""

import logging
from datetime import datetime

import pytest

from core.enums import AcquisitionMode
from core.logging import LOGGER_NAMESPACE
from core.run_context import RunContext, resolve_run_context

pytest_plugins = ["tests.fixtures.profiles"]


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop handlers left on the application logger (transcripts, CLI console)."""
    yield
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def offline_context(image_root, output_dir, run_time: datetime) -> RunContext:
    """RunContext reading the fake image's Users directory."""
    return resolve_run_context(AcquisitionMode.OFFLINE, output_dir, image_root=image_root, now=run_time)
