"""Shared fixtures for the dscd test suite."""

import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path: Path, mocker: MagicMock) -> Any:
    """Keeps the user's config file out of tests and resets log handlers."""
    mocker.patch("dscd.config.CONFIG_FILE", tmp_path / "no-such-config.toml")
    yield
    logger = logging.getLogger("dscd")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
