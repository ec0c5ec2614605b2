"""Pytest fixtures for validator tests."""

from __future__ import annotations

import logging

import pytest
from helpers import FakeApi


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo ``configure_logging`` so records keep reaching pytest's handlers."""
    yield
    package_logger = logging.getLogger("openreferral_validator")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
