"""Shared test configuration."""

import pytest

from pods_schema.cli import configure_logging


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> None:
    """Keep debug log lines out of captured command output."""
    configure_logging("critical")
