"""Shared test fixtures for errorkit."""

from __future__ import annotations

import pytest

from errorkit.config import ErrorKitConfig
from errorkit.models import ErrorRecord
from errorkit.registry import ErrorRegistry


class RecordingSink:
    """Log sink that keeps every record it is given."""

    def __init__(self) -> None:
        self.records: list[ErrorRecord] = []
        self.errors: list[BaseException] = []

    def write(self, record: ErrorRecord, error: BaseException) -> None:
        self.records.append(record)
        self.errors.append(error)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def registry() -> ErrorRegistry:
    return ErrorRegistry()


@pytest.fixture
def config() -> ErrorKitConfig:
    """Explicit config so ERRORKIT_* variables in the environment don't leak in."""
    return ErrorKitConfig(
        dedupe_enabled=True,
        dedupe_max_entries=128,
        default_level="error",
        service_name="tests",
        debug=False,
        webhook_url=None,
    )
