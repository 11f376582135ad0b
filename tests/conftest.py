"""Shared fixtures for kubedoctor tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from structlog.testing import capture_logs


@pytest.fixture(autouse=True)
def log_events() -> Iterator[list[dict[str, Any]]]:
    """Capture structlog output so tests can assert on events and nothing reaches stdout."""
    with capture_logs() as captured:
        yield captured
