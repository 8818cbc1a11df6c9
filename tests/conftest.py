"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.streaming.observation import Observation
from src.streaming.pipeline import DataStreamPipeline

# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Current UTC datetime."""
    return datetime.now(UTC)


# ============================================================================
# Observation Fixtures
# ============================================================================


@pytest.fixture
def make_observation(now: datetime) -> Callable[..., Observation]:
    """Factory for observations spaced one second apart."""
    counter = {"n": 0}

    def _make(value: Any, **metadata: Any) -> Observation:
        counter["n"] += 1
        return Observation(
            value=value,
            timestamp=now + timedelta(seconds=counter["n"]),
            metadata=metadata or {"source": "test"},
        )

    return _make


@pytest.fixture
def clustered_values() -> list[float]:
    """Twenty values alternating 49/51: mean 50, population std dev 1."""
    return [49.0, 51.0] * 10


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def pipeline() -> DataStreamPipeline:
    """Empty, stopped pipeline."""
    return DataStreamPipeline(name="test-pipeline")


@pytest.fixture
def listener() -> MagicMock:
    """Callback recorder for event subscriptions."""
    return MagicMock(name="listener")
