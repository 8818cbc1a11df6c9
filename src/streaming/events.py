"""
Event registry and event payloads.

Every stage and every pipeline owns its own EventEmitter. A pipeline bubbles
stage events by re-emitting them on its own emitter; there is no global bus.
"""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from src.utils.logging import get_logger

from .window import WindowStatistics

if TYPE_CHECKING:
    from .observation import Observation

logger = get_logger(__name__)

EventCallback = Callable[[Any], None]


class EventKind(str, Enum):
    """Names of the events published by stages and pipelines."""

    DATA = "data"
    FILTERED = "filtered"
    AGGREGATION = "aggregation"
    ANOMALY = "anomaly"
    TREND = "trend"
    ERROR = "error"
    PROCESSED = "processed"
    START = "start"
    STOP = "stop"


class EventEmitter:
    """
    Observer registry mapping an event kind to an ordered list of callbacks.

    Callbacks run synchronously, in registration order, inside ``emit()``.
    A failing callback is logged and does not prevent the others from running.
    """

    def __init__(self, owner: str = "") -> None:
        self._owner = owner
        self._listeners: dict[EventKind, list[EventCallback]] = defaultdict(list)

    def on(self, kind: EventKind | str, callback: EventCallback) -> EventCallback:
        """Register a callback for an event kind and return it."""
        self._listeners[EventKind(kind)].append(callback)
        return callback

    def off(self, kind: EventKind | str, callback: EventCallback) -> bool:
        """Remove a callback. Returns False if it was not registered."""
        listeners = self._listeners.get(EventKind(kind), [])
        if callback in listeners:
            listeners.remove(callback)
            return True
        return False

    def emit(self, kind: EventKind | str, data: Any = None) -> int:
        """
        Publish an event.

        Returns:
            Number of callbacks invoked
        """
        kind = EventKind(kind)
        listeners = list(self._listeners.get(kind, ()))
        for callback in listeners:
            try:
                callback(data)
            except Exception as e:
                logger.error(
                    "Event callback error",
                    owner=self._owner,
                    kind=kind.value,
                    callback=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                )
        return len(listeners)

    def listener_count(self, kind: EventKind | str) -> int:
        return len(self._listeners.get(EventKind(kind), ()))


# =============================================================================
# Event payloads
# =============================================================================


@dataclass(frozen=True)
class AggregateSnapshot:
    """Window statistics produced by an aggregation stage."""

    count: int
    sum: float
    mean: float
    min: float
    max: float
    std_dev: float
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "sum": self.sum,
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "std_dev": self.std_dev,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class AnomalyEvent:
    """An observation whose Z-score exceeded the detector threshold."""

    observation: "Observation"
    stats: WindowStatistics
    z_score: float
    stage_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "observation": self.observation.to_dict(),
            "stats": {
                "mean": self.stats.mean,
                "std_dev": self.stats.std_dev,
                "count": self.stats.count,
            },
            "z_score": self.z_score,
            "stage_name": self.stage_name,
        }


class TrendDirection(str, Enum):
    """Direction of the latest value relative to the moving average."""

    UPWARD = "upward"
    DOWNWARD = "downward"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendEvent:
    """Latest value compared against the simple moving average."""

    sma: float
    latest: float
    diff: float
    diff_percent: float
    direction: TrendDirection
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "sma": self.sma,
            "latest": self.latest,
            "diff": self.diff,
            "diff_percent": self.diff_percent,
            "direction": self.direction.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ErrorEvent:
    """A fault caught inside a stage."""

    error: Exception
    observation: Any
    stage_name: str

    def to_dict(self) -> dict[str, Any]:
        observation = self.observation
        if hasattr(observation, "to_dict"):
            observation = observation.to_dict()
        return {
            "error": str(self.error),
            "error_type": type(self.error).__name__,
            "observation": observation,
            "stage_name": self.stage_name,
        }
