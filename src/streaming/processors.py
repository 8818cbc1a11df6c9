"""
Stream processors for real-time observation processing.

Processors:
- FilterProcessor: Drop observations that fail a predicate
- TransformProcessor: Map observations to new observations
- AggregationProcessor: Windowed statistics over recent observations
- AnomalyDetector: Z-score anomaly detection over a value history
- TrendAnalyzer: Latest value against a simple moving average
"""

import inspect
import math
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from numbers import Real
from typing import Any, Protocol, runtime_checkable

from src.utils.logging import get_logger

from .events import (
    AggregateSnapshot,
    AnomalyEvent,
    ErrorEvent,
    EventEmitter,
    EventKind,
    TrendDirection,
    TrendEvent,
)
from .observation import Observation
from .window import SlidingWindow, WindowStatistics, compute_window_statistics

logger = get_logger(__name__)

# What flows between stages: an Observation, or an aggregate record once an
# AggregationProcessor has run. None means "dropped".
StreamItem = Observation | AggregateSnapshot

Predicate = Callable[[Observation], bool]
Transformer = Callable[[Observation], Observation | Awaitable[Observation]]


@dataclass(frozen=True)
class StageStats:
    """Read-only snapshot of a stage's counters."""

    name: str
    processed: int
    errors: int
    filtered: int | None = None
    anomalies: int | None = None
    anomaly_rate: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, leaving out extras the stage does not track."""
        data: dict[str, Any] = {
            "name": self.name,
            "processed": self.processed,
            "errors": self.errors,
        }
        for key in ("filtered", "anomalies", "anomaly_rate"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@runtime_checkable
class Stage(Protocol):
    """Anything a DataStreamPipeline can chain."""

    name: str
    events: EventEmitter

    async def process(self, item: StreamItem | None) -> StreamItem | None: ...

    def get_stats(self) -> StageStats: ...


class BaseProcessor(ABC):
    """
    Abstract base class for stream processors.

    Provides:
    - Null-safe processing entry point
    - Error isolation (faults become ``error`` events and a dropped item)
    - Statistics tracking
    """

    def __init__(self, name: str) -> None:
        """
        Initialize the processor.

        Args:
            name: Processor name for logging and stats
        """
        self.name = name
        self.events = EventEmitter(owner=name)
        self._processed_count = 0
        self._error_count = 0

    async def process(self, item: StreamItem | None) -> StreamItem | None:
        """
        Process a single item.

        Counts the attempt before doing any work. Never raises: a fault is
        recorded and the item is dropped by returning None.

        Args:
            item: The item to process (None passes straight through)

        Returns:
            The item for the next stage, or None to drop it
        """
        if item is None:
            return None

        self._processed_count += 1
        try:
            return await self._process(item)
        except Exception as e:
            self._handle_error(e, item)
            return None

    @abstractmethod
    async def _process(self, item: StreamItem) -> StreamItem | None:
        """Stage-specific processing."""

    def _handle_error(self, error: Exception, item: Any) -> None:
        self._error_count += 1
        logger.error(
            "Stage processing failed",
            processor=self.name,
            item_id=getattr(item, "id", None),
            error=str(error),
        )
        self.events.emit(
            EventKind.ERROR,
            ErrorEvent(error=error, observation=item, stage_name=self.name),
        )

    @property
    def processed_count(self) -> int:
        return self._processed_count

    @property
    def error_count(self) -> int:
        return self._error_count

    def get_stats(self) -> StageStats:
        """Get processor statistics."""
        return StageStats(
            name=self.name,
            processed=self._processed_count,
            errors=self._error_count,
        )


class FilterProcessor(BaseProcessor):
    """Pass observations that satisfy a predicate and drop the rest."""

    def __init__(self, name: str, predicate: Predicate) -> None:
        super().__init__(name)
        self.predicate = predicate
        self._filtered_count = 0

    async def _process(self, item: StreamItem) -> StreamItem | None:
        if self.predicate(item):
            self.events.emit(EventKind.DATA, item)
            return item

        self._filtered_count += 1
        logger.debug("Observation filtered", processor=self.name, item_id=getattr(item, "id", None))
        self.events.emit(EventKind.FILTERED, item)
        return None

    def get_stats(self) -> StageStats:
        base = super().get_stats()
        return StageStats(
            name=base.name,
            processed=base.processed,
            errors=base.errors,
            filtered=self._filtered_count,
        )


class TransformProcessor(BaseProcessor):
    """
    Map each observation through a transformer function.

    The transformer may be a plain function or a coroutine function. It should
    attach derived fields with ``Observation.with_fields`` so the result keeps
    the original id.
    """

    def __init__(self, name: str, transformer: Transformer) -> None:
        super().__init__(name)
        self.transformer = transformer

    async def _process(self, item: StreamItem) -> StreamItem | None:
        transformed = self.transformer(item)
        if inspect.isawaitable(transformed):
            transformed = await transformed

        self.events.emit(EventKind.DATA, transformed)
        return transformed


class AggregationProcessor(BaseProcessor):
    """
    Windowed statistics over the most recent observations.

    Returns an AggregateSnapshot instead of the observation, so stages chained
    after this one receive aggregate records.
    """

    def __init__(self, name: str, window_size: int = 10) -> None:
        super().__init__(name)
        self.window_size = window_size
        self._window: SlidingWindow[Observation] = SlidingWindow(window_size)

    @property
    def window(self) -> list[Observation]:
        return self._window.values

    async def _process(self, item: StreamItem) -> StreamItem | None:
        value = getattr(item, "value", None)
        if isinstance(value, bool) or not isinstance(value, Real):
            # Kept out of the window so later items are unaffected.
            raise TypeError(f"Cannot aggregate non-numeric value {value!r}")
        self._window.append(item)

        stats = compute_window_statistics(obs.value for obs in self._window)
        snapshot = AggregateSnapshot(
            count=stats.count,
            sum=stats.sum,
            mean=stats.mean,
            min=stats.min,
            max=stats.max,
            std_dev=stats.std_dev,
            timestamp=datetime.now(UTC),
        )

        self.events.emit(EventKind.AGGREGATION, snapshot)
        return snapshot


class AnomalyDetector(BaseProcessor):
    """
    Detects anomalies using the Z-score method.

    A value is anomalous if it lies more than ``threshold`` standard
    deviations from the mean of the preceding history. The baseline excludes
    the value under test, so with the default ``min_history`` of 10 the first
    check happens on the 11th observation. Observations always pass through.
    """

    def __init__(
        self,
        name: str,
        threshold: float = 3.0,
        history_size: int = 50,
        min_history: int = 10,
    ) -> None:
        """
        Args:
            name: Processor name
            threshold: Z-score threshold for anomaly detection
            history_size: Number of recent values kept as the baseline
            min_history: Minimum baseline size before detecting anomalies
        """
        super().__init__(name)
        self.threshold = threshold
        self.min_history = min_history
        self._history: SlidingWindow[float] = SlidingWindow(history_size)
        self._anomaly_count = 0

    @property
    def history(self) -> list[float]:
        return self._history.values

    @property
    def anomaly_count(self) -> int:
        return self._anomaly_count

    async def _process(self, item: StreamItem) -> StreamItem | None:
        value = float(item.value)

        if len(self._history) >= self.min_history:
            stats = compute_window_statistics(self._history)
            z_score = self._z_score(value, stats)

            if z_score is not None and z_score > self.threshold:
                self._anomaly_count += 1
                logger.warning(
                    "Anomaly detected",
                    processor=self.name,
                    item_id=item.id,
                    value=round(value, 2),
                    z_score=round(z_score, 2),
                )
                self.events.emit(
                    EventKind.ANOMALY,
                    AnomalyEvent(
                        observation=item,
                        stats=stats,
                        z_score=z_score,
                        stage_name=self.name,
                    ),
                )

        self._history.append(value)

        self.events.emit(EventKind.DATA, item)
        return item

    @staticmethod
    def _z_score(value: float, stats: WindowStatistics) -> float | None:
        # Identical history: no spread to measure against.
        if stats.std_dev == 0:
            return None
        return abs(value - stats.mean) / stats.std_dev

    def get_stats(self) -> StageStats:
        base = super().get_stats()
        rate = self._anomaly_count / base.processed * 100 if base.processed else 0.0
        return StageStats(
            name=base.name,
            processed=base.processed,
            errors=base.errors,
            anomalies=self._anomaly_count,
            anomaly_rate=rate,
        )


class TrendAnalyzer(BaseProcessor):
    """
    Classify the latest value against a simple moving average (SMA).

    The direction is ``stable`` while the latest value stays within
    ``stable_percent`` of the SMA. Observations always pass through.
    """

    def __init__(
        self,
        name: str,
        window_size: int = 20,
        min_samples: int = 5,
        stable_percent: float = 5.0,
    ) -> None:
        super().__init__(name)
        self.window_size = window_size
        self.min_samples = min_samples
        self.stable_percent = stable_percent
        self._values: SlidingWindow[float] = SlidingWindow(window_size)

    @property
    def values(self) -> list[float]:
        return self._values.values

    async def _process(self, item: StreamItem) -> StreamItem | None:
        self._values.append(float(item.value))

        if len(self._values) >= self.min_samples:
            self.events.emit(EventKind.TREND, self._analyze_trend())

        self.events.emit(EventKind.DATA, item)
        return item

    def _analyze_trend(self) -> TrendEvent:
        sma = compute_window_statistics(self._values).mean
        latest = self._values.latest
        diff = latest - sma

        if sma == 0 or not math.isfinite(sma):
            # Percent change is undefined against a zero or non-finite average.
            diff_percent = 0.0
            direction = TrendDirection.STABLE
        else:
            diff_percent = diff / sma * 100
            if abs(diff_percent) <= self.stable_percent:
                direction = TrendDirection.STABLE
            elif diff > 0:
                direction = TrendDirection.UPWARD
            else:
                direction = TrendDirection.DOWNWARD

        return TrendEvent(
            sma=sma,
            latest=latest,
            diff=diff,
            diff_percent=diff_percent,
            direction=direction,
            timestamp=datetime.now(UTC),
        )
