"""
Prometheus metrics for the stream processing pipeline.

Responsibilities:
- Count observations by outcome (passed through / dropped)
- Track stage errors and detected anomalies per stage
- Track trend classifications and the latest window aggregates
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from src.streaming.events import (
    AggregateSnapshot,
    AnomalyEvent,
    ErrorEvent,
    EventKind,
    TrendEvent,
)
from src.streaming.pipeline import DataStreamPipeline
from src.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineMetrics:
    """
    Prometheus metrics fed by pipeline events.

    Call ``attach()`` to subscribe to a pipeline; the ``record_*`` methods can
    also be used directly.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        prefix: str = "stream_pipeline",
    ) -> None:
        """
        Initialize metrics.

        Args:
            registry: Prometheus registry (a fresh one if None)
            prefix: Prefix for all metric names
        """
        self._registry = registry or CollectorRegistry()
        self._prefix = prefix

        self.observations_total = Counter(
            self._metric_name("observations_total"),
            "Observations that completed a pipeline push",
            ["pipeline", "outcome"],
            registry=self._registry,
        )

        self.stage_errors_total = Counter(
            self._metric_name("stage_errors_total"),
            "Faults caught inside stages",
            ["stage", "error_type"],
            registry=self._registry,
        )

        self.anomalies_total = Counter(
            self._metric_name("anomalies_total"),
            "Anomalies flagged by detector stages",
            ["stage"],
            registry=self._registry,
        )

        self.anomaly_z_score = Histogram(
            self._metric_name("anomaly_z_score"),
            "Z-scores of flagged anomalies",
            ["stage"],
            buckets=(2.0, 2.5, 3.0, 4.0, 5.0, 7.5, 10.0, 20.0),
            registry=self._registry,
        )

        self.trends_total = Counter(
            self._metric_name("trends_total"),
            "Trend classifications",
            ["direction"],
            registry=self._registry,
        )

        self.aggregate_mean = Gauge(
            self._metric_name("aggregate_mean"),
            "Mean over the latest aggregation window",
            registry=self._registry,
        )

        self.aggregate_std_dev = Gauge(
            self._metric_name("aggregate_std_dev"),
            "Standard deviation over the latest aggregation window",
            registry=self._registry,
        )

        logger.info("Metrics initialized", prefix=prefix)

    def _metric_name(self, name: str) -> str:
        """Generate full metric name with prefix."""
        return f"{self._prefix}_{name}"

    def attach(self, pipeline: DataStreamPipeline) -> None:
        """Subscribe to a pipeline's events."""
        pipeline.on(
            EventKind.PROCESSED,
            lambda item: self.record_observation(pipeline.name, passed=item is not None),
        )
        pipeline.on(EventKind.ERROR, self.record_error)
        pipeline.on(EventKind.ANOMALY, self.record_anomaly)
        pipeline.on(EventKind.TREND, self.record_trend)
        pipeline.on(EventKind.AGGREGATION, self.record_aggregate)

    # ==========================================================================
    # Recording methods
    # ==========================================================================

    def record_observation(self, pipeline: str, passed: bool) -> None:
        outcome = "passed" if passed else "dropped"
        self.observations_total.labels(pipeline=pipeline, outcome=outcome).inc()

    def record_error(self, event: ErrorEvent) -> None:
        self.stage_errors_total.labels(
            stage=event.stage_name,
            error_type=type(event.error).__name__,
        ).inc()

    def record_anomaly(self, event: AnomalyEvent) -> None:
        self.anomalies_total.labels(stage=event.stage_name).inc()
        self.anomaly_z_score.labels(stage=event.stage_name).observe(event.z_score)

    def record_trend(self, event: TrendEvent) -> None:
        self.trends_total.labels(direction=event.direction.value).inc()

    def record_aggregate(self, snapshot: AggregateSnapshot) -> None:
        self.aggregate_mean.set(snapshot.mean)
        self.aggregate_std_dev.set(snapshot.std_dev)

    # ==========================================================================
    # Export methods
    # ==========================================================================

    def generate_metrics(self) -> bytes:
        """Generate Prometheus metrics output."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for Prometheus metrics."""
        return CONTENT_TYPE_LATEST

    def get_registry(self) -> CollectorRegistry:
        """Get the Prometheus registry."""
        return self._registry


# Global metrics instance
_metrics: PipelineMetrics | None = None


def get_metrics() -> PipelineMetrics:
    """Get the global metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = PipelineMetrics()
    return _metrics


def init_metrics(
    registry: CollectorRegistry | None = None,
    prefix: str = "stream_pipeline",
) -> PipelineMetrics:
    """Initialize the global metrics instance."""
    global _metrics
    _metrics = PipelineMetrics(registry=registry, prefix=prefix)
    return _metrics
