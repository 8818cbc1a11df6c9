"""
Wiring for the reference pipeline.

Builds the standard processing chain, connects its events to a
ResultExporter and drives a data source through it.
"""

import asyncio
from collections.abc import Iterable

from config.settings import PipelineSettings, get_settings
from src.utils.logging import get_logger, log_context

from .events import (
    AggregateSnapshot,
    AnomalyEvent,
    ErrorEvent,
    EventKind,
    TrendDirection,
    TrendEvent,
)
from .exporter import ResultExporter
from .observation import Observation
from .pipeline import DataStreamPipeline
from .processors import (
    AggregationProcessor,
    AnomalyDetector,
    FilterProcessor,
    StageStats,
    TransformProcessor,
    TrendAnalyzer,
)

logger = get_logger(__name__)


def build_pipeline(settings: PipelineSettings | None = None) -> DataStreamPipeline:
    """
    Build the reference chain.

    valid-value filter -> normalizer -> anomaly detector -> trend analyzer -> aggregation
    """
    if settings is None:
        settings = get_settings().pipeline
    divisor = settings.normalization_divisor

    def normalize(obs: Observation) -> Observation:
        return obs.with_fields(normalized_value=obs.value / divisor)

    return (
        DataStreamPipeline()
        .add_stage(FilterProcessor("valid-value-filter", lambda obs: obs.is_valid()))
        .add_stage(TransformProcessor("normalizer", normalize))
        .add_stage(
            AnomalyDetector(
                "anomaly-detector",
                threshold=settings.anomaly_threshold,
                history_size=settings.anomaly_history,
                min_history=settings.anomaly_min_history,
            )
        )
        .add_stage(
            TrendAnalyzer(
                "trend-analyzer",
                window_size=settings.trend_window,
                min_samples=settings.trend_min_samples,
                stable_percent=settings.trend_stable_percent,
            )
        )
        .add_stage(AggregationProcessor("aggregator", window_size=settings.aggregation_window))
    )


def wire_exporter(
    pipeline: DataStreamPipeline,
    exporter: ResultExporter,
    aggregate_log_every: int = 20,
) -> None:
    """Route pipeline findings to the exporter and the log."""

    def on_anomaly(event: AnomalyEvent) -> None:
        exporter.add_result("anomaly", event)

    def on_trend(event: TrendEvent) -> None:
        if event.direction is TrendDirection.STABLE:
            return
        logger.info(
            "Trend detected",
            direction=event.direction.value,
            diff_percent=f"{event.diff_percent:.2f}%",
        )
        exporter.add_result("trend", event)

    def on_aggregation(snapshot: AggregateSnapshot) -> None:
        if snapshot.count % aggregate_log_every == 0:
            logger.info(
                "Aggregation",
                mean=round(snapshot.mean, 2),
                std_dev=round(snapshot.std_dev, 2),
                count=snapshot.count,
            )

    def on_error(event: ErrorEvent) -> None:
        logger.error("Processor error", stage=event.stage_name, error=str(event.error))

    pipeline.on(EventKind.ANOMALY, on_anomaly)
    pipeline.on(EventKind.TREND, on_trend)
    pipeline.on(EventKind.AGGREGATION, on_aggregation)
    pipeline.on(EventKind.ERROR, on_error)


async def run_stream(
    pipeline: DataStreamPipeline,
    source: Iterable[Observation],
    interval_seconds: float = 0.0,
    progress_every: int = 10,
    total: int | None = None,
) -> int:
    """
    Push every item from ``source`` through the pipeline.

    The pipeline is started before the first item and stopped afterwards,
    even if the source raises.

    Returns:
        Number of items pushed
    """
    pushed = 0
    pipeline.start()
    try:
        with log_context(pipeline=pipeline.name):
            for observation in source:
                await pipeline.push(observation)
                pushed += 1

                if progress_every and pushed % progress_every == 0:
                    logger.info("Progress", processed=pushed, total=total)

                if interval_seconds > 0:
                    await asyncio.sleep(interval_seconds)
    finally:
        pipeline.stop()

    return pushed


def format_stats(stats: list[StageStats]) -> str:
    """Render stage statistics as a text report."""
    rule = "=" * 70
    lines = [rule, "Pipeline statistics", rule]

    for index, stage in enumerate(stats, start=1):
        lines.append(f"\n[{index}. {stage.name}]")
        for key, value in stage.to_dict().items():
            if key == "name":
                continue
            if key == "anomaly_rate":
                value = f"{value:.2f}%"
            lines.append(f"  {key}: {value}")

    lines.append(rule)
    return "\n".join(lines)
