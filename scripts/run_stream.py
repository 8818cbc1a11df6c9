#!/usr/bin/env python3
"""
Run the reference stream processing pipeline on synthetic data.

This script:
- Generates a drifting, noisy stream with occasional spikes
- Pushes it through filter, normalize, anomaly, trend and aggregation stages
- Prints per-stage statistics
- Saves anomalies and non-stable trends to a JSON file
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import get_settings  # noqa: E402
from src.monitoring.metrics import PipelineMetrics  # noqa: E402
from src.streaming.exporter import ResultExporter  # noqa: E402
from src.streaming.generator import DataGenerator  # noqa: E402
from src.streaming.runner import (  # noqa: E402
    build_pipeline,
    format_stats,
    run_stream,
    wire_exporter,
)
from src.utils.logging import get_logger, setup_logging  # noqa: E402


async def main(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(level=args.log_level)
    logger = get_logger("run_stream")

    pipeline = build_pipeline(settings.pipeline)
    exporter = ResultExporter(args.output)
    wire_exporter(pipeline, exporter, settings.pipeline.aggregate_log_every)

    metrics = None
    if args.metrics_output:
        metrics = PipelineMetrics()
        metrics.attach(pipeline)

    gen = settings.generator
    generator = DataGenerator(
        base_value=gen.base_value,
        volatility=gen.volatility,
        trend_rate=gen.trend_rate,
        anomaly_probability=gen.anomaly_probability,
        seed=args.seed,
    )

    logger.info("Stream processing started", count=args.count)
    await run_stream(
        pipeline,
        generator.stream(args.count),
        interval_seconds=args.interval_ms / 1000,
        total=args.count,
    )

    print(format_stats(pipeline.get_stats()))

    saved = await exporter.save()

    if metrics is not None:
        args.metrics_output.write_bytes(metrics.generate_metrics())
        logger.info("Metrics written", path=str(args.metrics_output))

    return 0 if saved else 1


def parse_args() -> argparse.Namespace:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the stream processing pipeline")
    parser.add_argument(
        "--count",
        type=int,
        default=settings.generator.count,
        help="Number of observations to generate",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=settings.generator.interval_ms,
        help="Delay between observations in milliseconds",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.export.output_path,
        help="JSON file for exported results",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=settings.generator.seed,
        help="Random seed for reproducible streams",
    )
    parser.add_argument(
        "--metrics-output",
        type=Path,
        default=settings.export.metrics_path,
        help="Write Prometheus metrics to this file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
    )
    return parser.parse_args()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(parse_args())))
