"""
Phase 5 Tests: Data Source, Exporter and Runner

Tests for:
- Synthetic data generator
- JSON result exporter
- Reference pipeline wiring and the stream driver
"""

import json
from datetime import UTC, datetime
from itertools import islice

import pytest

from config.settings import PipelineSettings
from src.streaming.events import EventKind, TrendDirection, TrendEvent
from src.streaming.exceptions import NotRunningError
from src.streaming.exporter import ResultExporter, serialize_results
from src.streaming.generator import DataGenerator
from src.streaming.observation import Observation
from src.streaming.processors import (
    AggregationProcessor,
    AnomalyDetector,
    FilterProcessor,
    StageStats,
    TransformProcessor,
    TrendAnalyzer,
)
from src.streaming.runner import build_pipeline, format_stats, run_stream, wire_exporter


class TestDataGenerator:
    """Test DataGenerator."""

    def test_stream_count(self):
        generator = DataGenerator(seed=1)

        observations = list(generator.stream(25))

        assert len(observations) == 25
        assert all(isinstance(obs, Observation) for obs in observations)
        assert all(obs.is_valid() for obs in observations)

    def test_infinite_stream_is_lazy(self):
        generator = DataGenerator(seed=1)

        assert len(list(islice(generator.stream(), 5))) == 5

    def test_metadata(self):
        obs = DataGenerator(volatility=15, trend_rate=0.2, seed=3).generate()

        assert obs.metadata == {"source": "generator", "trend": 0.2, "volatility": 15}

    def test_seed_reproducible(self):
        first = [obs.value for obs in DataGenerator(seed=42).stream(10)]
        second = [obs.value for obs in DataGenerator(seed=42).stream(10)]

        assert first == second

    def test_noise_bounds_without_spikes(self):
        """Test values stay within half the volatility of the drifting level."""
        generator = DataGenerator(
            base_value=100, volatility=10, trend_rate=1.0, anomaly_probability=0.0, seed=7
        )

        for step, obs in enumerate(generator.stream(50), start=1):
            level = 100 + step * 1.0
            assert level - 5 <= obs.value <= level + 5

    def test_zero_volatility_is_pure_trend(self):
        generator = DataGenerator(base_value=10, volatility=0, trend_rate=0.5, seed=1)

        assert [obs.value for obs in generator.stream(3)] == [10.5, 11.0, 11.5]


class TestResultExporter:
    """Test ResultExporter."""

    def test_add_result(self):
        exporter = ResultExporter("unused.json")

        exporter.add_result("anomaly", {"value": 1})

        assert len(exporter.results) == 1
        record = exporter.results[0]
        assert record["type"] == "anomaly"
        assert record["data"] == {"value": 1}
        assert isinstance(record["timestamp"], datetime)

    @pytest.mark.asyncio
    async def test_save_json(self, tmp_path):
        path = tmp_path / "results.json"
        exporter = ResultExporter(path)
        trend = TrendEvent(
            sma=100.0,
            latest=110.0,
            diff=10.0,
            diff_percent=10.0,
            direction=TrendDirection.UPWARD,
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
        )
        exporter.add_result("trend", trend)

        assert await exporter.save() is True

        saved = json.loads(path.read_text(encoding="utf-8"))
        assert len(saved) == 1
        assert saved[0]["type"] == "trend"
        assert saved[0]["data"]["direction"] == "upward"
        assert saved[0]["data"]["timestamp"] == "2024-01-01T00:00:00+00:00"
        assert "timestamp" in saved[0]

    @pytest.mark.asyncio
    async def test_save_empty(self, tmp_path):
        path = tmp_path / "empty.json"

        assert await ResultExporter(path).save() is True
        assert json.loads(path.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_save_failure(self, tmp_path):
        exporter = ResultExporter(tmp_path / "missing" / "results.json")
        exporter.add_result("anomaly", {})

        assert await exporter.save() is False

    @pytest.mark.asyncio
    async def test_save_non_finite_fails(self, tmp_path):
        path = tmp_path / "results.json"
        exporter = ResultExporter(path)
        exporter.add_result("trend", {"diff_percent": float("nan")})

        assert await exporter.save() is False
        assert not path.exists()

    def test_serialize_rejects_non_finite(self):
        with pytest.raises(ValueError):
            serialize_results([{"type": "x", "data": {"value": float("inf")}}])

    def test_serialize_exceptions(self):
        text = serialize_results([{"type": "error", "data": {"error": ValueError("bad")}}])

        assert json.loads(text)[0]["data"]["error"] == "bad"

    def test_serialize_unknown_type(self):
        with pytest.raises(TypeError):
            serialize_results([{"type": "x", "data": object()}])


class TestRunner:
    """Test reference pipeline wiring."""

    def test_build_pipeline_order(self):
        pipeline = build_pipeline(PipelineSettings())

        stage_types = [type(stage) for stage in pipeline.stages]
        assert stage_types == [
            FilterProcessor,
            TransformProcessor,
            AnomalyDetector,
            TrendAnalyzer,
            AggregationProcessor,
        ]

    def test_build_pipeline_uses_settings(self):
        settings = PipelineSettings(
            anomaly_threshold=4.0, trend_window=7, aggregation_window=3
        )

        pipeline = build_pipeline(settings)
        _, _, detector, trend, aggregator = pipeline.stages

        assert detector.threshold == 4.0
        assert trend.window_size == 7
        assert aggregator.window_size == 3

    @pytest.mark.asyncio
    async def test_normalizer(self):
        pipeline = build_pipeline(PipelineSettings(normalization_divisor=200.0))
        transformed = []
        pipeline.stages[1].events.on(EventKind.DATA, transformed.append)
        pipeline.start()

        await pipeline.push(Observation(100.0))

        assert transformed[0].derived["normalized_value"] == 0.5

    @pytest.mark.asyncio
    async def test_run_stream(self):
        pipeline = build_pipeline(PipelineSettings())
        source = [Observation(v) for v in (1.0, float("nan"), 2.0)]

        pushed = await run_stream(pipeline, source, progress_every=2)

        assert pushed == 3
        assert pipeline.is_running is False
        stats = pipeline.get_stats()
        assert stats[0].processed == 3
        assert stats[0].filtered == 1
        assert stats[-1].processed == 2

    @pytest.mark.asyncio
    async def test_run_stream_stops_on_failure(self):
        pipeline = build_pipeline(PipelineSettings())

        def failing_source():
            yield Observation(1.0)
            raise RuntimeError("source failed")

        with pytest.raises(RuntimeError):
            await run_stream(pipeline, failing_source())

        assert pipeline.is_running is False
        with pytest.raises(NotRunningError):
            await pipeline.push(Observation(1.0))

    @pytest.mark.asyncio
    async def test_wire_exporter_skips_stable_trends(self):
        pipeline = build_pipeline(PipelineSettings(anomaly_threshold=3.0))
        exporter = ResultExporter("unused.json")
        wire_exporter(pipeline, exporter)

        values = [49.0, 51.0] * 10 + [80.0]
        await run_stream(pipeline, (Observation(v) for v in values))

        kinds = [record["type"] for record in exporter.results]
        assert kinds.count("anomaly") == 1
        assert "trend" in kinds
        trends = [r["data"] for r in exporter.results if r["type"] == "trend"]
        assert all(t.direction is not TrendDirection.STABLE for t in trends)

    def test_format_stats(self):
        text = format_stats(
            [
                StageStats(name="filter", processed=10, errors=0, filtered=2),
                StageStats(name="detector", processed=8, errors=1, anomalies=1, anomaly_rate=12.5),
            ]
        )

        assert "[1. filter]" in text
        assert "filtered: 2" in text
        assert "[2. detector]" in text
        assert "anomaly_rate: 12.50%" in text
        assert "name:" not in text
