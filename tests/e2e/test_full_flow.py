"""
End-to-end test: the command-line driver from arguments to saved results.
"""

import argparse
import importlib.util
import json
import logging
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "run_stream.py"


@pytest.fixture
def run_stream_script():
    """Load scripts/run_stream.py as a module."""
    spec = importlib.util.spec_from_file_location("run_stream_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield module
    root.handlers = handlers
    root.setLevel(level)


class TestFullFlow:
    """Drive the CLI entry point without a subprocess."""

    @pytest.mark.asyncio
    async def test_run_and_save(self, run_stream_script, tmp_path, capsys):
        output = tmp_path / "stream_results.json"
        metrics_output = tmp_path / "metrics.prom"
        args = argparse.Namespace(
            count=60,
            interval_ms=0,
            output=output,
            seed=5,
            metrics_output=metrics_output,
            log_level="WARNING",
        )

        exit_code = await run_stream_script.main(args)

        assert exit_code == 0

        report = capsys.readouterr().out
        assert "Pipeline statistics" in report
        assert "[1. valid-value-filter]" in report
        assert "[5. aggregator]" in report

        saved = json.loads(output.read_text(encoding="utf-8"))
        assert isinstance(saved, list)
        assert all(set(record) == {"type", "data", "timestamp"} for record in saved)
        assert all(record["type"] in {"anomaly", "trend"} for record in saved)

        assert b"stream_pipeline_observations_total" in metrics_output.read_bytes()

    @pytest.mark.asyncio
    async def test_save_failure_exit_code(self, run_stream_script, tmp_path):
        args = argparse.Namespace(
            count=5,
            interval_ms=0,
            output=tmp_path / "missing" / "out.json",
            seed=1,
            metrics_output=None,
            log_level="ERROR",
        )

        assert await run_stream_script.main(args) == 1
