"""
Monitoring for the stream processing pipeline.

This module provides:
- Prometheus metrics fed by pipeline events
"""

from src.monitoring.metrics import (
    PipelineMetrics,
    get_metrics,
    init_metrics,
)

__all__ = [
    "PipelineMetrics",
    "get_metrics",
    "init_metrics",
]
