"""
Streaming pipeline for real-time observation processing.

Components:
- Observation: Timestamped numeric measurement
- Windows: Bounded FIFO buffers and population statistics
- Events: Per-instance event registries and event payloads
- Processors: Filter, transform, aggregation, anomaly and trend stages
- Pipeline: Ordered stage chain with event bubbling
- Generator / Exporter: Synthetic source and JSON result sink

Data Flow:
    Source → Pipeline.push → Stage → Stage → ... → events → Exporter/Metrics
"""

from .events import (
    AggregateSnapshot,
    AnomalyEvent,
    ErrorEvent,
    EventEmitter,
    EventKind,
    TrendDirection,
    TrendEvent,
)
from .exceptions import NotRunningError, PipelineStateError, StreamProcessorError
from .exporter import ResultExporter
from .generator import DataGenerator
from .observation import Observation
from .pipeline import DataStreamPipeline
from .processors import (
    AggregationProcessor,
    AnomalyDetector,
    BaseProcessor,
    FilterProcessor,
    Stage,
    StageStats,
    TransformProcessor,
    TrendAnalyzer,
)
from .window import SlidingWindow, WindowStatistics, compute_window_statistics

__all__ = [
    # Data
    "Observation",
    "SlidingWindow",
    "WindowStatistics",
    "compute_window_statistics",
    # Events
    "EventEmitter",
    "EventKind",
    "AggregateSnapshot",
    "AnomalyEvent",
    "ErrorEvent",
    "TrendDirection",
    "TrendEvent",
    # Processors
    "Stage",
    "StageStats",
    "BaseProcessor",
    "FilterProcessor",
    "TransformProcessor",
    "AggregationProcessor",
    "AnomalyDetector",
    "TrendAnalyzer",
    # Pipeline
    "DataStreamPipeline",
    # Errors
    "StreamProcessorError",
    "PipelineStateError",
    "NotRunningError",
    # Collaborators
    "DataGenerator",
    "ResultExporter",
]
