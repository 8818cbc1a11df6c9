"""
Ordered chain of stages with event bubbling.

Stages run strictly one after another for each pushed item. Callers must not
push concurrently into the same pipeline: stage windows and the running flag
are not guarded for concurrent mutation.
"""

from functools import partial
from typing import Any

from src.utils.logging import get_logger

from .events import EventCallback, EventEmitter, EventKind
from .exceptions import NotRunningError
from .processors import Stage, StageStats, StreamItem

logger = get_logger(__name__)

# Stage events re-published on the pipeline emitter.
BUBBLED_EVENTS = (
    EventKind.ERROR,
    EventKind.ANOMALY,
    EventKind.TREND,
    EventKind.AGGREGATION,
)


class DataStreamPipeline:
    """
    Chain of stream processors.

    Example:
        pipeline = (
            DataStreamPipeline()
            .add_stage(FilterProcessor("valid", lambda obs: obs.is_valid()))
            .add_stage(AnomalyDetector("anomalies", threshold=2.5))
        )
        pipeline.on("anomaly", handle_anomaly)
        pipeline.start()
        await pipeline.push(Observation(42.0))
    """

    def __init__(self, name: str = "pipeline") -> None:
        self.name = name
        self.events = EventEmitter(owner=name)
        self._stages: list[Stage] = []
        self._running = False

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    @property
    def is_running(self) -> bool:
        return self._running

    def add_stage(self, stage: Stage) -> "DataStreamPipeline":
        """
        Append a stage and bubble its events to this pipeline.

        Returns:
            Self for chaining
        """
        self._stages.append(stage)

        for kind in BUBBLED_EVENTS:
            stage.events.on(kind, partial(self.events.emit, kind))

        logger.debug(
            "Stage added",
            pipeline=self.name,
            stage=stage.name,
            position=len(self._stages),
        )
        return self

    add_processor = add_stage

    def on(self, kind: EventKind | str, callback: EventCallback) -> EventCallback:
        """Subscribe to a pipeline-level event."""
        return self.events.on(kind, callback)

    def off(self, kind: EventKind | str, callback: EventCallback) -> bool:
        """Unsubscribe from a pipeline-level event."""
        return self.events.off(kind, callback)

    async def push(self, item: StreamItem | None) -> StreamItem | None:
        """
        Run one item through every stage in order.

        The chain stops at the first stage that returns None; later stages
        neither see nor count the item.

        Returns:
            The value produced by the last stage reached, or None if dropped

        Raises:
            NotRunningError: If the pipeline has not been started
        """
        if not self._running:
            raise NotRunningError()

        current: Any = item
        for stage in self._stages:
            if current is None:
                break
            current = await stage.process(current)

        self.events.emit(EventKind.PROCESSED, current)
        return current

    def start(self) -> None:
        """Start accepting pushes."""
        self._running = True
        logger.info("Pipeline started", pipeline=self.name, stages=len(self._stages))
        self.events.emit(EventKind.START)

    def stop(self) -> None:
        """Stop accepting pushes. An in-flight push still completes."""
        self._running = False
        logger.info("Pipeline stopped", pipeline=self.name)
        self.events.emit(EventKind.STOP)

    def get_stats(self) -> list[StageStats]:
        """Get statistics from all stages, in pipeline order."""
        return [stage.get_stats() for stage in self._stages]
