"""
Observation: the unit of data flowing through a pipeline.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from numbers import Real
from typing import Any
from uuid import uuid4


def _generate_id(timestamp: datetime) -> str:
    """Build a correlation id from the capture time plus a random suffix."""
    return f"{int(timestamp.timestamp() * 1000)}-{uuid4().hex[:9]}"


@dataclass(frozen=True)
class Observation:
    """
    A single timestamped numeric measurement.

    Core fields are immutable. Transforms attach extra values through
    ``with_fields()``, which returns a copy sharing the same ``id``.
    """

    value: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)
    id: str = field(default="", compare=False)
    derived: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", _generate_id(self.timestamp))

    def is_valid(self) -> bool:
        """True if the value is a finite real number."""
        if isinstance(self.value, bool) or not isinstance(self.value, Real):
            return False
        return math.isfinite(self.value)

    def with_fields(self, **fields: Any) -> "Observation":
        """Return a copy with extra derived fields attached."""
        return replace(
            self,
            metadata=dict(self.metadata),
            derived={**self.derived, **fields},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
            "derived": self.derived,
        }
