"""
Sliding-window buffers and the statistics computed over them.

Windows are small (tens of items), so statistics are recomputed in full on
every insertion rather than maintained incrementally.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any, Generic, TypeVar

import numpy as np

T = TypeVar("T")


class SlidingWindow(Generic[T]):
    """Bounded FIFO buffer; the oldest item drops once capacity is exceeded."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"Window size must be at least 1, got {size}")
        self.size = size
        self._items: deque[T] = deque(maxlen=size)

    def append(self, item: T) -> None:
        self._items.append(item)

    @property
    def values(self) -> list[T]:
        """Buffered items, oldest first."""
        return list(self._items)

    @property
    def latest(self) -> T:
        if not self._items:
            raise IndexError("Window is empty")
        return self._items[-1]

    @property
    def is_full(self) -> bool:
        return len(self._items) == self.size

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)


@dataclass(frozen=True)
class WindowStatistics:
    """Population statistics over a window of values."""

    count: int
    sum: float
    mean: float
    variance: float
    std_dev: float
    min: float
    max: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_window_statistics(values: Iterable[float]) -> WindowStatistics:
    """
    Compute count, sum, mean, variance, std_dev, min and max.

    Variance divides by the count (population formula), not count - 1.

    Raises:
        ValueError: If ``values`` is empty
    """
    arr = np.fromiter(values, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("Cannot compute statistics over an empty window")

    variance = float(np.var(arr))
    return WindowStatistics(
        count=int(arr.size),
        sum=float(arr.sum()),
        mean=float(arr.mean()),
        variance=variance,
        std_dev=float(np.sqrt(variance)),
        min=float(arr.min()),
        max=float(arr.max()),
    )
