"""
Synthetic observation source.

Produces a drifting random walk with uniform noise and occasional spikes,
useful for demos and for exercising anomaly and trend detection.
"""

from collections.abc import Iterator
from datetime import UTC, datetime

import numpy as np

from .observation import Observation


class DataGenerator:
    """Generate synthetic observations."""

    def __init__(
        self,
        base_value: float = 100.0,
        volatility: float = 10.0,
        trend_rate: float = 0.1,
        anomaly_probability: float = 0.05,
        seed: int | None = None,
    ) -> None:
        self.base_value = base_value
        self.volatility = volatility
        self.trend_rate = trend_rate
        self.anomaly_probability = anomaly_probability
        self.current_value = base_value
        self._rng = np.random.default_rng(seed)

    def generate(self) -> Observation:
        """Generate the next observation."""
        # Trend component
        self.current_value += self.trend_rate

        noise = (self._rng.random() - 0.5) * self.volatility
        value = self.current_value + noise

        # Occasional spike
        if self._rng.random() < self.anomaly_probability:
            value += (self._rng.random() - 0.5) * self.volatility * 5

        return Observation(
            value=float(value),
            timestamp=datetime.now(UTC),
            metadata={
                "source": "generator",
                "trend": self.trend_rate,
                "volatility": self.volatility,
            },
        )

    def stream(self, count: int | None = None) -> Iterator[Observation]:
        """
        Lazily yield observations.

        Args:
            count: Number of observations, or None for an endless stream
        """
        produced = 0
        while count is None or produced < count:
            yield self.generate()
            produced += 1
