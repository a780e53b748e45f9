"""Time-stamped position trail kept for each tracked entity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from spatial_gestures.geometry import as_vector, sqr_magnitude, travel_distance

logger = logging.getLogger("spatial_gestures.buffer")


@dataclass(frozen=True, eq=False)
class Sample:
    """A single recorded position."""
    position: np.ndarray  # shape (3,)
    timestamp: float


def positions_of(samples: Sequence[Sample]) -> np.ndarray:
    """Stack sample positions into an (N, 3) array."""
    if not samples:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([s.position for s in samples], dtype=np.float64)


def timestamps_of(samples: Sequence[Sample]) -> np.ndarray:
    return np.array([s.timestamp for s in samples], dtype=np.float64)


class SampleBuffer:
    """Ordered trail of recent samples for one entity.

    A position is only stored once it has moved at least
    ``min_point_distance`` from the last stored sample, so a stationary
    entity does not flood the trail. ``prune`` keeps samples no older than
    ``max_sample_age``; when none of them is young enough the whole trail
    is dropped.
    """

    def __init__(self, min_point_distance: float = 0.005, max_sample_age: float = 3.0):
        self.min_point_distance = min_point_distance
        self.max_sample_age = max_sample_age
        self._samples: list[Sample] = []

    def record(self, position, now: float) -> bool:
        """Append ``position`` if it moved far enough. Returns True if stored."""
        point = as_vector(position)
        if not np.isfinite(point).all():
            return False
        if self._samples:
            offset = point - self._samples[-1].position
            if sqr_magnitude(offset) < self.min_point_distance * self.min_point_distance:
                return False

        self._samples.append(Sample(position=point, timestamp=float(now)))
        return True

    def prune(self, now: float) -> bool:
        """Drop samples older than ``max_sample_age``.

        Returns True when no sample was within the age window and the
        buffer was discarded entirely.
        """
        for i, sample in enumerate(self._samples):
            if now - sample.timestamp <= self.max_sample_age:
                if i > 0:
                    del self._samples[:i]
                return False

        if self._samples:
            logger.debug("Trail fully stale at t=%.3f, dropping %d samples", now, len(self._samples))
        self._samples.clear()
        return True

    def clear(self):
        self._samples.clear()

    @property
    def samples(self) -> list[Sample]:
        return list(self._samples)

    def positions(self) -> np.ndarray:
        return positions_of(self._samples)

    def times(self) -> np.ndarray:
        return timestamps_of(self._samples)

    def travel_distance(self) -> float:
        return travel_distance(self.positions())

    @property
    def duration(self) -> float:
        if len(self._samples) < 2:
            return 0.0
        return self._samples[-1].timestamp - self._samples[0].timestamp

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)
