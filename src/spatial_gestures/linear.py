"""Straight-line motions such as swipes, with an optional direction constraint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from spatial_gestures.buffer import Sample, positions_of, timestamps_of
from spatial_gestures.geometry import EPSILON, normalized, sqr_magnitude, travel_distance, vector_angle
from spatial_gestures.shapes import GestureMatch, GestureShape, _clamp, _set, _vector_tuple


@dataclass(frozen=True)
class LinearShape(GestureShape):
    """Detects predominantly linear motion.

    Attributes:
        minimum_distance: Required distance between first and last sample.
        max_deviation_from_line: Largest perpendicular distance any sample
            may stray from the start→end line.
        minimum_straightness: Straight distance / travelled distance.
        enforce_direction: Require the motion to follow ``expected_direction``
            within ``direction_tolerance`` degrees.
        allow_reverse: Also accept motion opposite to ``expected_direction``.
    """

    shape_id: str = "swipe"
    minimum_distance: float = 0.5
    max_deviation_from_line: float = 0.15
    minimum_straightness: float = 0.8
    enforce_direction: bool = True
    expected_direction: tuple[float, float, float] = (1.0, 1.0, 0.0)
    direction_tolerance: float = 20.0
    allow_reverse: bool = False

    type_name = "linear"

    def __post_init__(self):
        super().__post_init__()
        _set(self, "minimum_distance", max(0.01, float(self.minimum_distance)))
        _set(self, "max_deviation_from_line", max(0.001, float(self.max_deviation_from_line)))
        _set(self, "minimum_straightness", _clamp(self.minimum_straightness, 0.5, 1.0))
        _set(self, "direction_tolerance", _clamp(self.direction_tolerance, 0.0, 90.0))
        expected = _vector_tuple(self.expected_direction)
        if sqr_magnitude(np.array(expected)) < EPSILON:
            expected = (1.0, 1.0, 0.0)
        _set(self, "expected_direction", expected)

    def evaluate(self, samples: Sequence[Sample]) -> Optional[GestureMatch]:
        if len(samples) < self.minimum_sample_count:
            return None

        points = positions_of(samples)
        if not np.isfinite(points).all():
            return None
        start, end = points[0], points[-1]
        displacement = end - start
        straight_distance = float(np.linalg.norm(displacement))
        if straight_distance < self.minimum_distance:
            return None

        direction = displacement / straight_distance

        if self.enforce_direction:
            desired = normalized(np.array(self.expected_direction))
            angle = vector_angle(direction, desired)
            reverse_angle = vector_angle(direction, -desired)
            best_angle = min(angle, reverse_angle) if self.allow_reverse else angle
            if best_angle > self.direction_tolerance:
                return None
            if not self.allow_reverse and float(np.dot(direction, desired)) < 0.0:
                return None

        travelled = travel_distance(points)

        # Perpendicular distance of every sample from the start→end line
        offsets = points - start
        along = offsets @ direction
        closest = start + along[:, None] * direction
        max_deviation = float(np.linalg.norm(points - closest, axis=1).max())
        if max_deviation > self.max_deviation_from_line:
            return None

        straightness = straight_distance / max(travelled, 1e-5)
        if straightness < self.minimum_straightness:
            return None

        times = timestamps_of(samples)
        return GestureMatch(
            shape_id=self.shape_id,
            center=(start + end) * 0.5,
            travel_distance=travelled,
            travel_direction=direction,
            start_position=start.copy(),
            end_position=end.copy(),
            duration=float(times[-1] - times[0]),
            sampled_positions=points,
        )
