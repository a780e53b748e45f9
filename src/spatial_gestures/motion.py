"""Synthetic motion for demos and tests.

CircularMover orbits a pivot and can be registered directly as a pull
source on a GestureDetector. trace_path turns any polyline into a timed
trail of samples.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from spatial_gestures.buffer import Sample
from spatial_gestures.geometry import (
    EPSILON,
    WORLD_FORWARD,
    WORLD_UP,
    as_vector,
    normalized,
    project_on_plane,
    resample_polyline,
    sqr_magnitude,
)


class CircularMover:
    """Moves a point around a pivot at constant angular speed.

    Args:
        pivot: Centre of the orbit.
        radius: Orbit radius.
        axis: Rotation axis; motion is counter-clockwise about it
            (right-hand rule) unless ``clockwise`` is set.
        revolution_duration: Seconds per full turn.
        start_direction: Direction from the pivot at t=0. Defaults to a
            vector perpendicular to the axis.
    """

    def __init__(
        self,
        pivot=(0.0, 0.0, 0.0),
        radius: float = 1.5,
        axis=(0.0, 1.0, 0.0),
        revolution_duration: float = 4.0,
        start_direction=None,
        clockwise: bool = False,
    ):
        self.pivot = as_vector(pivot)
        self.radius = max(0.01, float(radius))
        self.revolution_duration = max(0.01, float(revolution_duration))
        self.clockwise = clockwise

        axis = as_vector(axis)
        self.axis = normalized(axis) if sqr_magnitude(axis) > 0 else WORLD_UP.copy()

        offset = np.zeros(3)
        if start_direction is not None:
            offset = project_on_plane(as_vector(start_direction), self.axis)
        if sqr_magnitude(offset) < EPSILON:
            offset = np.cross(self.axis, WORLD_FORWARD)
            if sqr_magnitude(offset) < EPSILON:
                offset = np.cross(self.axis, WORLD_UP)

        self._u = normalized(offset)
        self._v = normalized(np.cross(self.axis, self._u))

    @property
    def angular_speed(self) -> float:
        """Degrees per second."""
        return 360.0 / self.revolution_duration

    def position_at(self, t: float) -> np.ndarray:
        angle = 2.0 * math.pi * t / self.revolution_duration
        if self.clockwise:
            angle = -angle
        return self.pivot + self.radius * (math.cos(angle) * self._u + math.sin(angle) * self._v)

    def __call__(self, t: float) -> np.ndarray:
        return self.position_at(t)

    def samples(self, duration: float, count: int, start_time: float = 0.0) -> list[Sample]:
        """Timed samples covering ``duration`` seconds of motion."""
        times = np.linspace(start_time, start_time + duration, count)
        return [Sample(position=self.position_at(float(t)), timestamp=float(t)) for t in times]


def embed_points(
    points2d,
    origin=(0.0, 0.0, 0.0),
    axis_x=(1.0, 0.0, 0.0),
    axis_y=(0.0, 1.0, 0.0),
    scale: float = 1.0,
) -> np.ndarray:
    """Place 2D points on a plane in 3D space."""
    pts = np.asarray(points2d, dtype=np.float64)
    origin = as_vector(origin)
    ax, ay = as_vector(axis_x), as_vector(axis_y)
    return origin + scale * (pts[:, :1] * ax + pts[:, 1:2] * ay)


def trace_path(
    points: Sequence,
    duration: float = 1.0,
    count: int = 40,
    closed: bool = False,
    start_time: float = 0.0,
    noise: float = 0.0,
    seed: Optional[int] = None,
) -> list[Sample]:
    """Evenly spaced, evenly timed samples along a 3D polyline.

    Closed paths stop one step before returning to the first point.
    ``noise`` adds Gaussian jitter (standard deviation in world units).
    """
    pts = np.asarray(points, dtype=np.float64)
    resampled = resample_polyline(pts, count, closed)
    if resampled is None:
        resampled = np.repeat(pts[:1], count, axis=0)

    if noise > 0:
        rng = np.random.default_rng(seed)
        resampled = resampled + rng.normal(0.0, noise, resampled.shape)

    times = np.linspace(start_time, start_time + duration, count)
    return [Sample(position=p, timestamp=float(t)) for p, t in zip(resampled, times)]
