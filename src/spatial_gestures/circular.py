"""Circular and arc-shaped motion.

The trail is fitted to a plane (Newell's method), projected into 2D polar
coordinates around its centroid and then checked for a consistent radius,
enough angular coverage and enough actual sweeping motion.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from spatial_gestures.buffer import Sample, positions_of, timestamps_of
from spatial_gestures.geometry import (
    EPSILON,
    angular_coverage,
    estimate_normal,
    normalized,
    plane_basis,
    project_points,
    shortest_angle_deltas,
    sqr_magnitude,
    travel_distance,
    vector_angle,
)
from spatial_gestures.shapes import GestureMatch, GestureShape, _clamp, _set, _vector_tuple


@dataclass(frozen=True)
class CircularShape(GestureShape):
    """Detects circles, or arcs when the coverage window is narrowed.

    Attributes:
        min_radius: Smallest mean radius accepted (world units).
        radius_variance_tolerance: Max standard deviation of the radius
            relative to the mean radius.
        min_coverage_angle / max_coverage_angle: Accepted window (degrees)
            for how much of the circle was traced.
        min_travelled_arc_ratio: Travelled distance divided by the ideal
            arc length must reach this; rejects motions that loiter.
        enforce_normal_alignment: Require the circle plane to face
            ``required_normal`` (either side) within ``normal_tolerance`` degrees.

    The plane normal is fitted from the motion itself and follows the
    traversal, so ``is_clockwise`` on the match is always False unless
    ``enforce_normal_alignment`` is on. With alignment the normal is turned
    toward ``required_normal`` and the flag reports the direction as seen
    from that side.
    """

    shape_id: str = "circle"
    min_radius: float = 0.1
    radius_variance_tolerance: float = 0.2
    min_coverage_angle: float = 300.0
    max_coverage_angle: float = 360.0
    min_travelled_arc_ratio: float = 0.75
    enforce_normal_alignment: bool = False
    required_normal: tuple[float, float, float] = (0.0, 1.0, 0.0)
    normal_tolerance: float = 20.0

    type_name = "circular"

    def __post_init__(self):
        super().__post_init__()
        _set(self, "min_radius", max(0.01, float(self.min_radius)))
        _set(self, "radius_variance_tolerance", _clamp(self.radius_variance_tolerance, 0.01, 0.5))
        _set(self, "min_coverage_angle", _clamp(self.min_coverage_angle, 0.0, 360.0))
        _set(self, "max_coverage_angle", _clamp(self.max_coverage_angle, self.min_coverage_angle, 360.0))
        _set(self, "min_travelled_arc_ratio", _clamp(self.min_travelled_arc_ratio, 0.2, 1.5))
        _set(self, "normal_tolerance", _clamp(self.normal_tolerance, 0.0, 90.0))
        required = _vector_tuple(self.required_normal)
        if sqr_magnitude(np.array(required)) < EPSILON:
            required = (0.0, 1.0, 0.0)
        _set(self, "required_normal", required)

    def evaluate(self, samples: Sequence[Sample]) -> Optional[GestureMatch]:
        if len(samples) < self.minimum_sample_count:
            return None

        points = positions_of(samples)
        if not np.isfinite(points).all():
            return None
        center = points.mean(axis=0)

        normal = estimate_normal(points, center)
        if sqr_magnitude(normal) < EPSILON:
            return None
        normal = normal / np.linalg.norm(normal)

        if self.enforce_normal_alignment:
            desired = normalized(np.array(self.required_normal))
            angle = vector_angle(normal, desired)
            flipped_angle = vector_angle(normal, -desired)
            if min(angle, flipped_angle) > self.normal_tolerance:
                return None
            if flipped_angle < angle:
                normal = -normal

        axis_x, axis_y = plane_basis(normal, points[0] - center)
        planar = project_points(points, center, axis_x, axis_y)
        radii = np.linalg.norm(planar, axis=1)
        angles = np.arctan2(planar[:, 1], planar[:, 0])

        mean_radius = float(radii.mean())
        if mean_radius < self.min_radius:
            return None

        deviation = math.sqrt(float(np.mean((radii - mean_radius) ** 2)))
        relative_deviation = deviation / mean_radius if mean_radius > 1e-5 else math.inf
        if relative_deviation > self.radius_variance_tolerance:
            return None

        coverage = angular_coverage(angles)
        if coverage < self.min_coverage_angle or coverage > self.max_coverage_angle:
            return None

        travelled = travel_distance(points)
        ideal_arc = 2.0 * math.pi * mean_radius * min(max(coverage / 360.0, 0.0), 1.0)
        travel_ratio = travelled / ideal_arc if ideal_arc > 1e-5 else 0.0
        if travel_ratio < self.min_travelled_arc_ratio:
            return None

        total_delta = float(shortest_angle_deltas(angles).sum()) if len(angles) > 1 else 0.0

        times = timestamps_of(samples)
        start, end = points[0], points[-1]
        travel_vector = end - start
        return GestureMatch(
            shape_id=self.shape_id,
            center=center,
            radius=mean_radius,
            normal=normal,
            coverage_angle=coverage,
            travel_distance=travelled,
            travel_direction=normalized(travel_vector) if sqr_magnitude(travel_vector) > EPSILON else np.zeros(3),
            start_position=start.copy(),
            end_position=end.copy(),
            duration=float(times[-1] - times[0]),
            is_clockwise=total_delta < 0.0,
            sampled_positions=points,
        )
