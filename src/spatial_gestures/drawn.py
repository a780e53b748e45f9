"""Free-form drawn gestures matched against a 2D template.

The tracked motion is projected onto its best-fit plane, both paths are
resampled to the same number of evenly spaced points, normalized for
position and scale, and aligned with the closed-form least-squares
rotation. The remaining RMS distance decides the match.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from spatial_gestures.buffer import Sample, positions_of, timestamps_of
from spatial_gestures.geometry import (
    EPSILON,
    displacement_axis,
    estimate_normal,
    normalized,
    polyline_length,
    project_points,
    resample_polyline,
    signed_area,
    sqr_magnitude,
    travel_distance,
)
from spatial_gestures.shapes import GestureMatch, GestureShape, _clamp, _set
from spatial_gestures.templates import DrawnTemplate


def resample(points: np.ndarray, count: int, closed: bool) -> Optional[np.ndarray]:
    """Resample a 2D stroke to ``count`` points evenly spaced by arc length."""
    return resample_polyline(points, count, closed)


def normalize_shape(points: np.ndarray) -> tuple[np.ndarray, np.ndarray, float]:
    """Centre on the centroid and divide by the RMS radius.

    Returns (normalized_points, centroid, scale). When the scale is below
    1e-6 the points are only recentred and the caller should reject them.
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) == 0:
        return pts.reshape(0, 2), np.zeros(2), 0.0

    centroid = pts.mean(axis=0)
    offsets = pts - centroid
    scale = math.sqrt(float(np.mean(np.sum(offsets * offsets, axis=1))))
    inv_scale = 1.0 / scale if scale > EPSILON else 0.0
    return offsets * inv_scale, centroid, scale


def alignment_error(sample: np.ndarray, template: np.ndarray) -> float:
    """RMS distance after rotating ``template`` optimally onto ``sample``.

    Both inputs must be normalized point sets of equal length; mismatched
    or empty inputs give infinity.
    """
    if len(template) != len(sample) or len(template) == 0:
        return math.inf

    tx, ty = template[:, 0], template[:, 1]
    sx, sy = sample[:, 0], sample[:, 1]
    angle = math.atan2(float(np.sum(tx * sy - ty * sx)), float(np.sum(tx * sx + ty * sy)))
    cos, sin = math.cos(angle), math.sin(angle)

    rotated = np.column_stack([tx * cos - ty * sin, tx * sin + ty * cos])
    diff = rotated - sample
    return math.sqrt(float(np.mean(np.sum(diff * diff, axis=1))))


def mirrored(points: np.ndarray) -> np.ndarray:
    """Reflect across the vertical axis (negate x)."""
    result = points.copy()
    result[:, 0] = -result[:, 0]
    return result


def best_alignment_error(
    sample: np.ndarray,
    template: np.ndarray,
    allow_reversed: bool = True,
    allow_mirrored: bool = True,
) -> float:
    """Lowest alignment error over the enabled template variants."""
    variants = [template]
    if allow_reversed:
        reversed_template = template[::-1].copy()
        variants.append(reversed_template)
        if allow_mirrored:
            variants.append(mirrored(reversed_template))
    if allow_mirrored:
        variants.append(mirrored(template))

    return min(alignment_error(sample, variant) for variant in variants)


@dataclass(frozen=True)
class DrawnShape(GestureShape):
    """Matches motion against an authored 2D stroke.

    Attributes:
        template: The stroke and its closed-loop flag.
        minimum_path_length: Planar distance the motion must cover before a
            comparison is attempted.
        comparison_point_count: Points both paths are resampled to.
        max_average_error: Largest RMS error (in normalized units) accepted.
        allow_mirrored / allow_reversed: Also try the mirrored and/or
            reverse-order template.
        closure_distance_ratio: For closed loops, largest allowed gap
            between the first and last point relative to the path length.

    The motion is projected onto the plane of its Newell normal, which
    follows the traversal. A mirror-image traversal therefore projects like
    the forward one and matches with ``allow_mirrored`` off. A reversed open
    stroke projects to the reversed and mirrored template, so it matches
    only when ``allow_reversed`` and ``allow_mirrored`` are both on.

    ``template`` also accepts a mapping (``DrawnTemplate.from_dict``) or a
    plain list of ``(x, y)`` points, which becomes a closed template.
    """

    shape_id: str = "drawn"
    template: DrawnTemplate = field(default_factory=DrawnTemplate)
    minimum_path_length: float = 0.3
    comparison_point_count: int = 64
    max_average_error: float = 0.08
    allow_mirrored: bool = True
    allow_reversed: bool = True
    closure_distance_ratio: float = 0.15

    type_name = "drawn"

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.template, dict):
            _set(self, "template", DrawnTemplate.from_dict(self.template))
        elif isinstance(self.template, (list, tuple)):
            _set(self, "template", DrawnTemplate(points=tuple(self.template)))
        elif not isinstance(self.template, DrawnTemplate):
            raise ValueError(
                f"Drawn shape '{self.shape_id}' needs a template, got {type(self.template).__name__}"
            )
        _set(self, "minimum_path_length", max(0.01, float(self.minimum_path_length)))
        _set(self, "comparison_point_count", int(_clamp(self.comparison_point_count, 8, 256)))
        _set(self, "max_average_error", _clamp(self.max_average_error, 0.005, 0.3))
        _set(self, "closure_distance_ratio", _clamp(self.closure_distance_ratio, 0.0, 1.0))

    @property
    def closed_loop(self) -> bool:
        return self.template.closed_loop

    def evaluate(self, samples: Sequence[Sample]) -> Optional[GestureMatch]:
        if len(self.template) < 2:
            return None
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

        axis_x = displacement_axis(points, normal)
        if sqr_magnitude(axis_x) < EPSILON:
            return None
        axis_x = normalized(axis_x)
        axis_y = normalized(np.cross(normal, axis_x))

        projected = project_points(points, center, axis_x, axis_y)
        planar_distance = polyline_length(projected)
        if planar_distance < self.minimum_path_length:
            return None

        treat_as_loop = self.closed_loop and len(projected) > 2
        if treat_as_loop:
            end_gap = float(np.linalg.norm(projected[0] - projected[-1]))
            allowable_gap = max(
                self.closure_distance_ratio * planar_distance,
                self.minimum_path_length * 0.05,
            )
            if end_gap > allowable_gap:
                return None

        count = self.comparison_point_count
        sample_resampled = resample(projected, count, treat_as_loop)
        if sample_resampled is None:
            return None

        template_points = self.template.as_array()
        template_resampled = resample(
            template_points, count, self.closed_loop and len(template_points) > 2
        )
        if template_resampled is None:
            return None

        sample_normalized, _, sample_scale = normalize_shape(sample_resampled)
        if sample_scale < EPSILON:
            return None
        template_normalized, _, template_scale = normalize_shape(template_resampled)
        if template_scale < EPSILON:
            return None

        error = best_alignment_error(
            sample_normalized,
            template_normalized,
            allow_reversed=self.allow_reversed,
            allow_mirrored=self.allow_mirrored,
        )
        if not math.isfinite(error) or error > self.max_average_error:
            return None

        times = timestamps_of(samples)
        start, end = points[0], points[-1]
        displacement = end - start
        return GestureMatch(
            shape_id=self.shape_id,
            center=center,
            normal=normal,
            start_position=start.copy(),
            end_position=end.copy(),
            duration=float(times[-1] - times[0]),
            travel_distance=travel_distance(points),
            travel_direction=normalized(displacement) if sqr_magnitude(displacement) > EPSILON else np.zeros(3),
            is_clockwise=treat_as_loop and signed_area(sample_resampled) < 0.0,
            sampled_positions=points,
            alignment_error=error,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["template"] = self.template.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> DrawnShape:
        data = dict(data)
        template = data.get("template")
        if isinstance(template, dict):
            data["template"] = DrawnTemplate.from_dict(template)
        return super().from_dict(data)
