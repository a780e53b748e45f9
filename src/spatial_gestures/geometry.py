"""Vector helpers shared by the shape matchers.

All functions operate on numpy arrays of shape (N, 3) for positions and
(N, 2) for planar points. Nothing here keeps state.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

WORLD_RIGHT = np.array([1.0, 0.0, 0.0])
WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_FORWARD = np.array([0.0, 0.0, 1.0])

EPSILON = 1e-6


def as_vector(value, dim: int = 3) -> np.ndarray:
    """Coerce a sequence or array into a float64 vector of the given size."""
    vec = np.asarray(value, dtype=np.float64).reshape(-1)
    if vec.shape[0] != dim:
        raise ValueError(f"Expected a {dim}D vector, got shape {vec.shape}")
    return vec


def sqr_magnitude(vector: np.ndarray) -> float:
    return float(np.dot(vector, vector))


def normalized(vector: np.ndarray) -> np.ndarray:
    """Unit vector in the direction of ``vector``, or zeros if it is degenerate."""
    length = float(np.linalg.norm(vector))
    if length < 1e-5:
        return np.zeros_like(vector, dtype=np.float64)
    return vector / length


def project_on_plane(vector: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of ``vector`` along ``normal`` (need not be unit length)."""
    denom = sqr_magnitude(normal)
    if denom < 1e-15:
        return vector.astype(np.float64)
    return vector - normal * (np.dot(vector, normal) / denom)


def vector_angle(a: np.ndarray, b: np.ndarray) -> float:
    """Unsigned angle between two vectors in degrees (0 if either is degenerate)."""
    denom = math.sqrt(sqr_magnitude(a) * sqr_magnitude(b))
    if denom < 1e-15:
        return 0.0
    cos_angle = float(np.clip(np.dot(a, b) / denom, -1.0, 1.0))
    return math.degrees(math.acos(cos_angle))


def estimate_normal(points: np.ndarray, center: np.ndarray) -> np.ndarray:
    """Newell's method: sum of cross products of consecutive centroid offsets.

    Pairs wrap around from the last point to the first. The result is not
    normalized; a near-zero vector means the points are colinear or coincident.
    """
    offsets = points - center
    following = np.roll(offsets, -1, axis=0)
    return np.cross(offsets, following).sum(axis=0)


def plane_basis(normal: np.ndarray, seed: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Orthonormal in-plane axes, with X seeded from ``seed``.

    Falls back to the world right, then world up axis when the seed lies
    along the normal.
    """
    axis_x = project_on_plane(seed, normal)
    if sqr_magnitude(axis_x) < EPSILON:
        axis_x = project_on_plane(WORLD_RIGHT, normal)
        if sqr_magnitude(axis_x) < EPSILON:
            axis_x = project_on_plane(WORLD_UP, normal)

    axis_x = normalized(axis_x)
    axis_y = normalized(np.cross(normal, axis_x))
    return axis_x, axis_y


def displacement_axis(points: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """In-plane X axis for a stroke, taken from its net displacement.

    Tries last-minus-first, then second-minus-first, then the world axes
    projected on the plane. The returned axis is not normalized and may be
    near zero if every candidate is degenerate.
    """
    axis = np.zeros(3)
    if len(points) >= 2:
        axis = points[-1] - points[0]
        if sqr_magnitude(axis) < EPSILON:
            axis = points[1] - points[0]

    axis = project_on_plane(axis, normal)
    if sqr_magnitude(axis) < EPSILON:
        axis = project_on_plane(WORLD_RIGHT, normal)
        if sqr_magnitude(axis) < EPSILON:
            axis = project_on_plane(WORLD_UP, normal)
    return axis


def project_points(
    points: np.ndarray, center: np.ndarray, axis_x: np.ndarray, axis_y: np.ndarray
) -> np.ndarray:
    """Express 3D points as 2D coordinates in the (axis_x, axis_y) plane through center."""
    offsets = points - center
    return np.column_stack([offsets @ axis_x, offsets @ axis_y])


def travel_distance(points: np.ndarray) -> float:
    """Sum of consecutive point-to-point distances."""
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())


def angular_coverage(angles: np.ndarray) -> float:
    """Degrees of a circle covered by a set of polar angles (radians).

    360 minus the largest gap between sorted angles, including the
    wrap-around gap from the last angle back to the first.
    """
    ordered = np.sort(np.asarray(angles, dtype=np.float64))
    max_gap = 0.0
    if len(ordered) > 1:
        max_gap = float(np.max(np.diff(ordered)))
        wrap_gap = float(ordered[0] + 2.0 * math.pi - ordered[-1])
        max_gap = max(max_gap, wrap_gap)

    coverage = math.degrees(2.0 * math.pi - max_gap)
    return float(np.clip(coverage, 0.0, 360.0))


def shortest_angle_deltas(angles: np.ndarray) -> np.ndarray:
    """Signed shortest-path differences between consecutive angles, in degrees (-180, 180]."""
    deltas = np.mod(np.degrees(np.diff(np.asarray(angles, dtype=np.float64))), 360.0)
    deltas[deltas > 180.0] -= 360.0
    return deltas


def polyline_length(points: np.ndarray, closed: bool = False) -> float:
    if len(points) < 2:
        return 0.0
    ends = np.roll(points, -1, axis=0) if closed else points[1:]
    starts = points if closed else points[:-1]
    return float(np.linalg.norm(ends - starts, axis=1).sum())


def resample_polyline(
    points: np.ndarray, count: int, closed: bool = False
) -> Optional[np.ndarray]:
    """Resample a polyline to ``count`` points evenly spaced by arc length.

    Closed paths wrap back to the first vertex and are split into ``count``
    equal arcs; open paths are split into ``count - 1`` arcs with both
    endpoints pinned to the originals. Works for any dimensionality.

    Returns None when there is nothing to resample (fewer than two source
    points, fewer than two targets, or zero total length).
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2 or count < 2:
        return None

    starts = points if closed else points[:-1]
    ends = np.roll(points, -1, axis=0) if closed else points[1:]
    seg_lengths = np.linalg.norm(ends - starts, axis=1)
    total = float(seg_lengths.sum())
    if total < EPSILON:
        return None

    # Zero-length segments never carry an interpolated point
    valid = seg_lengths > EPSILON
    starts, ends, seg_lengths = starts[valid], ends[valid], seg_lengths[valid]
    cum_end = np.cumsum(seg_lengths)
    cum_start = cum_end - seg_lengths

    segment_count = count if closed else count - 1
    targets = np.clip(np.arange(count) / segment_count, 0.0, 1.0) * total

    idx = np.searchsorted(cum_end, targets, side="left")
    idx = np.minimum(idx, len(seg_lengths) - 1)
    t_param = np.clip((targets - cum_start[idx]) / seg_lengths[idx], 0.0, 1.0)
    resampled = starts[idx] + t_param[:, None] * (ends[idx] - starts[idx])

    if not closed:
        resampled[0] = points[0]
        resampled[-1] = points[-1]
    return resampled


def signed_area(polygon: np.ndarray) -> float:
    """Shoelace area of a closed 2D polygon; positive for counter-clockwise winding."""
    if polygon is None or len(polygon) < 3:
        return 0.0
    following = np.roll(polygon, -1, axis=0)
    cross = polygon[:, 0] * following[:, 1] - following[:, 0] * polygon[:, 1]
    return float(cross.sum() * 0.5)
