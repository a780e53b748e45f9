"""Drawn gesture templates: the 2D strokes compared by DrawnShape.

A template is an ordered list of 2D points in the normalized [-1, 1] square
plus a closed-loop flag. Templates are stored as JSON:

    {"name": "triangle", "closed_loop": true, "points": [[0.0, 1.0], ...]}

Points are kept as plain Python floats so a save/load cycle reproduces the
exact same coordinates in the same order.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

from spatial_gestures.geometry import (
    EPSILON,
    displacement_axis,
    estimate_normal,
    normalized,
    project_points,
    sqr_magnitude,
)


@dataclass(frozen=True)
class DrawnTemplate:
    """An authored stroke in normalized 2D space.

    Points are expected in [-1, 1] but the range is not checked; matching
    rescales both paths, so only the shape of the stroke matters. Use
    ``normalized()`` to bring arbitrary coordinates into range.
    """
    points: tuple[tuple[float, float], ...] = ()
    closed_loop: bool = True
    name: str = ""

    def __post_init__(self):
        object.__setattr__(
            self, "points", tuple((float(x), float(y)) for x, y in self.points)
        )
        object.__setattr__(self, "closed_loop", bool(self.closed_loop))

    def as_array(self) -> np.ndarray:
        """Points as an (N, 2) float64 array."""
        if not self.points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array(self.points, dtype=np.float64)

    def normalized(self) -> DrawnTemplate:
        """Copy recentred and scaled into the [-1, 1] square."""
        return DrawnTemplate(
            points=tuple(map(tuple, normalize_points(self.as_array()).tolist())),
            closed_loop=self.closed_loop,
            name=self.name,
        )

    def __len__(self) -> int:
        return len(self.points)

    def to_dict(self) -> dict:
        data = {
            "closed_loop": self.closed_loop,
            "points": [[x, y] for x, y in self.points],
        }
        if self.name:
            data = {"name": self.name, **data}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> DrawnTemplate:
        return cls(
            points=tuple((p[0], p[1]) for p in data.get("points", [])),
            closed_loop=data.get("closed_loop", True),
            name=data.get("name", ""),
        )

    def save(self, path: str | Path):
        """Write the template to a JSON file. Coordinates are stored as given."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> DrawnTemplate:
        """Read a template written by ``save``."""
        with open(path) as f:
            data = json.load(f)
        template = cls.from_dict(data)
        if not template.name:
            template = DrawnTemplate(template.points, template.closed_loop, Path(path).stem)
        return template


def normalize_points(points: np.ndarray) -> np.ndarray:
    """Centre points on their centroid and scale the largest |x| or |y| to 1.

    Results are clamped to [-1, 1]. Degenerate input (everything within
    1e-5 of the centroid) is returned recentred but unscaled.
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) == 0:
        return pts.reshape(0, 2)

    pts = pts - pts.mean(axis=0)
    max_magnitude = float(np.abs(pts).max())
    if max_magnitude < 1e-5:
        return pts
    return np.clip(pts / max_magnitude, -1.0, 1.0)


def template_from_positions(
    positions: np.ndarray, closed_loop: bool = True, name: str = ""
) -> DrawnTemplate:
    """Build a template from a recorded 3D trail.

    The trail is projected onto its best-fit plane using the same axis
    choice DrawnShape applies to live input, then normalized.

    Raises:
        ValueError: if the positions do not span a plane.
    """
    points = np.asarray(positions, dtype=np.float64)
    if len(points) < 3:
        raise ValueError("At least 3 positions are required to build a template")

    center = points.mean(axis=0)
    normal = estimate_normal(points, center)
    if sqr_magnitude(normal) < EPSILON:
        raise ValueError("Positions are colinear; cannot determine a drawing plane")
    normal = normalized(normal)

    axis_x = displacement_axis(points, normal)
    if sqr_magnitude(axis_x) < EPSILON:
        raise ValueError("Cannot determine a projection axis for the positions")
    axis_x = normalized(axis_x)
    axis_y = normalized(np.cross(normal, axis_x))

    planar = normalize_points(project_points(points, center, axis_x, axis_y))
    return DrawnTemplate(
        points=tuple(map(tuple, planar.tolist())),
        closed_loop=closed_loop,
        name=name,
    )


def _polygon(vertices: Iterable[tuple[float, float]]) -> tuple[tuple[float, float], ...]:
    return tuple((float(x), float(y)) for x, y in vertices)


def builtin_templates() -> dict[str, DrawnTemplate]:
    """Templates shipped with the library, keyed by name."""
    angles = np.linspace(0.0, 2.0 * math.pi, 32, endpoint=False)
    circle = _polygon(zip(np.cos(angles).tolist(), np.sin(angles).tolist()))

    # Equilateral triangle, counter-clockwise, apex up
    triangle = _polygon([
        (0.0, 1.0),
        (-math.sqrt(3) / 2.0, -0.5),
        (math.sqrt(3) / 2.0, -0.5),
    ])

    square = _polygon([(-1.0, 1.0), (-1.0, -1.0), (1.0, -1.0), (1.0, 1.0)])

    zigzag = _polygon([(-1.0, 0.5), (-0.5, -0.5), (0.0, 0.5), (0.5, -0.5), (1.0, 0.5)])

    # Short stroke down, long stroke up
    check = _polygon([(-1.0, 0.2), (-0.5, -1.0), (1.0, 1.0)])

    return {
        "circle": DrawnTemplate(circle, closed_loop=True, name="circle"),
        "triangle": DrawnTemplate(triangle, closed_loop=True, name="triangle"),
        "square": DrawnTemplate(square, closed_loop=True, name="square"),
        "zigzag": DrawnTemplate(zigzag, closed_loop=False, name="zigzag"),
        "check": DrawnTemplate(check, closed_loop=False, name="check"),
    }


def get_template(name: str) -> Optional[DrawnTemplate]:
    """Look up a built-in template by name."""
    return builtin_templates().get(name)
