"""Shape definitions evaluated by the GestureDetector.

A shape is an immutable configuration object with a single capability,
``evaluate(samples)``, which returns a GestureMatch or None. Subclass
GestureShape to add new kinds of gestures:

    @dataclass(frozen=True)
    class ShakeShape(GestureShape):
        shape_id: str = "shake"
        min_reversals: int = 3

        type_name = "shake"

        def evaluate(self, samples):
            ...

Shapes never raise on noisy or degenerate input; they return None.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Hashable, Optional, Sequence

import numpy as np

from spatial_gestures.buffer import Sample


def _zero_vector() -> np.ndarray:
    return np.zeros(3, dtype=np.float64)


@dataclass(frozen=True, eq=False)
class GestureMatch:
    """Result of a successful shape evaluation.

    Fields that make no sense for a given shape keep their zero value
    (linear matches have no radius or coverage, drawn matches have no radius).
    """
    shape_id: str = ""
    target: Optional[Hashable] = None
    center: np.ndarray = field(default_factory=_zero_vector)
    radius: float = 0.0
    normal: np.ndarray = field(default_factory=_zero_vector)
    coverage_angle: float = 0.0  # degrees
    travel_distance: float = 0.0
    travel_direction: np.ndarray = field(default_factory=_zero_vector)
    start_position: np.ndarray = field(default_factory=_zero_vector)
    end_position: np.ndarray = field(default_factory=_zero_vector)
    duration: float = 0.0
    is_clockwise: bool = False
    sampled_positions: Optional[np.ndarray] = None  # shape (N, 3)
    alignment_error: float = 0.0  # drawn shapes only
    timestamp: float = 0.0  # detection time, stamped by the detector

    def to_dict(self) -> dict:
        """JSON-friendly summary (sampled positions omitted)."""
        return {
            "shape_id": self.shape_id,
            "target": self.target,
            "center": self.center.tolist(),
            "radius": self.radius,
            "normal": self.normal.tolist(),
            "coverage_angle": self.coverage_angle,
            "travel_distance": self.travel_distance,
            "travel_direction": self.travel_direction.tolist(),
            "start_position": self.start_position.tolist(),
            "end_position": self.end_position.tolist(),
            "duration": self.duration,
            "is_clockwise": self.is_clockwise,
            "alignment_error": self.alignment_error,
            "timestamp": self.timestamp,
        }


def _set(obj: Any, name: str, value: Any):
    """Assign a field on a frozen dataclass during __post_init__."""
    object.__setattr__(obj, name, value)


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(float(value), lo), hi)


def _vector_tuple(value) -> tuple[float, float, float]:
    x, y, z = (float(v) for v in value)
    return (x, y, z)


@dataclass(frozen=True)
class GestureShape(ABC):
    """Base class for all shapes.

    Attributes:
        shape_id: Identifier reported in matches and used by sequences.
        detection_cooldown: Seconds the detector waits between two matches
            of this shape for the same entity.
        minimum_sample_count: Samples required before evaluation (at least 3).
    """

    shape_id: str = "shape"
    detection_cooldown: float = 1.0
    minimum_sample_count: int = 15

    type_name: ClassVar[str] = ""

    def __post_init__(self):
        _set(self, "shape_id", str(self.shape_id))
        _set(self, "detection_cooldown", max(0.0, float(self.detection_cooldown)))
        _set(self, "minimum_sample_count", max(3, int(self.minimum_sample_count)))

    @abstractmethod
    def evaluate(self, samples: Sequence[Sample]) -> Optional[GestureMatch]:
        """Match the trail against this shape. Returns None when it does not fit."""

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type_name}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GestureShape:
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})
