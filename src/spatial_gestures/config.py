"""YAML configuration for detectors, shapes and sequences.

Example file:

    detector:
      sample_interval: 0.05
      min_point_distance: 0.005
      max_sample_age: 3.0
      min_sample_count: 10

    shapes:
      - type: circular
        shape_id: circle
        min_radius: 0.15
      - type: linear
        shape_id: swipe_right
        expected_direction: [1, 0, 0]
      - type: drawn
        shape_id: star
        template: templates/star.json   # relative to this file, or inline
        max_average_error: 0.1

    sequences:
      - name: summon
        max_step_gap: 1.5
        steps:
          - {label: spin, shape: circle}
          - {label: throw, shape: swipe_right}

Load with ``EngineConfig.from_yaml(path)`` and call ``build()`` to get a
wired GestureDetector and SequenceDetector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from spatial_gestures.circular import CircularShape
from spatial_gestures.detector import DetectorConfig, GestureDetector
from spatial_gestures.drawn import DrawnShape
from spatial_gestures.linear import LinearShape
from spatial_gestures.sequences import GestureSequence, SequenceDetector
from spatial_gestures.shapes import GestureShape
from spatial_gestures.templates import DrawnTemplate, get_template

logger = logging.getLogger("spatial_gestures.config")

SHAPE_TYPES: dict[str, type[GestureShape]] = {
    CircularShape.type_name: CircularShape,
    DrawnShape.type_name: DrawnShape,
    LinearShape.type_name: LinearShape,
}


def shape_from_dict(data: dict, base_dir: Optional[Path] = None) -> GestureShape:
    """Build a shape from its dict form.

    Drawn shapes accept ``template`` as an inline dict or point list, a path to a
    template JSON file (relative to ``base_dir``), or ``builtin:<name>``.

    Raises:
        ValueError: for an unknown ``type``, an unknown built-in template or a
            template that is not a dict, list or string.
    """
    kind = data.get("type")
    cls = SHAPE_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown shape type {kind!r} (expected one of {sorted(SHAPE_TYPES)})")

    template = data.get("template")
    if cls is DrawnShape and isinstance(template, str):
        data = {**data, "template": _resolve_template(template, base_dir).to_dict()}

    return cls.from_dict(data)


def _resolve_template(reference: str, base_dir: Optional[Path]) -> DrawnTemplate:
    if reference.startswith("builtin:"):
        name = reference.split(":", 1)[1]
        template = get_template(name)
        if template is None:
            raise ValueError(f"Unknown built-in template {name!r}")
        return template

    path = Path(reference)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return DrawnTemplate.load(path)


@dataclass
class EngineConfig:
    """Everything needed to build a detector and its sequences."""
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    shapes: list[GestureShape] = field(default_factory=list)
    sequences: list[GestureSequence] = field(default_factory=list)

    def build(self) -> tuple[GestureDetector, SequenceDetector]:
        """Create a GestureDetector with all shapes and an attached SequenceDetector."""
        detector = GestureDetector(self.detector, self.shapes)
        sequences = SequenceDetector(log_completion=self.detector.log_detections)
        for sequence in self.sequences:
            sequences.register(sequence)
        sequences.attach(detector)

        known = {s.shape_id for s in self.shapes}
        for sequence in self.sequences:
            for step in sequence.steps:
                if step.shape_id not in known:
                    logger.warning(
                        "Sequence '%s' step '%s' expects unknown shape %r",
                        sequence.name, step.label, step.shape_id,
                    )
        return detector, sequences

    def to_dict(self) -> dict:
        return {
            "detector": self.detector.to_dict(),
            "shapes": [s.to_dict() for s in self.shapes],
            "sequences": [s.to_dict() for s in self.sequences],
        }

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> EngineConfig:
        return cls(
            detector=DetectorConfig.from_dict(data.get("detector") or {}),
            shapes=[shape_from_dict(s, base_dir) for s in data.get("shapes") or []],
            sequences=[GestureSequence.from_dict(s) for s in data.get("sequences") or []],
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load a configuration file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls.from_dict(data, base_dir=path.parent)
        logger.debug(
            "Loaded %d shapes and %d sequences from %s",
            len(config.shapes), len(config.sequences), path,
        )
        return config

    def to_yaml(self, path: str | Path):
        """Save the configuration, with drawn templates inlined."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(path: str | Path) -> EngineConfig:
    """Read an EngineConfig from a YAML file."""
    return EngineConfig.from_yaml(path)


def save_config(config: EngineConfig, path: str | Path):
    config.to_yaml(path)
