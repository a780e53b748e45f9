"""Detection scheduler: per-entity trails, per-shape cooldowns, match events.

Usage:
    detector = GestureDetector(DetectorConfig(sample_interval=0.05))
    detector.add_shape(CircularShape(shape_id="circle"))
    detector.register("right_hand")
    detector.on_match(lambda m: print(m.shape_id, m.target))

    # Each frame:
    detector.tick(now, {"right_hand": position})

Entities can also be registered with a pull source, a callable that takes
the current time and returns the entity's position:

    detector.register("orbiter", source=mover.position_at)
    detector.tick(now)
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Hashable, Iterable, Mapping, Optional

import numpy as np

from spatial_gestures.buffer import Sample, SampleBuffer, positions_of
from spatial_gestures.circular import CircularShape
from spatial_gestures.drawn import DrawnShape
from spatial_gestures.geometry import EPSILON, normalized, sqr_magnitude, travel_distance
from spatial_gestures.linear import LinearShape
from spatial_gestures.shapes import GestureMatch, GestureShape
from spatial_gestures.templates import builtin_templates

logger = logging.getLogger("spatial_gestures.detector")

PositionSource = Callable[[float], "np.ndarray"]


@dataclass(frozen=True)
class DetectorConfig:
    """Global sampling settings shared by all tracked entities.

    Attributes:
        sample_interval: Minimum seconds between two sampling ticks.
        min_point_distance: Movement required before a new sample is stored.
        max_sample_age: Lifetime of stored samples in seconds.
        min_sample_count: Samples required before any shape is evaluated.
        log_detections: Log every successful match at INFO level.
    """
    sample_interval: float = 0.05
    min_point_distance: float = 0.005
    max_sample_age: float = 3.0
    min_sample_count: int = 10
    log_detections: bool = True

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> DetectorConfig:
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class TrackedEntity:
    """Trail and per-shape history for one tracked entity.

    History maps are keyed by shape handle (the shape's slot index).
    """
    identity: Hashable
    buffer: SampleBuffer
    source: Optional[PositionSource] = None
    last_detection_times: dict[int, float] = field(default_factory=dict)
    last_matches: dict[int, GestureMatch] = field(default_factory=dict)

    def clear(self):
        self.buffer.clear()
        self.last_detection_times.clear()
        self.last_matches.clear()


class GestureDetector:
    """Feeds entity positions into trails and evaluates every shape each tick.

    Shapes are kept in an ordered list of slots; the slot index is the
    shape's handle. Matches are delivered to listeners in the order shapes
    were added.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        shapes: Iterable[GestureShape] = (),
    ):
        self.config = config or DetectorConfig()
        self._shapes: list[Optional[GestureShape]] = []
        self._handles: dict[str, int] = {}  # shape_id → slot index
        self._entities: dict[Hashable, TrackedEntity] = {}
        self._listeners: list[Callable[[GestureMatch], None]] = []
        self._shape_listeners: dict[str, list[Callable[[Hashable], None]]] = {}
        self._last_tick: Optional[float] = None

        for shape in shapes:
            self.add_shape(shape)

    # -- shapes -----------------------------------------------------------

    def add_shape(self, shape: GestureShape) -> int:
        """Add a shape and return its handle.

        A shape whose ``shape_id`` is already present replaces the old
        configuration in the same slot, keeping cooldowns and history.
        """
        handle = self._handles.get(shape.shape_id)
        if handle is not None:
            logger.warning("Shape '%s' already registered, replacing configuration", shape.shape_id)
            self._shapes[handle] = shape
            return handle

        handle = len(self._shapes)
        self._shapes.append(shape)
        self._handles[shape.shape_id] = handle
        return handle

    def remove_shape(self, shape_id: str) -> bool:
        """Empty the slot of a shape. Returns False if it was not registered."""
        handle = self._handles.pop(shape_id, None)
        if handle is None:
            return False

        self._shapes[handle] = None
        for entity in self._entities.values():
            entity.last_detection_times.pop(handle, None)
            entity.last_matches.pop(handle, None)
        return True

    def handle_of(self, shape_id: str) -> Optional[int]:
        return self._handles.get(shape_id)

    @property
    def shapes(self) -> list[GestureShape]:
        return [s for s in self._shapes if s is not None]

    # -- entities ---------------------------------------------------------

    def register(self, identity: Hashable, source: Optional[PositionSource] = None):
        """Start tracking an entity. Registering twice is a no-op."""
        if identity is None or identity in self._entities:
            return

        self._entities[identity] = TrackedEntity(
            identity=identity,
            buffer=SampleBuffer(
                min_point_distance=self.config.min_point_distance,
                max_sample_age=self.config.max_sample_age,
            ),
            source=source,
        )

    def unregister(self, identity: Hashable):
        """Stop tracking an entity and drop its history."""
        self._entities.pop(identity, None)

    def reset_history(self, identity: Hashable):
        """Clear an entity's trail and per-shape history so detection restarts."""
        entity = self._entities.get(identity)
        if entity is not None:
            entity.clear()

    def reset(self):
        """Clear history for every entity."""
        for entity in self._entities.values():
            entity.clear()
        self._last_tick = None

    @property
    def entities(self) -> list[Hashable]:
        return list(self._entities.keys())

    def samples(self, identity: Hashable) -> list[Sample]:
        entity = self._entities.get(identity)
        return entity.buffer.samples if entity else []

    def last_match(self, identity: Hashable, shape_id: str) -> Optional[GestureMatch]:
        entity = self._entities.get(identity)
        handle = self._handles.get(shape_id)
        if entity is None or handle is None:
            return None
        return entity.last_matches.get(handle)

    def reconfigure(self, config: DetectorConfig):
        """Swap the sampling settings; existing trails pick them up immediately."""
        self.config = config
        for entity in self._entities.values():
            entity.buffer.min_point_distance = config.min_point_distance
            entity.buffer.max_sample_age = config.max_sample_age

    # -- listeners --------------------------------------------------------

    def on_match(self, callback: Callable[[GestureMatch], None]):
        """Register a callback for every match."""
        self._listeners.append(callback)

    def on_shape(self, shape_id: str, callback: Callable[[Hashable], None]):
        """Register a callback for one shape; it receives the target identity."""
        self._shape_listeners.setdefault(shape_id, []).append(callback)

    def remove_listener(self, callback: Callable) -> bool:
        removed = False
        if callback in self._listeners:
            self._listeners.remove(callback)
            removed = True
        for callbacks in self._shape_listeners.values():
            if callback in callbacks:
                callbacks.remove(callback)
                removed = True
        return removed

    # -- per-tick ---------------------------------------------------------

    def tick(
        self, now: float, positions: Optional[Mapping[Hashable, object]] = None
    ) -> list[GestureMatch]:
        """Sample every entity and evaluate shapes against its trail.

        Args:
            now: Current time in seconds.
            positions: Current position per entity identity. Entities absent
                from the mapping fall back to their pull source, if any.

        Returns:
            Matches produced this tick, in delivery order.

        A ``now`` earlier than the previous tick is taken as a clock restart
        (for example a second replay): every trail is cleared and sampling
        starts again from ``now``.
        """
        if self._last_tick is not None and now < self._last_tick:
            logger.debug("Clock moved back from %.3f to %.3f, restarting", self._last_tick, now)
            self.reset()
        if (
            self._last_tick is not None
            and 0.0 <= now - self._last_tick < self.config.sample_interval - 1e-9
        ):
            return []
        self._last_tick = now

        matches: list[GestureMatch] = []
        for entity in list(self._entities.values()):
            position = self._current_position(entity, now, positions)
            if position is None:
                continue

            self._sample(entity, position, now)
            if len(entity.buffer) < self.config.min_sample_count:
                continue

            matches.extend(self._match_shapes(entity, now))

        return matches

    def _current_position(
        self,
        entity: TrackedEntity,
        now: float,
        positions: Optional[Mapping[Hashable, object]],
    ):
        if positions is not None and entity.identity in positions:
            return positions[entity.identity]
        if entity.source is not None:
            return entity.source(now)
        return None

    def _sample(self, entity: TrackedEntity, position, now: float):
        entity.buffer.record(position, now)
        if entity.buffer.prune(now):
            entity.last_matches.clear()

    def _match_shapes(self, entity: TrackedEntity, now: float) -> list[GestureMatch]:
        samples = entity.buffer.samples
        matches = []

        for handle, shape in enumerate(self._shapes):
            if shape is None:
                continue

            required = max(self.config.min_sample_count, shape.minimum_sample_count)
            if len(samples) < required:
                continue

            last_time = entity.last_detection_times.get(handle, -math.inf)
            if now - last_time < shape.detection_cooldown:
                continue

            match = shape.evaluate(samples)
            if match is None:
                continue

            match = self._complete_match(match, shape, entity, samples, now)
            entity.last_detection_times[handle] = now
            entity.last_matches[handle] = match

            if self.config.log_detections:
                logger.info("Gesture '%s' detected for '%s'", shape.shape_id, entity.identity)

            self._notify(self._listeners, match)
            self._notify(self._shape_listeners.get(shape.shape_id, []), entity.identity)
            matches.append(match)

        return matches

    @staticmethod
    def _complete_match(
        match: GestureMatch,
        shape: GestureShape,
        entity: TrackedEntity,
        samples: list[Sample],
        now: float,
    ) -> GestureMatch:
        """Fill in anything the shape left unset from the raw trail."""
        points = positions_of(samples)
        start, end = points[0], points[-1]
        duration = samples[-1].timestamp - samples[0].timestamp

        travelled = match.travel_distance
        if travelled <= 0.0:
            travelled = travel_distance(points)

        direction = match.travel_direction
        if not np.any(direction):
            displacement = end - start
            direction = normalized(displacement) if sqr_magnitude(displacement) > EPSILON else np.zeros(3)

        return dataclasses.replace(
            match,
            shape_id=shape.shape_id,
            target=entity.identity,
            sampled_positions=match.sampled_positions if match.sampled_positions is not None else points,
            start_position=start.copy(),
            end_position=end.copy(),
            duration=duration if duration > 0.0 else match.duration,
            travel_distance=travelled,
            travel_direction=direction,
            timestamp=now,
        )

    @staticmethod
    def _notify(callbacks: list[Callable], payload):
        for callback in list(callbacks):
            try:
                callback(payload)
            except Exception as e:
                logger.error("Gesture listener %r failed: %s", callback, e)

    @classmethod
    def with_defaults(cls, config: Optional[DetectorConfig] = None) -> GestureDetector:
        """Create a detector with built-in circle, swipe and triangle shapes."""
        detector = cls(config)
        detector.add_shape(CircularShape(shape_id="circle"))
        detector.add_shape(LinearShape(
            shape_id="swipe_right",
            expected_direction=(1.0, 0.0, 0.0),
            minimum_sample_count=10,
        ))
        detector.add_shape(LinearShape(
            shape_id="swipe_left",
            expected_direction=(-1.0, 0.0, 0.0),
            minimum_sample_count=10,
        ))
        detector.add_shape(DrawnShape(
            shape_id="triangle",
            template=builtin_templates()["triangle"],
            minimum_sample_count=20,
        ))
        return detector
