"""Multi-step gesture sequences.

Composes individual shape matches into ordered sequences such as
"circle, then swipe right". Each GestureSequence is tracked by its own
SequenceTracker state machine:

    waiting for step 0 ──match step 0──▶ in progress (index n)
          ▲                                   │
          └──── completion / timeout / mismatch ◀┘

Usage:
    sequences = SequenceDetector()
    sequences.register(GestureSequence(
        name="summon",
        steps=[SequenceStep("spin", "circle"), SequenceStep("throw", "swipe_right")],
        max_step_gap=1.5,
    ))
    sequences.attach(detector)
    sequences.on_complete(lambda evt: print(evt.sequence_name, evt.target))
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Hashable, Optional

from spatial_gestures.shapes import GestureMatch

if TYPE_CHECKING:
    from spatial_gestures.detector import GestureDetector

logger = logging.getLogger("spatial_gestures.sequences")


@dataclass(frozen=True)
class SequenceStep:
    """One required shape in a sequence."""
    label: str = "Step"
    shape_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"label": self.label, "shape": self.shape_id}

    @classmethod
    def from_dict(cls, data: dict) -> SequenceStep:
        return cls(label=data.get("label", "Step"), shape_id=data.get("shape"))


@dataclass(frozen=True)
class GestureSequence:
    """An ordered list of shapes that triggers a compound event.

    Attributes:
        max_step_gap: Max seconds between consecutive steps (0 = unlimited).
        require_same_target: Every step must come from the entity that
            performed the first one.
        restart_on_first_match: Restart progress when the first step's shape
            is matched mid-sequence instead of abandoning it.
    """
    name: str
    steps: tuple[SequenceStep, ...] = ()
    max_step_gap: float = 2.0
    require_same_target: bool = True
    restart_on_first_match: bool = True
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "steps": [s.to_dict() for s in self.steps],
            "max_step_gap": self.max_step_gap,
            "require_same_target": self.require_same_target,
            "restart_on_first_match": self.restart_on_first_match,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GestureSequence:
        return cls(
            name=data["name"],
            steps=tuple(SequenceStep.from_dict(s) for s in data.get("steps", [])),
            max_step_gap=data.get("max_step_gap", 2.0),
            require_same_target=data.get("require_same_target", True),
            restart_on_first_match=data.get("restart_on_first_match", True),
            description=data.get("description", ""),
        )


@dataclass
class SequenceEvent:
    """Fired when a sequence completes."""
    sequence_name: str
    target: Optional[Hashable]
    matches: list[GestureMatch]  # one per step, in order
    duration: float  # time from first to last step
    timestamp: float


class SequenceTracker:
    """State machine tracking progress through one GestureSequence."""

    def __init__(self, sequence: GestureSequence, log_completion: bool = True):
        self.sequence = sequence
        self.log_completion = log_completion
        self._callbacks: list[Callable[[SequenceEvent], None]] = []
        self._current_index = 0
        self._active_target: Optional[Hashable] = None
        self._last_step_time = -math.inf
        self._matches: list[GestureMatch] = []
        self._last_completed: list[GestureMatch] = []

    def on_complete(self, callback: Callable[[SequenceEvent], None]):
        self._callbacks.append(callback)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def in_progress(self) -> bool:
        return self._current_index > 0

    @property
    def active_target(self) -> Optional[Hashable]:
        return self._active_target

    @property
    def last_completed_matches(self) -> list[GestureMatch]:
        """The matches that completed the most recent sequence."""
        return list(self._last_completed)

    def feed(self, match: GestureMatch, timestamp: Optional[float] = None) -> Optional[SequenceEvent]:
        """Advance the state machine with a match.

        ``timestamp`` defaults to the match's detection time. Returns a
        SequenceEvent when this match completes the sequence.
        """
        steps = self.sequence.steps
        if not steps or not match.shape_id:
            return None

        now = match.timestamp if timestamp is None else timestamp

        if self._current_index == 0:
            return self._try_start(match, now)

        if self.sequence.require_same_target and match.target != self._active_target:
            return None

        gap = self.sequence.max_step_gap
        if gap > 0 and now - self._last_step_time > gap:
            self.reset()
            return self._try_start(match, now)

        expected = steps[self._current_index]
        if not expected.shape_id:
            self.reset()
            return None

        if expected.shape_id == match.shape_id:
            return self._accept(match, now)

        if self.sequence.restart_on_first_match and steps[0].shape_id == match.shape_id:
            return self._start(match, now)

        self.reset()
        return None

    def reset(self):
        """Drop any progress made towards the sequence."""
        self._current_index = 0
        self._active_target = None
        self._last_step_time = -math.inf
        self._matches.clear()

    def _try_start(self, match: GestureMatch, now: float) -> Optional[SequenceEvent]:
        first = self.sequence.steps[0]
        if first.shape_id and first.shape_id == match.shape_id:
            return self._start(match, now)
        return None

    def _start(self, match: GestureMatch, now: float) -> Optional[SequenceEvent]:
        self._matches = [match]
        self._active_target = match.target
        self._last_step_time = now
        self._current_index = min(1, len(self.sequence.steps))

        if len(self.sequence.steps) <= 1:
            return self._complete(now)
        return None

    def _accept(self, match: GestureMatch, now: float) -> Optional[SequenceEvent]:
        self._matches.append(match)
        if not self.sequence.require_same_target:
            self._active_target = match.target
        self._last_step_time = now
        self._current_index += 1

        if self._current_index >= len(self.sequence.steps):
            return self._complete(now)
        return None

    def _complete(self, now: float) -> SequenceEvent:
        self._last_completed = list(self._matches)
        target = self._active_target
        if target is None and self._last_completed:
            target = self._last_completed[-1].target

        event = SequenceEvent(
            sequence_name=self.sequence.name,
            target=target,
            matches=list(self._last_completed),
            duration=now - self._last_completed[0].timestamp if self._last_completed else 0.0,
            timestamp=now,
        )

        if self.log_completion:
            logger.info("Sequence '%s' completed for '%s'", self.sequence.name, target)

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error("Sequence listener %r failed: %s", callback, e)

        self.reset()
        return event


class SequenceDetector:
    """Runs several sequence trackers over one stream of matches."""

    def __init__(self, log_completion: bool = True):
        self._trackers: dict[str, SequenceTracker] = {}
        self._callbacks: list[Callable[[SequenceEvent], None]] = []
        self._log_completion = log_completion
        self._detector: Optional[GestureDetector] = None

    def register(self, sequence: GestureSequence) -> SequenceTracker:
        """Add a sequence to watch for. Re-registering a name replaces it."""
        if sequence.name in self._trackers:
            logger.warning("Sequence '%s' already registered, replacing", sequence.name)
        tracker = SequenceTracker(sequence, log_completion=self._log_completion)
        self._trackers[sequence.name] = tracker
        return tracker

    def unregister(self, name: str):
        self._trackers.pop(name, None)

    def on_complete(self, callback: Callable[[SequenceEvent], None]):
        """Register a callback for every completed sequence."""
        self._callbacks.append(callback)

    def feed(self, match: GestureMatch, timestamp: Optional[float] = None) -> list[SequenceEvent]:
        """Feed a match to every tracker. Returns the sequences it completed."""
        events = []
        for tracker in list(self._trackers.values()):
            event = tracker.feed(match, timestamp)
            if event is not None:
                events.append(event)

        for event in events:
            for callback in list(self._callbacks):
                try:
                    callback(event)
                except Exception as e:
                    logger.error("Sequence listener %r failed: %s", callback, e)
        return events

    def attach(self, detector: GestureDetector):
        """Subscribe to a detector's match stream."""
        if self._detector is not None:
            self.detach()
        detector.on_match(self.feed)
        self._detector = detector

    def detach(self):
        if self._detector is not None:
            self._detector.remove_listener(self.feed)
            self._detector = None

    def reset(self, name: Optional[str] = None):
        """Clear progress for one or all sequences."""
        if name is not None:
            tracker = self._trackers.get(name)
            if tracker:
                tracker.reset()
        else:
            for tracker in self._trackers.values():
                tracker.reset()

    def tracker(self, name: str) -> Optional[SequenceTracker]:
        return self._trackers.get(name)

    @property
    def sequences(self) -> list[GestureSequence]:
        return [t.sequence for t in self._trackers.values()]

    @classmethod
    def with_defaults(cls) -> SequenceDetector:
        """Create a detector with sequences over the default detector shapes."""
        detector = cls()

        detector.register(GestureSequence(
            name="circle_swipe",
            steps=(SequenceStep("spin", "circle"), SequenceStep("throw", "swipe_right")),
            max_step_gap=2.0,
            description="Circle then swipe right",
        ))

        detector.register(GestureSequence(
            name="swipe_back_and_forth",
            steps=(SequenceStep("out", "swipe_right"), SequenceStep("back", "swipe_left")),
            max_step_gap=1.5,
            description="Swipe right then left",
        ))

        detector.register(GestureSequence(
            name="triangle_circle",
            steps=(SequenceStep("draw", "triangle"), SequenceStep("seal", "circle")),
            max_step_gap=3.0,
            description="Draw a triangle then circle it",
        ))

        return detector
