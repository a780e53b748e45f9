"""Motion recording and replay: capture per-tick entity positions to disk.

Record real tracking sessions for:
- Reproducible tests without a tracking device
- Tuning shape thresholds offline against the same motion
- Building drawn templates from a captured stroke

Entity identities are stored as strings.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Hashable, Iterator, Mapping, Optional

import numpy as np

if TYPE_CHECKING:
    from spatial_gestures.detector import GestureDetector
    from spatial_gestures.shapes import GestureMatch


@dataclass
class RecordedTick:
    """Positions of every entity at one tick."""
    timestamp: float  # seconds from recording start
    positions: dict[str, list[float]]


class MotionRecorder:
    """Records entity positions tick by tick.

    Usage:
        recorder = MotionRecorder()
        recorder.start()
        # In your frame loop, next to detector.tick(now, positions):
        recorder.add_tick(now, positions)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._ticks: list[RecordedTick] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._ticks = []
        self._start_time = None
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of ticks captured."""
        self._recording = False
        return len(self._ticks)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def tick_count(self) -> int:
        return len(self._ticks)

    @property
    def duration(self) -> float:
        if not self._ticks:
            return 0.0
        return self._ticks[-1].timestamp

    @property
    def entities(self) -> list[str]:
        names: dict[str, None] = {}
        for tick in self._ticks:
            names.update(dict.fromkeys(tick.positions))
        return list(names)

    def add_tick(self, now: float, positions: Mapping[Hashable, object]):
        """Add the positions observed at time ``now``."""
        if not self._recording:
            return

        if self._start_time is None:
            self._start_time = now

        self._ticks.append(RecordedTick(
            timestamp=float(now - self._start_time),
            positions={
                str(identity): np.asarray(pos, dtype=np.float64).reshape(3).tolist()
                for identity, pos in positions.items()
            },
        ))

    def trail(self, identity: Hashable) -> np.ndarray:
        """All recorded positions of one entity, shape (N, 3)."""
        key = str(identity)
        rows = [t.positions[key] for t in self._ticks if key in t.positions]
        return np.array(rows, dtype=np.float64).reshape(-1, 3)

    def save(self, path: str | Path):
        """Save recording to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": 1,
            "tick_count": len(self._ticks),
            "duration": self.duration,
            "entities": self.entities,
            "ticks": [asdict(t) for t in self._ticks],
        }

        with open(path, "w") as f:
            json.dump(data, f)

    def save_compact(self, path: str | Path):
        """Save in compact binary format (numpy npz). Missing positions are NaN."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        entities = self.entities
        timestamps = np.array([t.timestamp for t in self._ticks], dtype=np.float64)
        positions = np.full((len(self._ticks), len(entities), 3), np.nan, dtype=np.float64)
        for i, tick in enumerate(self._ticks):
            for j, name in enumerate(entities):
                if name in tick.positions:
                    positions[i, j] = tick.positions[name]

        np.savez_compressed(
            path,
            timestamps=timestamps,
            positions=positions,
            entities=np.array(entities, dtype=str),
        )


class MotionPlayer:
    """Replays a recorded motion session.

    Usage:
        player = MotionPlayer.load("session.json")
        matches = player.replay(detector)
    """

    def __init__(self, ticks: list[RecordedTick]):
        self._ticks = ticks

    @classmethod
    def load(cls, path: str | Path) -> MotionPlayer:
        """Load a recording saved by ``save`` or ``save_compact``."""
        path = Path(path)

        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        ticks = [
            RecordedTick(timestamp=t["timestamp"], positions=t["positions"])
            for t in data["ticks"]
        ]
        return cls(ticks)

    @classmethod
    def _load_compact(cls, path: Path) -> MotionPlayer:
        data = np.load(path, allow_pickle=False)
        timestamps = data["timestamps"]
        positions = data["positions"]
        entities = [str(e) for e in data["entities"]]

        ticks = []
        for i in range(len(timestamps)):
            present = {
                name: positions[i, j].tolist()
                for j, name in enumerate(entities)
                if not np.isnan(positions[i, j]).any()
            }
            ticks.append(RecordedTick(timestamp=float(timestamps[i]), positions=present))
        return cls(ticks)

    @property
    def tick_count(self) -> int:
        return len(self._ticks)

    @property
    def duration(self) -> float:
        if not self._ticks:
            return 0.0
        return self._ticks[-1].timestamp

    def play(self) -> Iterator[tuple[float, dict[str, np.ndarray]]]:
        """Yield (timestamp, {entity: position}) for every tick."""
        for tick in self._ticks:
            yield tick.timestamp, {
                name: np.array(pos, dtype=np.float64) for name, pos in tick.positions.items()
            }

    def replay(
        self, detector: GestureDetector, start_time: float = 0.0, register: bool = True
    ) -> list[GestureMatch]:
        """Feed every tick through ``detector.tick``. Returns all matches."""
        matches = []
        for timestamp, positions in self.play():
            if register:
                for name in positions:
                    detector.register(name)
            matches.extend(detector.tick(start_time + timestamp, positions))
        return matches
