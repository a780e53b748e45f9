#!/usr/bin/env python3
"""Simulated session: an entity draws a circle, pauses, then swipes right.

Prints every shape match and completed sequence, and can save the motion
for later replay with MotionPlayer.

Usage:
    python examples/demo_orbit.py
    python examples/demo_orbit.py --config gestures.yaml --record session.json
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from spatial_gestures import (
    CircularMover,
    DetectorConfig,
    EngineConfig,
    GestureDetector,
    MotionRecorder,
    SequenceDetector,
)


def simulated_motion(dt: float):
    """Yield (t, position) for one and a quarter turns, a pause and a swipe."""
    mover = CircularMover(radius=0.5, axis=(0.0, 0.0, 1.0), start_direction=(1.0, 0.0, 0.0), revolution_duration=0.8)
    t = 0.0
    while t <= 1.0:
        yield t, mover.position_at(t)
        t += dt

    rest = mover.position_at(t)
    while t <= 1.9:
        yield t, rest
        t += dt

    for k in range(1, 21):
        yield t, rest + np.array([k * 0.05, 0.0, 0.0])
        t += dt


def main():
    parser = argparse.ArgumentParser(description="Simulated gesture session")
    parser.add_argument("--config", help="YAML engine configuration (defaults to built-in shapes)")
    parser.add_argument("--record", help="Save the simulated motion to this file (.json or .npz)")
    parser.add_argument("--dt", type=float, default=0.02, help="Seconds per tick")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show library log output")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.config:
        detector, sequences = EngineConfig.from_yaml(args.config).build()
    else:
        detector = GestureDetector.with_defaults(DetectorConfig(sample_interval=0.0, max_sample_age=0.8))
        sequences = SequenceDetector.with_defaults()
        sequences.attach(detector)

    detector.on_match(lambda m: print(
        f"  [{m.timestamp:5.2f}s] {m.shape_id:<12} target={m.target} "
        f"travel={m.travel_distance:.2f} clockwise={m.is_clockwise}"
    ))
    sequences.on_complete(lambda e: print(
        f"  [{e.timestamp:5.2f}s] >> sequence '{e.sequence_name}' for {e.target} ({e.duration:.2f}s)"
    ))

    recorder = MotionRecorder()
    if args.record:
        recorder.start()

    detector.register("hand")
    print("Simulating circle, pause, swipe right...\n")
    for t, position in simulated_motion(args.dt):
        detector.tick(t, {"hand": position})
        recorder.add_tick(t, {"hand": position})

    if args.record:
        recorder.stop()
        if args.record.endswith(".npz"):
            recorder.save_compact(args.record)
        else:
            recorder.save(args.record)
        print(f"\nSaved {recorder.tick_count} ticks to {args.record}")


if __name__ == "__main__":
    main()
