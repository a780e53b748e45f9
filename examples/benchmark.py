#!/usr/bin/env python3
"""SpatialGestures Benchmark: per-tick detection latency and throughput.

Drives the default detector with synthetic orbiting entities, so no
tracking hardware is required.

Usage:
    python examples/benchmark.py
    python examples/benchmark.py --ticks 5000 --entities 4
"""

from __future__ import annotations

import argparse
import gc
import os
import sys
import time
from pathlib import Path

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spatial_gestures.detector import DetectorConfig, GestureDetector
from spatial_gestures.motion import CircularMover
from spatial_gestures.sequences import SequenceDetector
from spatial_gestures.shapes import GestureMatch


def make_movers(count: int) -> list[CircularMover]:
    """Orbiters with different radii, planes and speeds."""
    rng = np.random.default_rng(0)
    movers = []
    for _ in range(count):
        axis = rng.normal(size=3)
        movers.append(CircularMover(
            pivot=rng.uniform(-2.0, 2.0, size=3),
            radius=float(rng.uniform(0.3, 1.0)),
            axis=axis,
            revolution_duration=float(rng.uniform(0.8, 2.0)),
        ))
    return movers


def benchmark_ticks(detector: GestureDetector, ticks: int, dt: float) -> dict:
    """Time every call to detector.tick."""
    gc.collect()
    times = []
    matches = 0

    for i in range(ticks):
        t0 = time.perf_counter()
        matches += len(detector.tick(i * dt))
        times.append(time.perf_counter() - t0)

    times_ms = np.array(times) * 1000
    return {
        "mean_ms": float(np.mean(times_ms)),
        "median_ms": float(np.median(times_ms)),
        "p95_ms": float(np.percentile(times_ms, 95)),
        "p99_ms": float(np.percentile(times_ms, 99)),
        "max_ms": float(np.max(times_ms)),
        "throughput_tps": 1000.0 / float(np.mean(times_ms)),
        "matches": matches,
    }


def benchmark_sequences(detector: SequenceDetector, n: int) -> dict:
    """Time feeding shape matches through the sequence trackers."""
    shape_ids = ["circle", "swipe_right", "swipe_left", "triangle"]
    matches = [
        GestureMatch(shape_id=shape_ids[i % len(shape_ids)], target="hand", timestamp=i * 0.3)
        for i in range(n)
    ]

    gc.collect()
    times = []
    for match in matches:
        t0 = time.perf_counter()
        detector.feed(match)
        times.append(time.perf_counter() - t0)

    times_ms = np.array(times) * 1000
    return {
        "mean_ms": float(np.mean(times_ms)),
        "throughput_fps": 1000.0 / float(np.mean(times_ms)),
    }


def report(section: str, results: list[tuple[str, str]]):
    """Print one benchmark section as dotted name/value lines."""
    label_width = max(len(name) for name, _ in results) + 4
    print(f"\n  {section}")
    print("  " + "=" * len(section))
    for name, value in results:
        print(f"  {name + ' ':.<{label_width}} {value}")


def main():
    parser = argparse.ArgumentParser(description="SpatialGestures Benchmark")
    parser.add_argument("-n", "--ticks", type=int, default=2000, help="Number of detector ticks")
    parser.add_argument("--entities", type=int, default=2, help="Tracked entities per tick")
    parser.add_argument("--dt", type=float, default=0.02, help="Simulated seconds per tick")
    args = parser.parse_args()

    config = DetectorConfig(sample_interval=0.0, log_detections=False)
    detector = GestureDetector.with_defaults(config)
    for i, mover in enumerate(make_movers(args.entities)):
        detector.register(f"entity_{i}", source=mover)

    sequences = SequenceDetector.with_defaults()

    print(f"\n  Running {args.ticks} ticks with {args.entities} entities...")
    tick_results = benchmark_ticks(detector, args.ticks, args.dt)

    print("  Running sequence benchmark...")
    seq_results = benchmark_sequences(sequences, args.ticks)

    report("Detector Tick", [
        ("Mean latency", f"{tick_results['mean_ms']:.3f} ms"),
        ("Median latency", f"{tick_results['median_ms']:.3f} ms"),
        ("P95 latency", f"{tick_results['p95_ms']:.3f} ms"),
        ("P99 latency", f"{tick_results['p99_ms']:.3f} ms"),
        ("Max latency", f"{tick_results['max_ms']:.3f} ms"),
        ("Throughput", f"{tick_results['throughput_tps']:.0f} ticks/sec"),
        ("Matches", f"{tick_results['matches']}"),
    ])

    report("Sequence Tracking", [
        ("Mean latency", f"{seq_results['mean_ms']:.4f} ms"),
        ("Throughput", f"{seq_results['throughput_fps']:.0f} matches/sec"),
    ])

    report("System", [
        ("Shapes registered", f"{len(detector.shapes)}"),
        ("Sequences registered", f"{len(sequences.sequences)}"),
        ("Platform", f"{sys.platform} / {os.uname().machine}"),
        ("Python", f"{sys.version.split()[0]}"),
        ("NumPy", f"{np.__version__}"),
    ])
    print()


if __name__ == "__main__":
    main()
