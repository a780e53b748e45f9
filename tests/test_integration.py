"""End-to-end: positions in, shape matches and sequence events out."""

import numpy as np

from spatial_gestures import (
    CircularMover,
    CircularShape,
    DetectorConfig,
    DrawnShape,
    EngineConfig,
    GestureDetector,
    GestureSequence,
    LinearShape,
    SequenceDetector,
    SequenceStep,
    builtin_templates,
)
from spatial_gestures.motion import embed_points, trace_path

DT = 0.02


def circle_then_swipe():
    """Yield (t, position): one and a quarter turns, a pause, then a swipe along +X."""
    mover = CircularMover(radius=0.5, axis=(0.0, 0.0, 1.0), start_direction=(1.0, 0.0, 0.0), revolution_duration=0.8)
    for i in range(51):
        yield i * DT, mover.position_at(i * DT)

    rest = mover.position_at(50 * DT)
    for i in range(51, 96):
        yield i * DT, rest

    for k in range(1, 21):
        yield (95 + k) * DT, rest + np.array([k * 0.05, 0.0, 0.0])


class TestCircleThenSwipe:
    def build(self):
        config = DetectorConfig(sample_interval=0.0, max_sample_age=0.8, log_detections=False)
        detector = GestureDetector(config, [
            CircularShape(shape_id="circle"),
            LinearShape(shape_id="swipe_right", expected_direction=(1.0, 0.0, 0.0), minimum_sample_count=10),
        ])
        sequences = SequenceDetector(log_completion=False)
        sequences.register(GestureSequence(
            name="circle_swipe",
            steps=(SequenceStep("spin", "circle"), SequenceStep("throw", "swipe_right")),
            max_step_gap=2.0,
        ))
        sequences.attach(detector)
        detector.register("hand")
        return detector, sequences

    def test_sequence_completes(self):
        detector, sequences = self.build()
        events, matches = [], []
        sequences.on_complete(events.append)

        for t, position in circle_then_swipe():
            matches.extend(detector.tick(t, {"hand": position}))

        assert [m.shape_id for m in matches] == ["circle", "swipe_right"]
        assert len(events) == 1
        assert events[0].sequence_name == "circle_swipe"
        assert events[0].target == "hand"
        assert [m.shape_id for m in events[0].matches] == ["circle", "swipe_right"]

    def test_detached_sequences_stay_silent(self):
        detector, sequences = self.build()
        events = []
        sequences.on_complete(events.append)
        sequences.detach()

        for t, position in circle_then_swipe():
            detector.tick(t, {"hand": position})
        assert events == []


class TestDrawnThroughDetector:
    def test_triangle_drawn_in_the_air(self):
        triangle = builtin_templates()["triangle"]
        detector = GestureDetector(
            DetectorConfig(sample_interval=0.0, log_detections=False),
            [DrawnShape(shape_id="triangle", template=triangle, minimum_sample_count=20)],
        )
        detector.register("wand")

        corners = embed_points(triangle.as_array(), origin=(0.0, 1.2, 0.4), axis_x=(1, 0, 0), axis_y=(0, 1, 0), scale=0.3)
        matches = []
        for sample in trace_path(corners, duration=1.5, count=60, closed=True, start_time=5.0, noise=0.002, seed=7):
            matches.extend(detector.tick(sample.timestamp, {"wand": sample.position}))

        assert len(matches) == 1
        assert matches[0].shape_id == "triangle"
        assert matches[0].target == "wand"
        assert matches[0].alignment_error < 0.08


class TestConfiguredEngine:
    def test_yaml_configured_engine(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "detector:\n"
            "  sample_interval: 0.0\n"
            "  max_sample_age: 0.8\n"
            "  log_detections: false\n"
            "shapes:\n"
            "  - type: circular\n"
            "    shape_id: circle\n"
            "  - type: linear\n"
            "    shape_id: swipe_right\n"
            "    expected_direction: [1, 0, 0]\n"
            "    minimum_sample_count: 10\n"
            "sequences:\n"
            "  - name: circle_swipe\n"
            "    steps:\n"
            "      - {label: spin, shape: circle}\n"
            "      - {label: throw, shape: swipe_right}\n"
        )

        detector, sequences = EngineConfig.from_yaml(path).build()
        detector.register("hand")
        events = []
        sequences.on_complete(events.append)

        for t, position in circle_then_swipe():
            detector.tick(t, {"hand": position})
        assert [e.sequence_name for e in events] == ["circle_swipe"]
