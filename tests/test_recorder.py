"""Tests for motion recording and replay."""

import numpy as np
import pytest

from spatial_gestures.circular import CircularShape
from spatial_gestures.detector import DetectorConfig, GestureDetector
from spatial_gestures.motion import CircularMover
from spatial_gestures.recorder import MotionPlayer, MotionRecorder


def record_orbit(seconds=2.0, dt=0.025, start=10.0):
    mover = CircularMover(radius=0.5, axis=(0.0, 0.0, 1.0), revolution_duration=1.0)
    recorder = MotionRecorder()
    recorder.start()
    for i in range(int(round(seconds / dt)) + 1):
        t = i * dt
        positions = {"orbiter": mover.position_at(t)}
        if i % 2 == 0:
            positions["idle"] = (0.0, 1.0, 0.0)
        recorder.add_tick(start + t, positions)
    recorder.stop()
    return recorder


def circle_detector():
    return GestureDetector(
        DetectorConfig(sample_interval=0.0, log_detections=False),
        [CircularShape(minimum_sample_count=15)],
    )


class TestMotionRecorder:
    def test_ignores_ticks_when_not_recording(self):
        recorder = MotionRecorder()
        recorder.add_tick(0.0, {"hand": (0, 0, 0)})
        assert recorder.tick_count == 0

    def test_timestamps_relative_to_first_tick(self):
        recorder = record_orbit(seconds=1.0)
        assert recorder.tick_count == 41
        assert recorder.duration == pytest.approx(1.0)
        assert not recorder.is_recording

    def test_entities_and_trail(self):
        recorder = record_orbit(seconds=1.0)
        assert recorder.entities == ["orbiter", "idle"]
        assert recorder.trail("orbiter").shape == (41, 3)
        assert recorder.trail("idle").shape == (21, 3)
        assert recorder.trail("nobody").shape == (0, 3)

    def test_start_clears_previous_session(self):
        recorder = record_orbit(seconds=0.5)
        recorder.start()
        assert recorder.tick_count == 0


class TestMotionPlayer:
    def test_json_replay_detects_circle(self, tmp_path):
        path = tmp_path / "orbit.json"
        record_orbit().save(path)

        player = MotionPlayer.load(path)
        assert player.tick_count == 81
        assert player.duration == pytest.approx(2.0)

        matches = player.replay(circle_detector())
        assert matches
        assert {m.target for m in matches} == {"orbiter"}

    def test_compact_format_drops_missing_entities(self, tmp_path):
        recorder = record_orbit(seconds=1.0)
        recorder.save_compact(tmp_path / "orbit")

        player = MotionPlayer.load(tmp_path / "orbit.npz")
        frames = list(player.play())
        assert len(frames) == 41
        assert set(frames[0][1]) == {"orbiter", "idle"}
        assert set(frames[1][1]) == {"orbiter"}
        np.testing.assert_allclose(frames[0][1]["idle"], [0.0, 1.0, 0.0])

    def test_compact_and_json_agree(self, tmp_path):
        recorder = record_orbit(seconds=1.0)
        recorder.save(tmp_path / "orbit.json")
        recorder.save_compact(tmp_path / "orbit.npz")

        from_json = list(MotionPlayer.load(tmp_path / "orbit.json").play())
        from_npz = list(MotionPlayer.load(tmp_path / "orbit.npz").play())
        for (t1, p1), (t2, p2) in zip(from_json, from_npz):
            assert t1 == pytest.approx(t2)
            np.testing.assert_allclose(p1["orbiter"], p2["orbiter"])

    def test_replay_with_offset_and_existing_entities(self, tmp_path):
        path = tmp_path / "orbit.json"
        record_orbit().save(path)

        detector = circle_detector()
        detector.register("orbiter")
        matches = MotionPlayer.load(path).replay(detector, start_time=100.0, register=False)

        assert detector.entities == ["orbiter"]
        assert all(m.timestamp >= 100.0 for m in matches)
        assert matches

    def test_replaying_twice_detects_both_times(self, tmp_path):
        path = tmp_path / "orbit.json"
        record_orbit().save(path)
        player = MotionPlayer.load(path)
        detector = circle_detector()

        first = player.replay(detector)
        detector.reset_history("orbiter")
        second = player.replay(detector)
        third = player.replay(detector)

        assert first
        assert [m.timestamp for m in second] == [m.timestamp for m in first]
        assert [m.timestamp for m in third] == [m.timestamp for m in first]
