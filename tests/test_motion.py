"""Tests for the synthetic motion helpers."""

import numpy as np
import pytest

from spatial_gestures.motion import CircularMover, embed_points, trace_path


class TestCircularMover:
    def test_stays_on_orbit(self):
        mover = CircularMover(pivot=(1.0, 2.0, 3.0), radius=0.7, axis=(0.0, 1.0, 0.0))
        for t in np.linspace(0.0, 4.0, 17):
            offset = mover.position_at(float(t)) - mover.pivot
            assert np.linalg.norm(offset) == pytest.approx(0.7)
            assert offset[1] == pytest.approx(0.0, abs=1e-12)

    def test_counter_clockwise_about_axis(self):
        mover = CircularMover(radius=1.0, axis=(0.0, 0.0, 1.0), start_direction=(1.0, 0.0, 0.0), revolution_duration=4.0)
        np.testing.assert_allclose(mover.position_at(0.0), [1, 0, 0], atol=1e-12)
        np.testing.assert_allclose(mover.position_at(1.0), [0, 1, 0], atol=1e-12)

    def test_clockwise(self):
        mover = CircularMover(
            radius=1.0, axis=(0.0, 0.0, 1.0), start_direction=(1.0, 0.0, 0.0),
            revolution_duration=4.0, clockwise=True,
        )
        np.testing.assert_allclose(mover.position_at(1.0), [0, -1, 0], atol=1e-12)

    def test_angular_speed(self):
        assert CircularMover(revolution_duration=2.0).angular_speed == pytest.approx(180.0)

    def test_callable_as_source(self):
        mover = CircularMover()
        np.testing.assert_allclose(mover(0.3), mover.position_at(0.3))

    def test_samples(self):
        samples = CircularMover().samples(duration=1.0, count=11, start_time=2.0)
        assert len(samples) == 11
        assert samples[0].timestamp == 2.0
        assert samples[-1].timestamp == pytest.approx(3.0)


class TestTracePath:
    def test_open_path(self):
        samples = trace_path([(0, 0, 0), (1, 0, 0)], duration=2.0, count=5)
        np.testing.assert_allclose([s.position[0] for s in samples], [0, 0.25, 0.5, 0.75, 1.0])
        assert [s.timestamp for s in samples] == [0.0, 0.5, 1.0, 1.5, 2.0]

    def test_closed_path_stops_short_of_start(self):
        square = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]
        samples = trace_path(square, count=8, closed=True)
        np.testing.assert_allclose(samples[-1].position, [0, 0.5, 0])

    def test_noise_is_seeded(self):
        a = trace_path([(0, 0, 0), (1, 0, 0)], count=10, noise=0.01, seed=4)
        b = trace_path([(0, 0, 0), (1, 0, 0)], count=10, noise=0.01, seed=4)
        np.testing.assert_allclose([s.position for s in a], [s.position for s in b])

    def test_degenerate_path_holds_still(self):
        samples = trace_path([(1, 1, 1), (1, 1, 1)], count=4)
        np.testing.assert_allclose([s.position for s in samples], np.ones((4, 3)))


class TestEmbedPoints:
    def test_places_points_on_plane(self):
        pts = embed_points([(1.0, 0.0), (0.0, 1.0)], origin=(0, 0, 5), axis_x=(0, 1, 0), axis_y=(0, 0, 1), scale=2.0)
        np.testing.assert_allclose(pts, [[0, 2, 5], [0, 0, 7]])
