"""Tests for swipe / straight-line detection."""

import math

import numpy as np
import pytest

from spatial_gestures.buffer import Sample
from spatial_gestures.linear import LinearShape


def line_samples(start, end, count=21, dt=0.02, bump_index=None, bump=(0.0, 0.0, 0.0)):
    start, end = np.asarray(start, dtype=np.float64), np.asarray(end, dtype=np.float64)
    samples = []
    for i in range(count):
        pos = start + (end - start) * (i / (count - 1))
        if i == bump_index:
            pos = pos + np.asarray(bump)
        samples.append(Sample(position=pos, timestamp=i * dt))
    return samples


def swipe(**kwargs):
    params = dict(expected_direction=(1.0, 0.0, 0.0), minimum_sample_count=10)
    params.update(kwargs)
    return LinearShape(**params)


class TestLinearMatch:
    def test_straight_swipe(self):
        match = swipe().evaluate(line_samples((0, 0, 0), (1, 0, 0)))

        assert match is not None
        assert match.shape_id == "swipe"
        np.testing.assert_allclose(match.travel_direction, [1, 0, 0])
        np.testing.assert_allclose(match.center, [0.5, 0, 0])
        assert match.travel_distance == pytest.approx(1.0)
        assert match.radius == 0.0
        assert match.duration == pytest.approx(0.4)

    def test_direction_within_tolerance(self):
        a = math.radians(10.0)
        assert swipe().evaluate(line_samples((0, 0, 0), (math.cos(a), math.sin(a), 0))) is not None

    def test_direction_not_enforced(self):
        shape = swipe(enforce_direction=False)
        assert shape.evaluate(line_samples((0, 0, 0), (0, -1, 0))) is not None

    def test_reverse_allowed(self):
        shape = swipe(allow_reverse=True)
        match = shape.evaluate(line_samples((1, 0, 0), (0, 0, 0)))
        assert match is not None
        np.testing.assert_allclose(match.travel_direction, [-1, 0, 0])

    def test_deviation_just_under_limit(self):
        samples = line_samples((0, 0, 0), (1, 0, 0), bump_index=10, bump=(0.0, 0.099, 0.0))
        assert swipe(max_deviation_from_line=0.1).evaluate(samples) is not None

    def test_distance_exactly_at_minimum(self):
        match = swipe(minimum_distance=0.5).evaluate(line_samples((0, 0, 0), (0.5, 0, 0)))
        assert match is not None
        assert match.travel_distance == pytest.approx(0.5)


class TestLinearRejects:
    def test_too_short(self):
        assert swipe().evaluate(line_samples((0, 0, 0), (0.4, 0, 0))) is None

    def test_wrong_direction(self):
        a = math.radians(30.0)
        assert swipe().evaluate(line_samples((0, 0, 0), (math.cos(a), math.sin(a), 0))) is None

    def test_opposite_direction_without_reverse(self):
        assert swipe().evaluate(line_samples((1, 0, 0), (0, 0, 0))) is None

    def test_deviation_just_over_limit(self):
        samples = line_samples((0, 0, 0), (1, 0, 0), bump_index=10, bump=(0.0, 0.101, 0.0))
        assert swipe(max_deviation_from_line=0.1).evaluate(samples) is None

    def test_back_and_forth_is_not_straight(self):
        out = line_samples((0, 0, 0), (1.5, 0, 0), count=16)
        back = line_samples((1.5, 0, 0), (0.6, 0, 0), count=10)[1:]
        samples = out + [Sample(position=s.position, timestamp=0.3 + s.timestamp) for s in back]

        assert swipe().evaluate(samples) is None
        assert swipe(minimum_straightness=0.5, max_deviation_from_line=1.0).evaluate(samples) is None

    def test_too_few_samples(self):
        assert LinearShape(expected_direction=(1, 0, 0)).evaluate(line_samples((0, 0, 0), (1, 0, 0), count=10)) is None

    def test_non_finite_positions(self):
        samples = line_samples((0, 0, 0), (1, 0, 0), bump_index=4, bump=(np.inf, 0.0, 0.0))
        assert swipe().evaluate(samples) is None


class TestLinearConfig:
    def test_values_clamped(self):
        shape = LinearShape(minimum_straightness=0.1, direction_tolerance=120.0, max_deviation_from_line=0.0)
        assert shape.minimum_straightness == 0.5
        assert shape.direction_tolerance == 90.0
        assert shape.max_deviation_from_line == 0.001

    def test_zero_direction_falls_back(self):
        assert LinearShape(expected_direction=(0, 0, 0)).expected_direction == (1.0, 1.0, 0.0)

    def test_dict_round_trip(self):
        shape = swipe(shape_id="swipe_right", allow_reverse=True)
        assert LinearShape.from_dict(shape.to_dict()) == shape
