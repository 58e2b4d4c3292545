"""Tests for the expected-strokes cost model."""

from __future__ import annotations

import pytest

from domain.strokes.model import (
    FAIRWAY_COEFFS,
    ROUGH_COEFFS,
    Condition,
    condition_for_class,
    evaluate_polynomial,
    expected_strokes,
    fairway_strokes,
    putting_strokes,
    recovery_strokes,
    rough_strokes,
    sand_strokes,
    water_strokes,
)
from domain.terrain.value_objects import TerrainClass


def test_fairway_at_150_yards():
    assert fairway_strokes(150.0) == pytest.approx(2.907, abs=0.005)


def test_rough_costs_more_than_fairway():
    assert rough_strokes(150.0) == pytest.approx(3.150, abs=0.005)
    assert rough_strokes(150.0) > fairway_strokes(150.0)


def test_water_is_rough_plus_penalty():
    for d in (5.0, 80.0, 200.0, 420.0):
        assert water_strokes(d) == pytest.approx(rough_strokes(d) + 1.0)


@pytest.mark.parametrize(
    "model", [putting_strokes, fairway_strokes, rough_strokes, sand_strokes, recovery_strokes]
)
def test_zero_and_negative_distance_is_one_stroke(model):
    assert model(0.0) == 1.0
    assert model(-3.0) == 1.0


def test_every_condition_is_at_least_one_stroke():
    for condition in Condition:
        for d in (0.1, 1.0, 10.0, 100.0, 300.0, 550.0, 700.0):
            assert expected_strokes(d, condition) >= 1.0


def test_tap_in_putt():
    assert putting_strokes(0.2) == 1.001


def test_long_putt_uses_fairway_model():
    assert putting_strokes(40.0) == fairway_strokes(40.0)


@pytest.mark.parametrize(
    ("model", "knot", "coeffs"),
    [(fairway_strokes, 7.43, FAIRWAY_COEFFS), (rough_strokes, 7.76, ROUGH_COEFFS)],
)
def test_short_range_ramp_meets_polynomial(model, knot, coeffs):
    assert model(knot - 1e-9) == pytest.approx(evaluate_polynomial(knot, coeffs), abs=1e-6)


def test_extrapolation_reaches_anchor_at_600():
    assert fairway_strokes(600.0) == pytest.approx(5.25)
    assert rough_strokes(600.0) == pytest.approx(5.4)


def test_fairway_grows_with_distance():
    values = [fairway_strokes(d) for d in (20.0, 60.0, 120.0, 180.0, 240.0, 300.0)]
    assert values == sorted(values)


def test_condition_names_are_parsed_leniently():
    assert expected_strokes(120.0, "FAIRWAY") == fairway_strokes(120.0)
    assert expected_strokes(120.0, "bunker") == sand_strokes(120.0)
    assert expected_strokes(120.0, "tee") == fairway_strokes(120.0)
    assert expected_strokes(120.0, "cart path") == rough_strokes(120.0)


@pytest.mark.parametrize(
    ("klass", "condition"),
    [
        (TerrainClass.GREEN, Condition.GREEN),
        (TerrainClass.FAIRWAY, Condition.FAIRWAY),
        (TerrainClass.BUNKER, Condition.SAND),
        (TerrainClass.RECOVERY, Condition.RECOVERY),
        (TerrainClass.WATER, Condition.WATER),
        (TerrainClass.TEE, Condition.TEE),
        (TerrainClass.ROUGH, Condition.ROUGH),
        (TerrainClass.OB, Condition.ROUGH),
        (TerrainClass.HAZARD, Condition.ROUGH),
        (TerrainClass.UNKNOWN, Condition.ROUGH),
        (200, Condition.ROUGH),
    ],
)
def test_condition_for_class(klass, condition):
    assert condition_for_class(klass) is condition
