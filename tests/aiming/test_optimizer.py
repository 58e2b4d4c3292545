"""Tests for the cross-entropy aim-point search and strategy dispatch."""

from __future__ import annotations

import asyncio
import math

import numpy as np
import pytest

from domain.aiming.feeds import AimFeeds, build_hole_feeds
from domain.aiming.optimizer import OptimizeJob, elite_count, optimize_aim
from domain.aiming.value_objects import (
    OptimizerConfig,
    SearchDistribution,
    SigmaFloor,
    skill_preset,
)
from domain.strokes.evaluator import ESJob, ESResult
from domain.strokes.model import Condition, expected_strokes, fairway_strokes
from domain.terrain.services import great_circle_distance_yds
from domain.terrain.value_objects import GeoPoint, TerrainClass
from tests.conftest_utils import bowl_evaluator, constant_evaluator, synthetic_feeds

START = GeoPoint(latitude=0.0, longitude=0.0)
PIN = GeoPoint(latitude=0.001, longitude=0.0)


def _config(**overrides) -> OptimizerConfig:
    params = {
        "max_carry_yds": 250.0,
        "iterations": 6,
        "batch_size": 32,
        "min_samples": 1,
        "max_samples": 1,
        "seed": 11,
    }
    params.update(overrides)
    return OptimizerConfig(**params)


def _job(feeds: AimFeeds, **overrides) -> OptimizeJob:
    return OptimizeJob(start=START, pin=PIN, feeds=feeds, config=_config(**overrides))


# ===========================================================================
# Elite selection
# ===========================================================================
@pytest.mark.parametrize(
    ("pool", "pct", "expected"),
    [(64, 0.15, 10), (20, 0.15, 3), (5, 0.15, 2), (1, 0.15, 2), (10, 1.0, 10)],
)
def test_elite_count(pool, pct, expected):
    assert elite_count(pool, pct) == expected


def test_refit_uses_population_stdev():
    dist = SearchDistribution.from_elites([100.0, 110.0], [0.0, 0.2])

    assert dist.mean_r == pytest.approx(105.0)
    assert dist.sigma_r == pytest.approx(5.0)
    assert dist.sigma_theta == pytest.approx(0.1)


def test_draw_respects_sigma_floor_and_non_negative_radius():
    rng = np.random.default_rng(0)
    collapsed = SearchDistribution(mean_r=0.0, mean_theta=0.0, sigma_r=0.0, sigma_theta=0.0)
    floor = SigmaFloor(r=5.0, theta_deg=2.0)

    draws = [collapsed.draw(rng, floor) for _ in range(2000)]

    radii = np.array([r for r, _ in draws])
    bearings = np.array([th for _, th in draws])
    assert radii.min() == 0.0
    assert np.std(bearings) == pytest.approx(math.radians(2.0), rel=0.1)
    # Half the draws fall below zero and are clamped
    assert np.mean(radii == 0.0) == pytest.approx(0.5, abs=0.05)


# ===========================================================================
# Search behavior
# ===========================================================================
def test_no_feasible_candidate_returns_none():
    job = _job(synthetic_feeds(feasible=lambda r, th: False), iterations=1, batch_size=1)

    assert asyncio.run(optimize_aim(job, evaluate=constant_evaluator)) is None


def test_infeasible_iterations_leave_distribution_unchanged():
    reports = []
    job = _job(synthetic_feeds(feasible=lambda r, th: False), iterations=3, batch_size=8)

    asyncio.run(optimize_aim(job, evaluate=constant_evaluator, on_iteration=reports.append))

    initial = SearchDistribution.initial(250.0)
    assert [r.evaluated for r in reports] == [0, 0, 0]
    assert all(r.distribution == initial for r in reports)
    assert all(r.best_mean is None for r in reports)


def test_candidates_past_max_carry_are_never_evaluated():
    calls = []
    job = _job(synthetic_feeds(), max_carry_yds=120.0, iterations=3, batch_size=64)

    asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(300.0, 0.0, calls)))

    assert calls
    assert all(0.0 <= r <= 120.0 for r, _ in calls)


def test_infeasible_candidates_are_skipped():
    calls = []
    left_only = synthetic_feeds(feasible=lambda r, th: th < 0)
    job = _job(left_only, iterations=3, batch_size=32)

    best = asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(150.0, 0.2, calls)))

    assert all(th < 0 for _, th in calls)
    assert best.bearing_rad < 0


def test_converges_on_known_minimum():
    job = _job(
        synthetic_feeds(),
        iterations=10,
        batch_size=64,
        sigma_floor={"r": 1.0, "theta_deg": 0.5},
    )

    best = asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(150.0, 0.1)))

    assert best is not None
    assert best.radius_yds == pytest.approx(150.0, abs=5.0)
    assert best.bearing_rad == pytest.approx(0.1, abs=0.05)
    assert best.distance_yds == best.radius_yds


def test_best_is_minimum_over_all_evaluations():
    calls = []
    job = _job(synthetic_feeds(), iterations=4, batch_size=16)

    best = asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(180.0, -0.3, calls)))

    costs = [((r - 180.0) / 10.0) ** 2 + ((th + 0.3) * 10.0) ** 2 for r, th in calls]
    assert best.es.mean == pytest.approx(min(costs))
    assert len(calls) <= 4 * 16


def test_ties_keep_first_candidate():
    cfg = _config(max_carry_yds=200.0, iterations=3, batch_size=8)
    rng = np.random.default_rng(cfg.seed)
    dist = SearchDistribution.initial(cfg.max_carry_yds)
    while True:
        r0, th0 = dist.draw(rng, cfg.sigma_floor)
        if r0 <= cfg.max_carry_yds:
            break

    job = OptimizeJob(start=START, pin=PIN, feeds=synthetic_feeds(), config=cfg)
    best = asyncio.run(optimize_aim(job, evaluate=constant_evaluator))

    assert best.radius_yds == pytest.approx(r0)
    assert best.bearing_rad == pytest.approx(th0)


def test_same_seed_same_answer():
    job = _job(synthetic_feeds(), iterations=5, batch_size=24)

    first = asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(140.0, 0.05)))
    second = asyncio.run(optimize_aim(job, evaluate=bowl_evaluator(140.0, 0.05)))

    assert first == second


def test_concurrency_does_not_change_result():
    sequential = _job(synthetic_feeds(), iterations=4, batch_size=24, max_concurrency=1)
    concurrent = _job(synthetic_feeds(), iterations=4, batch_size=24, max_concurrency=6)

    a = asyncio.run(optimize_aim(sequential, evaluate=bowl_evaluator(160.0, 0.0)))
    b = asyncio.run(optimize_aim(concurrent, evaluate=bowl_evaluator(160.0, 0.0)))

    assert a == b


def test_concurrency_is_bounded():
    in_flight = 0
    peak = 0

    async def slow_evaluate(job: ESJob) -> ESResult:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return await constant_evaluator(job)

    job = _job(synthetic_feeds(), iterations=2, batch_size=20, max_concurrency=3)
    asyncio.run(optimize_aim(job, evaluate=slow_evaluate))

    assert 1 < peak <= 3


def test_async_sample_classes_is_awaited():
    async def sample_later(points):
        await asyncio.sleep(0)
        return [TerrainClass.WATER] * len(points)

    feeds = AimFeeds(
        feasible=lambda r, th: True,
        to_lat_lon=lambda r, th: START,
        axes_for=lambda d: (1.0, 1.0),
        make_ellipse_points=lambda center, a, b, n: [center] * n,
        sample_classes=sample_later,
    )
    job = _job(feeds, iterations=1, batch_size=8, min_samples=5, max_samples=5)

    best = asyncio.run(optimize_aim(job))

    assert best.es.counts_by_class[TerrainClass.WATER] == best.es.n


def test_progress_reports_one_per_iteration():
    reports = []
    job = _job(synthetic_feeds(), iterations=4, batch_size=10)

    best = asyncio.run(
        optimize_aim(job, evaluate=bowl_evaluator(150.0, 0.0), on_iteration=reports.append)
    )

    assert [r.iteration for r in reports] == [0, 1, 2, 3]
    assert all(r.drawn == 10 for r in reports)
    assert reports[-1].best_mean == best.es.mean
    means = [r.best_mean for r in reports]
    assert means == sorted(means, reverse=True)


# ===========================================================================
# End to end over a real mask
# ===========================================================================
def test_all_fairway_hole_aims_at_the_pin(fairway_sampler):
    feeds = build_hole_feeds(START, PIN, fairway_sampler, skill_preset("Scratch"))
    job = OptimizeJob(
        start=START,
        pin=PIN,
        feeds=feeds,
        config=OptimizerConfig(
            max_carry_yds=200.0,
            iterations=8,
            batch_size=32,
            min_samples=200,
            max_samples=200,
            seed=7,
        ),
    )

    best = asyncio.run(optimize_aim(job))

    hole_yds = great_circle_distance_yds(START, PIN)
    assert best is not None
    assert abs(best.bearing_deg) < 5.0
    assert great_circle_distance_yds(best.aim, PIN) < 45.0
    assert best.es.mean < fairway_strokes(hole_yds)
    assert best.es.counts_by_class[TerrainClass.FAIRWAY] == best.es.n == 200

    # The reported ES is the fairway model averaged over the aim's own cloud
    cloud = feeds.make_ellipse_points(best.aim, *feeds.axes_for(best.radius_yds), 200)
    expected = np.mean(
        [expected_strokes(great_circle_distance_yds(p, PIN), Condition.FAIRWAY) for p in cloud]
    )
    assert best.es.mean == pytest.approx(expected, rel=1e-9)


def test_job_accepts_camel_case_config(fairway_sampler):
    feeds = build_hole_feeds(START, PIN, fairway_sampler, skill_preset("Pro"))
    job = OptimizeJob.model_validate(
        {
            "start": {"latitude": 0.0, "longitude": 0.0},
            "pin": {"latitude": 0.001, "longitude": 0.0},
            "feeds": feeds,
            "config": {
                "maxCarryYds": 230,
                "batchSize": 8,
                "elitePct": 0.25,
                "sigmaFloor": {"r": 3, "thetaDeg": 1},
                "minSamples": 10,
                "maxSamples": 20,
                "maxConcurrency": 2,
            },
        }
    )

    assert job.config.batch_size == 8
    assert job.config.sigma_floor.theta_rad == pytest.approx(math.radians(1.0))
    assert job.config.iterations == 6


def test_job_defaults_to_cross_entropy():
    job = _job(synthetic_feeds(), iterations=2, batch_size=4)
    reports = []

    asyncio.run(optimize_aim(job, evaluate=constant_evaluator, on_iteration=reports.append))

    assert job.strategy == "CEM"
    assert all(r.phase is None and r.distribution is not None for r in reports)


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        OptimizeJob(
            start=START, pin=PIN, feeds=synthetic_feeds(), config=_config(), strategy="Grid"
        )
