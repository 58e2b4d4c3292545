"""Aiming Bounded Context - Search job and candidate evaluation.

Shared by every aim-search strategy: the job message, the evaluator port
and the step that turns a polar (radius, bearing) offset into an evaluated
AimCandidate (dispersion cloud -> terrain classes -> ES job).
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from domain.aiming.feeds import AimFeeds
from domain.aiming.value_objects import AimCandidate, IterationReport, OptimizerConfig
from domain.strokes.evaluator import ESJob, ESResult, evaluate_expected_strokes
from domain.terrain.value_objects import GeoPoint

Evaluator = Callable[[ESJob], Awaitable[ESResult]]
IterationCallback = Callable[[IterationReport], None]
Strategy = Literal["CEM", "RingGrid"]


class OptimizeJob(BaseModel):
    """Job message: where the shot starts, where the pin is, and how to search."""

    start: GeoPoint
    pin: GeoPoint
    feeds: AimFeeds
    config: OptimizerConfig
    strategy: Strategy = "CEM"

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


async def evaluate_inline(job: ESJob) -> ESResult:
    """Run the ES evaluation on the current task."""
    return evaluate_expected_strokes(job)


async def evaluate_candidate(
    job: OptimizeJob,
    radius: float,
    bearing: float,
    evaluate: Evaluator,
    *,
    full_budget: bool = False,
) -> AimCandidate:
    """Evaluate one aim offset.

    With full_budget the early stop is disabled (min_samples = max_samples),
    which is how final re-checks get a stable estimate.
    """
    feeds, cfg = job.feeds, job.config
    aim = feeds.to_lat_lon(radius, bearing)
    a, b = feeds.axes_for(radius)
    points = feeds.make_ellipse_points(aim, a, b, cfg.max_samples)

    classes = feeds.sample_classes(points)
    if inspect.isawaitable(classes):
        classes = await classes

    es = await evaluate(
        ESJob(
            pin=job.pin,
            points=points,
            classes=[int(c) for c in classes],
            min_samples=cfg.max_samples if full_budget else cfg.min_samples,
            max_samples=cfg.max_samples,
            epsilon=cfg.epsilon,
        )
    )
    return AimCandidate(radius_yds=radius, bearing_rad=bearing, aim=aim, es=es)


async def evaluate_all(
    job: OptimizeJob,
    offsets: Sequence[tuple[float, float]],
    evaluate: Evaluator,
    *,
    full_budget: bool = False,
) -> list[AimCandidate]:
    """Evaluate offsets, in order, at most max_concurrency at a time."""
    cfg = job.config
    if cfg.max_concurrency <= 1:
        return [
            await evaluate_candidate(job, r, th, evaluate, full_budget=full_budget)
            for r, th in offsets
        ]

    semaphore = asyncio.Semaphore(cfg.max_concurrency)

    async def bounded(radius: float, bearing: float) -> AimCandidate:
        async with semaphore:
            return await evaluate_candidate(
                job, radius, bearing, evaluate, full_budget=full_budget
            )

    return list(await asyncio.gather(*(bounded(r, th) for r, th in offsets)))


def keep_best(
    best: AimCandidate | None, candidates: Iterable[AimCandidate]
) -> AimCandidate | None:
    """Lowest mean seen so far; strict < so the earliest of equal means wins."""
    for candidate in candidates:
        if best is None or candidate.es.mean < best.es.mean:
            best = candidate
    return best
