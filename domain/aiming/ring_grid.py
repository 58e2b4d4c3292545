"""Aiming Bounded Context - Ring-grid aim-point search.

Exhaustive sweep of the forward half-disc in four phases:

1) rings   - concentric rings every ring_step_yds out to max carry, each
             covering bearings -90..+90 deg with points about
             arc_spacing_yds apart (never fewer than min_ring_points)
2) refine  - a refine_steps x refine_steps micro-grid around each of the
             top_seeds ring candidates
3) cover   - random_cover points drawn uniformly over the half-disc
4) recheck - walk all candidates best-first, keep up to `recheck` that are
             at least min_separation_yds apart, and re-evaluate each with
             the full sample budget

Candidates past max carry or failing the feasibility feed are skipped in
every phase. The returned candidate is the lowest re-checked mean (strict <,
so the better-ranked of two equal means wins).
"""

from __future__ import annotations

import logging
import math

import numpy as np

from domain.aiming.search import (
    Evaluator,
    IterationCallback,
    OptimizeJob,
    evaluate_all,
    keep_best,
)
from domain.aiming.value_objects import AimCandidate, IterationReport

logger = logging.getLogger(__name__)

Offset = tuple[float, float]


def _to_plane(radius: float, bearing: float) -> tuple[float, float]:
    # x along the pin line, y to the right of it (yards)
    return radius * math.cos(bearing), radius * math.sin(bearing)


def _to_polar(x: float, y: float) -> Offset:
    return math.hypot(x, y), math.atan2(y, x)


def ring_offsets(
    max_carry_yds: float, step_yds: float, arc_yds: float, min_points: int
) -> list[Offset]:
    """Half-disc lattice, innermost ring first, each ring swept left to right."""
    offsets: list[Offset] = []
    k = 1
    while k * step_yds <= max_carry_yds:
        r = k * step_yds
        n = max(min_points, round(math.pi * r / arc_yds))
        for i in range(n):
            offsets.append((r, i / (n - 1) * math.pi - math.pi / 2))
        k += 1
    return offsets


def refine_offsets(center: Offset, radius_yds: float, steps: int) -> list[Offset]:
    """steps x steps grid of cell radius_yds / steps around center, center excluded."""
    cx, cy = _to_plane(*center)
    cell = radius_yds / steps
    mid = steps // 2
    offsets: list[Offset] = []
    for gx in range(steps):
        for gy in range(steps):
            if gx == mid and gy == mid:
                continue
            offsets.append(_to_polar(cx + (gx - mid) * cell, cy + (gy - mid) * cell))
    return offsets


def cover_offsets(rng: np.random.Generator, max_carry_yds: float, n: int) -> list[Offset]:
    """n points uniform by area over the forward half-disc."""
    u = rng.random((n, 2))
    radii = np.sqrt(u[:, 0]) * max_carry_yds
    bearings = (u[:, 1] - 0.5) * math.pi
    return [(float(r), float(th)) for r, th in zip(radii, bearings)]


def _separated(candidate: AimCandidate, chosen: list[AimCandidate], min_yds: float) -> bool:
    x, y = _to_plane(candidate.radius_yds, candidate.bearing_rad)
    for other in chosen:
        ox, oy = _to_plane(other.radius_yds, other.bearing_rad)
        if math.hypot(x - ox, y - oy) < min_yds:
            return False
    return True


async def ring_grid_search(
    job: OptimizeJob,
    *,
    rng: np.random.Generator,
    evaluate: Evaluator,
    on_iteration: IterationCallback | None = None,
) -> AimCandidate | None:
    """Run the four ring-grid phases and return the best re-checked aim."""
    cfg = job.config
    params = cfg.ring_grid
    best: AimCandidate | None = None
    pool: list[AimCandidate] = []

    def admissible(offsets: list[Offset]) -> list[Offset]:
        return [
            (r, th)
            for r, th in offsets
            if r <= cfg.max_carry_yds and job.feeds.feasible(r, th)
        ]

    def report(iteration: int, phase: str, drawn: int, evaluated: int) -> None:
        logger.debug(
            "Ring grid %s: %d/%d evaluated, best %s",
            phase,
            evaluated,
            drawn,
            f"{best.es.mean:.3f}" if best is not None else "none",
        )
        if on_iteration is not None:
            on_iteration(
                IterationReport(
                    iteration=iteration,
                    drawn=drawn,
                    evaluated=evaluated,
                    best_mean=best.es.mean if best is not None else None,
                    phase=phase,
                )
            )

    # Phase 1: rings
    drawn = ring_offsets(
        cfg.max_carry_yds,
        params.ring_step_yds,
        params.arc_spacing_yds,
        params.min_ring_points,
    )
    rings = await evaluate_all(job, admissible(drawn), evaluate)
    best = keep_best(best, rings)
    pool.extend(rings)
    report(0, "rings", len(drawn), len(rings))

    # Phase 2: micro-grids around the best ring points
    seeds = sorted(rings, key=lambda c: c.es.mean)[: params.top_seeds]
    refine_radius = params.refine_radius_for(cfg.max_carry_yds)
    drawn = [
        offset
        for seed in seeds
        for offset in refine_offsets(
            (seed.radius_yds, seed.bearing_rad), refine_radius, params.refine_steps
        )
    ]
    refined = await evaluate_all(job, admissible(drawn), evaluate)
    best = keep_best(best, refined)
    pool.extend(refined)
    report(1, "refine", len(drawn), len(refined))

    # Phase 3: random cover
    drawn = cover_offsets(rng, cfg.max_carry_yds, params.random_cover)
    covered = await evaluate_all(job, admissible(drawn), evaluate)
    best = keep_best(best, covered)
    pool.extend(covered)
    report(2, "cover", len(drawn), len(covered))

    # Phase 4: full-budget re-check of the best separated candidates
    finalists: list[AimCandidate] = []
    for candidate in sorted(pool, key=lambda c: c.es.mean):
        if len(finalists) >= params.recheck:
            break
        if _separated(candidate, finalists, params.min_separation_yds):
            finalists.append(candidate)
    rechecked = await evaluate_all(
        job,
        [(c.radius_yds, c.bearing_rad) for c in finalists],
        evaluate,
        full_budget=True,
    )
    best = keep_best(None, rechecked)
    report(3, "recheck", len(finalists), len(rechecked))

    if best is None:
        logger.info("Ring grid: no feasible aim point in %d candidates", len(pool))
    else:
        logger.info(
            "Ring grid best aim: %.1f yd at %.2f deg, ES %.3f +/- %.3f (n=%d, %d candidates)",
            best.radius_yds,
            best.bearing_deg,
            best.es.mean,
            best.es.ci95,
            best.es.n,
            len(pool),
        )
    return best
