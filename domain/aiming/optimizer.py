"""Aiming Bounded Context - Aim-point search strategies.

OPTIMIZERS maps a strategy name to its search coroutine; optimize_aim picks
one from OptimizeJob.strategy. Cross-Entropy-Method ("CEM", the default)
lives here, the ring-grid sweep in domain.aiming.ring_grid.

Lifecycle of one CEM run:
1) Start from N(0.7 * max_carry, 0.25 * max_carry) x N(0, 20 deg)
2) Each iteration draw batch_size (radius, bearing) candidates, stdevs
   held at or above the configured floor
3) Silently drop candidates past max carry or failing the feasibility feed
4) Evaluate survivors (dispersion cloud -> terrain classes -> ES job);
   remember the best candidate ever seen (strict <, so ties keep the first)
5) Refit the distribution to the elite fraction of the surviving pool
6) After the last iteration return the best candidate, or None if nothing
   was ever feasible

The distribution is only a search heuristic; the returned candidate is the
lowest-mean evaluation across all iterations.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable

import numpy as np

from domain.aiming.ring_grid import ring_grid_search
from domain.aiming.search import (
    Evaluator,
    IterationCallback,
    OptimizeJob,
    evaluate_all,
    evaluate_inline,
    keep_best,
)
from domain.aiming.value_objects import AimCandidate, IterationReport, SearchDistribution

logger = logging.getLogger(__name__)

MIN_ELITES = 2

SearchStrategy = Callable[..., Awaitable[AimCandidate | None]]


def elite_count(pool_size: int, elite_pct: float) -> int:
    return max(MIN_ELITES, math.ceil(elite_pct * pool_size))


async def cem_search(
    job: OptimizeJob,
    *,
    rng: np.random.Generator,
    evaluate: Evaluator,
    on_iteration: IterationCallback | None = None,
) -> AimCandidate | None:
    cfg = job.config
    dist = SearchDistribution.initial(cfg.max_carry_yds)
    best: AimCandidate | None = None
    total_drawn = 0

    for it in range(cfg.iterations):
        accepted: list[tuple[float, float]] = []
        for _ in range(cfg.batch_size):
            radius, bearing = dist.draw(rng, cfg.sigma_floor)
            total_drawn += 1
            if radius > cfg.max_carry_yds:
                continue
            if not job.feeds.feasible(radius, bearing):
                continue
            accepted.append((radius, bearing))

        # Generation order is preserved in pool, so strict < keeps the first tie.
        pool = await evaluate_all(job, accepted, evaluate)
        best = keep_best(best, pool)

        if pool:
            pool.sort(key=lambda c: c.es.mean)
            elites = pool[: elite_count(len(pool), cfg.elite_pct)]
            dist = SearchDistribution.from_elites(
                [c.radius_yds for c in elites], [c.bearing_rad for c in elites]
            )
        else:
            logger.debug("Iteration %d: no feasible candidates, distribution unchanged", it)
        logger.debug(
            "Iteration %d: %d/%d evaluated, mu=(%.1f yd, %.2f deg), sigma=(%.1f yd, %.2f deg)",
            it,
            len(pool),
            cfg.batch_size,
            dist.mean_r,
            math.degrees(dist.mean_theta),
            dist.sigma_r,
            math.degrees(dist.sigma_theta),
        )
        if on_iteration is not None:
            on_iteration(
                IterationReport(
                    iteration=it,
                    drawn=cfg.batch_size,
                    evaluated=len(pool),
                    best_mean=best.es.mean if best is not None else None,
                    distribution=dist,
                )
            )

    if best is None:
        logger.info(
            "No feasible aim point after %d iterations (%d candidates drawn)",
            cfg.iterations,
            total_drawn,
        )
    else:
        logger.info(
            "Best aim: %.1f yd at %.2f deg, ES %.3f +/- %.3f (n=%d)",
            best.radius_yds,
            best.bearing_deg,
            best.es.mean,
            best.es.ci95,
            best.es.n,
        )
    return best


OPTIMIZERS: dict[str, SearchStrategy] = {
    "CEM": cem_search,
    "RingGrid": ring_grid_search,
}


async def optimize_aim(
    job: OptimizeJob,
    *,
    rng: np.random.Generator | None = None,
    evaluate: Evaluator | None = None,
    on_iteration: IterationCallback | None = None,
) -> AimCandidate | None:
    """Search for the aim point with the lowest expected strokes.

    Args:
        job: Start, pin, feeds, search configuration and strategy name
        rng: Random source; defaults to default_rng(job.config.seed)
        evaluate: Async ES evaluator; defaults to evaluating inline
        on_iteration: Called after each CEM update or ring-grid phase

    Returns:
        The best AimCandidate seen, or None if no candidate was feasible.
    """
    search = OPTIMIZERS[job.strategy]
    if rng is None:
        rng = np.random.default_rng(job.config.seed)
    if evaluate is None:
        evaluate = evaluate_inline
    logger.debug("Optimizing with %s", job.strategy)
    return await search(job, rng=rng, evaluate=evaluate, on_iteration=on_iteration)
