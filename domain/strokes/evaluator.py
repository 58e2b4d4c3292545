"""Strokes Bounded Context - Adaptive Monte-Carlo expected-strokes evaluator.

Walks a pre-generated, low-discrepancy dispersion point cloud in order,
scoring each landing point against the pin, and stops as soon as the 95%
confidence half-width of the running mean reaches the target.
"""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from domain.strokes.model import condition_for_class, expected_strokes
from domain.strokes.stats import OnlineStats
from domain.terrain.services import great_circle_distance_yds
from domain.terrain.value_objects import GeoPoint, TerrainClass

logger = logging.getLogger(__name__)


def empty_histogram() -> dict[TerrainClass, int]:
    return {klass: 0 for klass in TerrainClass}


# ---------------------------------------------------------------------------
# ESJob
# ---------------------------------------------------------------------------
class ESJob(BaseModel):
    """One expected-strokes evaluation request.

    Invariants:
        len(points) == len(classes)
        min_samples, max_samples >= 1; epsilon >= 0
    """

    pin: GeoPoint
    points: list[GeoPoint]  # Halton-ordered cloud around the aim point
    classes: list[int]  # Mask class per point (raw ids are coerced)
    min_samples: int = Field(ge=1)
    max_samples: int = Field(ge=1)
    epsilon: float = Field(ge=0)

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @model_validator(mode="after")
    def validate_parallel(self) -> "ESJob":
        if len(self.points) != len(self.classes):
            raise ValueError(
                f"points ({len(self.points)}) and classes ({len(self.classes)}) "
                "must be the same length"
            )
        return self


# ---------------------------------------------------------------------------
# ESResult
# ---------------------------------------------------------------------------
class ESResult(BaseModel):
    """Outcome of one evaluation (Value Object).

    Fields:
        mean: Mean expected strokes over the samples used
        ci95: Half-width of the 95% CI (inf when n <= 1)
        n: Samples actually used
        counts_by_class: Hits per terrain class over those samples
    """

    mean: float
    ci95: float
    n: int = Field(ge=0)
    counts_by_class: dict[TerrainClass, int]

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    def fraction(self, klass: TerrainClass) -> float:
        """Share of used samples that landed in klass (0.0 when n == 0)."""
        if self.n == 0:
            return 0.0
        return self.counts_by_class.get(klass, 0) / self.n


# ---------------------------------------------------------------------------
# Main Service: evaluate_expected_strokes
# ---------------------------------------------------------------------------
def evaluate_expected_strokes(job: ESJob) -> ESResult:
    """Estimate expected strokes for one aim point.

    Samples are consumed in order up to max_samples. Once at least
    min_samples have been folded in (checked as i + 1 >= min_samples),
    the run stops at the first sample whose running ci95 is <= epsilon.
    If the budget runs out first, the result carries whatever confidence
    was reached.

    Example:
        >>> result = evaluate_expected_strokes(job)
        >>> print(f"{result.mean:.3f} +/- {result.ci95:.3f} (n={result.n})")
    """
    stats = OnlineStats()
    counts = empty_histogram()
    limit = min(len(job.points), job.max_samples)

    for i in range(limit):
        klass = TerrainClass.coerce(job.classes[i])
        counts[klass] += 1

        distance = great_circle_distance_yds(job.points[i], job.pin)
        stats.add(expected_strokes(distance, condition_for_class(klass)))

        if i + 1 >= job.min_samples and stats.ci95() <= job.epsilon:
            logger.debug(
                "ES converged after %d samples: mean=%.4f ci95=%.4f",
                i + 1,
                stats.mean,
                stats.ci95(),
            )
            return ESResult(
                mean=stats.mean, ci95=stats.ci95(), n=i + 1, counts_by_class=counts
            )

    ci95 = stats.ci95()
    if limit and not math.isinf(ci95):
        logger.debug(
            "ES budget exhausted at %d samples: mean=%.4f ci95=%.4f (target %.4f)",
            limit,
            stats.mean,
            ci95,
            job.epsilon,
        )
    return ESResult(mean=stats.mean, ci95=ci95, n=limit, counts_by_class=counts)
