"""Aiming Bounded Context - Value Objects.

Search configuration, the CEM sampling distribution, ring-grid settings and
optimizer output. All validation occurs at construction time via Pydantic;
job messages may use either snake_case or camelCase keys.
"""

from __future__ import annotations

import math

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from domain.strokes.evaluator import ESResult
from domain.terrain.value_objects import GeoPoint

INITIAL_MEAN_FRACTION = 0.7  # Initial radius mean, fraction of max carry
INITIAL_SIGMA_FRACTION = 0.25  # Initial radius stdev, fraction of max carry
INITIAL_SIGMA_THETA_DEG = 20.0


class _Message(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


# ---------------------------------------------------------------------------
# SkillPreset
# ---------------------------------------------------------------------------
class SkillPreset(_Message):
    """Player dispersion profile.

    offline_deg: lateral miss angle; dist_pct: +/- distance error as % of carry.
    """

    name: str
    offline_deg: float = Field(gt=0, lt=90)
    dist_pct: float = Field(gt=0)


SKILL_PRESETS: tuple[SkillPreset, ...] = (
    SkillPreset(name="Robot", offline_deg=2.5, dist_pct=2.5),
    SkillPreset(name="Pro", offline_deg=5.9, dist_pct=6.75),
    SkillPreset(name="Elite Am", offline_deg=6.45, dist_pct=6.95),
    SkillPreset(name="Scratch", offline_deg=6.9, dist_pct=7.3),
    SkillPreset(name="Good Golfer", offline_deg=7.45, dist_pct=8.0),
    SkillPreset(name="Average Golfer", offline_deg=8.2, dist_pct=8.75),
    SkillPreset(name="Bad Golfer", offline_deg=9.4, dist_pct=10.0),
    SkillPreset(name="Terrible Golfer", offline_deg=12.5, dist_pct=14.0),
)


def skill_preset(name: str) -> SkillPreset:
    """Look up a built-in preset by (case-insensitive) name."""
    for preset in SKILL_PRESETS:
        if preset.name.lower() == name.strip().lower():
            return preset
    raise KeyError(f"Unknown skill preset: {name!r}")


# ---------------------------------------------------------------------------
# OptimizerConfig
# ---------------------------------------------------------------------------
class SigmaFloor(_Message):
    """Lower bound on the search stdev per axis (radius yards, bearing degrees)."""

    r: float = Field(default=5.0, ge=0)
    theta_deg: float = Field(default=2.0, ge=0)

    @property
    def theta_rad(self) -> float:
        return math.radians(self.theta_deg)


class RingGridParams(_Message):
    """Lattice and refinement settings for the ring-grid strategy (yards)."""

    ring_step_yds: float = Field(default=10.0, gt=0)
    arc_spacing_yds: float = Field(default=10.0, gt=0)
    min_ring_points: int = Field(default=16, ge=2)
    top_seeds: int = Field(default=12, ge=0)
    refine_steps: int = Field(default=7, ge=1)
    refine_radius_yds: float | None = Field(default=None, gt=0)
    random_cover: int = Field(default=200, ge=0)
    recheck: int = Field(default=8, ge=1)
    min_separation_yds: float = Field(default=3.0, ge=0)

    def refine_radius_for(self, max_carry_yds: float) -> float:
        """Explicit radius, else 3% of max carry with a 10 yd minimum."""
        if self.refine_radius_yds is not None:
            return self.refine_radius_yds
        return max(0.03 * max_carry_yds, 10.0)


class OptimizerConfig(_Message):
    """Search budget and Monte-Carlo stopping parameters.

    For CEM, wall-clock cost is bounded by iterations x batch_size x
    max_samples. The ring-grid strategy ignores iterations, batch_size,
    elite_pct and sigma_floor and reads ring_grid instead.
    """

    max_carry_yds: float = Field(gt=0)
    iterations: int = Field(default=6, ge=1)
    batch_size: int = Field(default=64, ge=1)
    elite_pct: float = Field(default=0.15, gt=0, le=1)
    sigma_floor: SigmaFloor = Field(default_factory=SigmaFloor)
    epsilon: float = Field(default=0.03, ge=0)
    min_samples: int = Field(default=200, ge=1)
    max_samples: int = Field(default=3000, ge=1)
    max_concurrency: int = Field(default=1, ge=1)
    seed: int | None = None
    ring_grid: RingGridParams = Field(default_factory=RingGridParams)

    @model_validator(mode="after")
    def validate_sample_budget(self) -> "OptimizerConfig":
        if self.max_samples < self.min_samples:
            raise ValueError(
                f"max_samples ({self.max_samples}) must be >= min_samples ({self.min_samples})"
            )
        return self


# ---------------------------------------------------------------------------
# SearchDistribution
# ---------------------------------------------------------------------------
class SearchDistribution(_Message):
    """Independent Gaussians over (radius yards, bearing radians)."""

    mean_r: float
    mean_theta: float
    sigma_r: float = Field(ge=0)
    sigma_theta: float = Field(ge=0)

    @classmethod
    def initial(cls, max_carry_yds: float) -> "SearchDistribution":
        return cls(
            mean_r=INITIAL_MEAN_FRACTION * max_carry_yds,
            mean_theta=0.0,
            sigma_r=INITIAL_SIGMA_FRACTION * max_carry_yds,
            sigma_theta=math.radians(INITIAL_SIGMA_THETA_DEG),
        )

    @classmethod
    def from_elites(
        cls, radii: list[float], bearings: list[float]
    ) -> "SearchDistribution":
        """Population (ddof=0) mean and stdev of the elite set."""
        r = np.asarray(radii, dtype=np.float64)
        th = np.asarray(bearings, dtype=np.float64)
        return cls(
            mean_r=float(r.mean()),
            mean_theta=float(th.mean()),
            sigma_r=float(r.std()),
            sigma_theta=float(th.std()),
        )

    def draw(self, rng: np.random.Generator, floor: SigmaFloor) -> tuple[float, float]:
        """One (radius, bearing) draw with stdevs held at or above the floor."""
        r = self.mean_r + rng.standard_normal() * max(self.sigma_r, floor.r)
        th = self.mean_theta + rng.standard_normal() * max(
            self.sigma_theta, floor.theta_rad
        )
        return max(0.0, float(r)), float(th)


# ---------------------------------------------------------------------------
# AimCandidate
# ---------------------------------------------------------------------------
class AimCandidate(_Message):
    """An evaluated aim point, as a polar offset from the shot start."""

    radius_yds: float = Field(ge=0)
    bearing_rad: float
    aim: GeoPoint
    es: ESResult

    @computed_field  # type: ignore[prop-decorator]
    @property
    def distance_yds(self) -> float:
        return self.radius_yds

    @property
    def bearing_deg(self) -> float:
        return math.degrees(self.bearing_rad)


class IterationReport(_Message):
    """Progress snapshot emitted after each CEM update or ring-grid phase.

    `distribution` is only set by CEM; ring-grid reports name their phase.
    """

    iteration: int
    drawn: int
    evaluated: int
    best_mean: float | None
    distribution: SearchDistribution | None = None
    phase: str | None = None
