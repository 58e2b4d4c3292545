"""Strokes Bounded Context - Expected-strokes cost model.

Sixth-degree polynomial fits of tour-level strokes-to-hole-out by lie,
with linear extrapolation outside the fitted distance range. Every value
is floored at one stroke.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from domain.terrain.value_objects import TerrainClass

# ---------------------------------------------------------------------------
# Polynomial coefficients (ascending powers of distance in yards)
# ---------------------------------------------------------------------------
PUTTING_COEFFS = (
    8.22701978e-01, 3.48808959e-01, -4.45111801e-02,
    3.05771434e-03, -1.12243654e-04, 2.09685358e-06, -1.57305673e-08,
)
FAIRWAY_COEFFS = (
    1.87505684, 3.44179367e-02, -5.63306650e-04,
    4.70425536e-06, -2.02041273e-08, 4.38015739e-11, -3.78163505e-14,
)
ROUGH_COEFFS = (
    2.01325284, 3.73834464e-02, -6.08542541e-04,
    5.01193038e-06, -2.08847962e-08, 4.32228049e-11, -3.53899274e-14,
)
SAND_COEFFS = (
    2.14601649, 2.61044155e-02, -2.69537153e-04,
    1.48010114e-06, -3.99813977e-09, 5.24740763e-12, -2.67577455e-15,
)
RECOVERY_COEFFS = (
    1.34932958, 6.39685426e-02, -6.38754410e-04,
    3.09148159e-06, -7.60396073e-09, 9.28546297e-12, -4.46945896e-15,
)

MAX_PUTT_YDS = 33.39
FIT_MAX_YDS = 348.9
EXTRAPOLATION_END_YDS = 600.0
WATER_PENALTY = 1.0
CACHE_SIZE_LIMIT = 1000


class Condition(str, Enum):
    """Lie condition understood by the cost model."""

    GREEN = "green"
    FAIRWAY = "fairway"
    TEE = "tee"
    ROUGH = "rough"
    SAND = "sand"
    RECOVERY = "recovery"
    WATER = "water"

    @classmethod
    def parse(cls, value: "Condition | str") -> "Condition":
        """Case-insensitive lookup; 'bunker' is sand, anything unknown is rough."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "bunker":
            return cls.SAND
        try:
            return cls(name)
        except ValueError:
            return cls.ROUGH


_CLASS_CONDITIONS: dict[TerrainClass, Condition] = {
    TerrainClass.GREEN: Condition.GREEN,
    TerrainClass.FAIRWAY: Condition.FAIRWAY,
    TerrainClass.BUNKER: Condition.SAND,
    TerrainClass.RECOVERY: Condition.RECOVERY,
    TerrainClass.WATER: Condition.WATER,
    TerrainClass.TEE: Condition.TEE,
}


def condition_for_class(klass: TerrainClass | int) -> Condition:
    """Mask class -> cost-model condition. OB, hazard and unknown play as rough."""
    return _CLASS_CONDITIONS.get(TerrainClass.coerce(klass), Condition.ROUGH)


def evaluate_polynomial(x: float, coefficients: tuple[float, ...]) -> float:
    result = 0.0
    for power, c in enumerate(coefficients):
        result += c * x**power
    return max(1.0, result)


def _ramp_from(origin: float, knot: float, coefficients: tuple[float, ...], x: float) -> float:
    # Straight line from (0, origin) to the polynomial value at knot.
    first = evaluate_polynomial(knot, coefficients)
    return origin + (first - origin) / knot * x


def putting_strokes(distance: float) -> float:
    if distance <= 0:
        return 1.0
    if distance < 0.333:
        return 1.001
    if distance > MAX_PUTT_YDS:
        return fairway_strokes(distance)
    return evaluate_polynomial(distance, PUTTING_COEFFS)


def fairway_strokes(distance: float) -> float:
    if distance <= 0:
        return 1.0
    if distance < 7.43:
        return _ramp_from(1.0, 7.43, FAIRWAY_COEFFS, distance)
    if distance <= FIT_MAX_YDS:
        return evaluate_polynomial(distance, FAIRWAY_COEFFS)
    base = evaluate_polynomial(FIT_MAX_YDS, FAIRWAY_COEFFS)
    slope = (5.25 - base) / (EXTRAPOLATION_END_YDS - FIT_MAX_YDS)
    return base + (distance - FIT_MAX_YDS) * slope


def rough_strokes(distance: float) -> float:
    if distance <= 0:
        return 1.0
    if distance < 7.76:
        return _ramp_from(1.5, 7.76, ROUGH_COEFFS, distance)
    if distance <= FIT_MAX_YDS:
        return evaluate_polynomial(distance, ROUGH_COEFFS)
    base = evaluate_polynomial(FIT_MAX_YDS, ROUGH_COEFFS)
    slope = (5.4 - base) / (EXTRAPOLATION_END_YDS - FIT_MAX_YDS)
    return base + (distance - FIT_MAX_YDS) * slope


def sand_strokes(distance: float) -> float:
    if distance <= 0:
        return 1.0
    if distance < 7.96:
        return _ramp_from(2.0, 7.96, SAND_COEFFS, distance)
    if distance <= EXTRAPOLATION_END_YDS:
        return evaluate_polynomial(distance, SAND_COEFFS)
    base = evaluate_polynomial(EXTRAPOLATION_END_YDS, SAND_COEFFS)
    return base + (distance - EXTRAPOLATION_END_YDS) * 0.004


def recovery_strokes(distance: float) -> float:
    if distance <= 0:
        return 1.0
    if distance < 100:
        return _ramp_from(3.0, 100.0, RECOVERY_COEFFS, distance)
    return evaluate_polynomial(distance, RECOVERY_COEFFS)


def water_strokes(distance: float) -> float:
    return rough_strokes(distance) + WATER_PENALTY


_MODELS = {
    Condition.GREEN: putting_strokes,
    Condition.FAIRWAY: fairway_strokes,
    Condition.TEE: fairway_strokes,
    Condition.ROUGH: rough_strokes,
    Condition.SAND: sand_strokes,
    Condition.RECOVERY: recovery_strokes,
    Condition.WATER: water_strokes,
}


@lru_cache(maxsize=CACHE_SIZE_LIMIT)
def _cached(distance: float, condition: Condition) -> float:
    return _MODELS[condition](distance)


def expected_strokes(distance_yds: float, condition: Condition | str = Condition.FAIRWAY) -> float:
    """Expected strokes to hole out from distance_yds in the given condition.

    - distance_yds: remaining distance to the hole
    - condition: a Condition or its name ('green', 'fairway', 'tee', 'rough',
      'sand'/'bunker', 'recovery', 'water'); unknown names play as rough
    """
    return _cached(float(distance_yds), Condition.parse(condition))
