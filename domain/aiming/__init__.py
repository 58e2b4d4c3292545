"""Aiming Bounded Context.

Responsible for choosing where to aim:
- Value Objects: OptimizerConfig, RingGridParams, SearchDistribution,
  AimCandidate, SkillPreset
- Services: dispersion geometry, hole feeds, optimize_aim dispatching to
  the cross-entropy or ring-grid search
"""
