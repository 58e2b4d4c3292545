"""Strokes Bounded Context.

Responsible for scoring where a ball finishes:
- Value Objects: Condition, ESJob, ESResult
- Services: OnlineStats, expected_strokes, evaluate_expected_strokes
"""
