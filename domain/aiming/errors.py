"""Aiming Bounded Context - Error Hierarchy."""

from __future__ import annotations


class AimingError(Exception):
    """Base error for aim optimization."""


class NoFeasibleAimError(AimingError):
    """No candidate passed the feasibility filter in any iteration.

    This is the user-facing "no safe aim point found" outcome, not a crash.
    """

    def __init__(self, iterations: int, drawn: int) -> None:
        self.iterations = iterations
        self.drawn = drawn
        super().__init__(
            f"No safe aim point found ({drawn} candidates over {iterations} iterations "
            "were all infeasible)"
        )
