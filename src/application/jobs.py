"""Job table and result channels for aim optimization.

Each optimization runs as its own asyncio task, isolated from whatever
submitted it. The only things that flow back are messages: at most one
AimCandidate on the handle's results queue, and an IterationReport per
iteration on its progress queue. Abandoning a run is just cancelling (or
dropping) its task; nothing is persisted.

The table is an ordinary object owned by the caller and keyed by course id,
so two courses never share in-flight state and tests can build as many
tables as they like.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from functools import partial
from typing import Any

import numpy as np

from domain.aiming.errors import NoFeasibleAimError
from domain.aiming.optimizer import Evaluator, OptimizeJob, optimize_aim
from domain.aiming.value_objects import AimCandidate, IterationReport
from domain.strokes.evaluator import ESJob, ESResult, evaluate_expected_strokes

logger = logging.getLogger(__name__)


async def run_es_job(job: ESJob | Mapping[str, Any]) -> ESResult:
    """Expected-strokes evaluation as an independent job, run off the event loop."""
    if not isinstance(job, ESJob):
        job = ESJob.model_validate(job)
    return await asyncio.to_thread(evaluate_expected_strokes, job)


class OptimizationHandle:
    """Caller-side view of one submitted optimization."""

    def __init__(self, course_id: str, job: OptimizeJob) -> None:
        self.course_id = course_id
        self.job = job
        self.results: asyncio.Queue[AimCandidate] = asyncio.Queue(maxsize=1)
        self.progress: asyncio.Queue[IterationReport] = asyncio.Queue()
        self.task: asyncio.Task[AimCandidate | None] | None = None
        self.iterations = 0
        self.drawn = 0

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def cancel(self) -> bool:
        if self.task is None or self.task.done():
            return False
        return self.task.cancel()

    def record(self, report: IterationReport) -> None:
        self.iterations += 1
        self.drawn += report.drawn
        self.progress.put_nowait(report)

    async def result(self) -> AimCandidate:
        """Wait for the run and return its best candidate.

        Raises:
            NoFeasibleAimError: The run finished without a feasible candidate
            asyncio.CancelledError: The run was cancelled
        """
        if self.task is None:
            raise RuntimeError(f"Job for course {self.course_id!r} was never started")
        best = await self.task
        if best is None:
            raise NoFeasibleAimError(self.iterations, self.drawn)
        return best


class JobTable:
    """Owned registry of in-flight optimizations, one per course id.

    Submitting a new job for a course supersedes (cancels) the previous one.
    A handle leaves the table as soon as its task finishes, so the table only
    ever holds running work; the submitter keeps the handle for the result.
    """

    def __init__(self, evaluate: Evaluator | None = None) -> None:
        self._jobs: dict[str, OptimizationHandle] = {}
        self._evaluate = evaluate if evaluate is not None else run_es_job

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, course_id: object) -> bool:
        return course_id in self._jobs

    def get(self, course_id: str) -> OptimizationHandle | None:
        return self._jobs.get(course_id)

    def submit(
        self,
        course_id: str,
        job: OptimizeJob | Mapping[str, Any],
        *,
        rng: np.random.Generator | None = None,
    ) -> OptimizationHandle:
        """Start an optimization task. Must be called with a running event loop."""
        if not isinstance(job, OptimizeJob):
            job = OptimizeJob.model_validate(job)

        previous = self._jobs.get(course_id)
        if previous is not None and previous.cancel():
            logger.info("Course %s: superseding in-flight optimization", course_id)

        handle = OptimizationHandle(course_id, job)
        handle.task = asyncio.create_task(
            self._run(handle, rng), name=f"optimize-{course_id}"
        )
        handle.task.add_done_callback(partial(self._finish, handle))
        self._jobs[course_id] = handle
        return handle

    def cancel(self, course_id: str) -> bool:
        """Cancel and forget the job for course_id. Returns True if one was running."""
        handle = self._jobs.pop(course_id, None)
        return handle is not None and handle.cancel()

    def cancel_all(self) -> int:
        cancelled = sum(1 for course_id in list(self._jobs) if self.cancel(course_id))
        return cancelled

    async def _run(
        self, handle: OptimizationHandle, rng: np.random.Generator | None
    ) -> AimCandidate | None:
        best = await optimize_aim(
            handle.job,
            rng=rng,
            evaluate=self._evaluate,
            on_iteration=handle.record,
        )
        if best is not None:
            handle.results.put_nowait(best)
        return best

    def _finish(self, handle: OptimizationHandle, task: asyncio.Task[Any]) -> None:
        # A superseding submit may already own the slot
        if self._jobs.get(handle.course_id) is handle:
            del self._jobs[handle.course_id]

        if task.cancelled():
            logger.debug("%s cancelled", task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error("%s failed: %s", task.get_name(), error)
