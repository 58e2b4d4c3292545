"""Application services: job scheduling and process-level setup."""

from .jobs import JobTable, OptimizationHandle, run_es_job

__all__ = ["JobTable", "OptimizationHandle", "run_es_job"]
