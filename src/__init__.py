"""Application Layer.

Infrastructure and application services that orchestrate domain logic.
This layer handles I/O, job scheduling and coordinates domain operations.
"""
