"""Data module for solver tolerances and configuration."""

from eigen_lab.data.tolerances import (
    DEFAULT_SEED,
    SolverConfig,
    SolverTier,
    get_tolerance,
    list_tolerances,
)

__all__ = [
    "DEFAULT_SEED",
    "SolverConfig",
    "SolverTier",
    "get_tolerance",
    "list_tolerances",
]
