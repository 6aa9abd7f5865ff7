"""
Solver Tolerances and Configuration - Single Source of Truth

This module defines every numerical threshold used by the characteristic
polynomial pipeline, the solver tiers of the eigenvalue cascade, and the
``SolverConfig`` passed explicitly to the solvers (no module-level state).

References:
    - Golub & Van Loan: "Matrix Computations" (4th ed.), Section 7.3
    - Press et al.: "Numerical Recipes" (3rd ed.), Section 9.5
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

DEFAULT_SEED: int = 42
"""Default random seed for the Newton-Raphson seed generator."""


class SolverTier(Enum):
    """Tiers of the eigenvalue cascade, from exact to last resort."""

    CLOSED_FORM = "closed_form"  # linear, quadratic, cubic formulas
    NEWTON = "newton"  # damped Newton-Raphson with deflation
    QR = "qr"  # Gram-Schmidt QR iteration
    GENERAL = "general"  # numpy.linalg.eigvals
    NONE = "none"  # no real root found


# =============================================================================
# TOLERANCES
# =============================================================================
# Absolute thresholds unless noted. "relative" means scaled by the sum of
# |a_i| |x|^i of the polynomial at the evaluation point.

_TOLERANCES: dict[str, float] = {
    # Polynomial expansion
    "coefficient_zero_tol": 1e-9,  # strip cancelled high-degree terms
    "deflation_zero_tol": 1e-14,  # synthetic division cancellation (relative)
    # Closed forms
    "quadratic_dedup_tol": 1e-14,
    "cubic_discriminant_tol": 1e-12,
    # Newton-Raphson (relative)
    "newton_residual_tol": 1e-12,
    "expression_residual_tol": 1e-10,
    "newton_step_floor": 1e-12,
    "derivative_floor": 1e-15,  # cancellation in the Schröder denominator
    "multiplicity_tol": 1e-6,
    # Post-processing
    "snap_tol": 1e-6,  # shrinks with the root bound when it is below 1
    # Row reduction
    "pivot_tol": 1e-12,
    "null_space_pivot_tol": 1e-9,  # scaled by max|entry|
    "null_space_max_pivot_tol": 1e-6,  # last retry for an empty eigenspace
    # Fallback tiers
    "qr_tol": 1e-10,  # scaled by max|entry|
    "imaginary_tol": 1e-9,
    "eigenvalue_check_tol": 1e-8,  # |det(A - λI)| (relative)
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_tolerance(name: str) -> float:
    """
    Get a named solver tolerance.

    Args:
        name: Tolerance name (e.g. 'snap_tol', 'pivot_tol')

    Returns:
        Tolerance value

    Raises:
        ValueError: If the name is unknown

    Example:
        >>> get_tolerance("snap_tol")
        1e-06
    """
    if name not in _TOLERANCES:
        valid = sorted(_TOLERANCES)
        raise ValueError(f"Unknown tolerance: {name}. Valid: {valid}")
    return _TOLERANCES[name]


def list_tolerances() -> dict[str, float]:
    """Return a copy of the full tolerance table."""
    return dict(_TOLERANCES)


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """Explicit configuration for one eigenvalue computation.

    Every solver receives its configuration as an argument, so two calls
    with equal configs on equal input return identical results.

    Example:
        >>> from dataclasses import replace
        >>> config = replace(SolverConfig(), seed=7, random_seeds=0)
        >>> config.seed
        7
    """

    seed: int | None = DEFAULT_SEED
    """Seed for the random Newton starting points (None = OS entropy)."""

    random_seeds: int = 10
    """Random starting points per deflation stage (0 disables them)."""

    grid_size: int = 20
    """Number of uniform grid intervals across the root bound."""

    max_newton_iterations: int = 200
    """Iteration cap per Newton-Raphson starting point."""

    qr_max_iterations: int = 100
    """Iteration cap for the QR algorithm fallback."""

    max_order: int = 5
    """Largest supported matrix order."""

    snap_tol: float = field(default_factory=lambda: get_tolerance("snap_tol"))
    newton_residual_tol: float = field(
        default_factory=lambda: get_tolerance("newton_residual_tol")
    )
    expression_residual_tol: float = field(
        default_factory=lambda: get_tolerance("expression_residual_tol")
    )
    newton_step_floor: float = field(
        default_factory=lambda: get_tolerance("newton_step_floor")
    )
    null_space_pivot_tol: float = field(
        default_factory=lambda: get_tolerance("null_space_pivot_tol")
    )
    qr_tol: float = field(default_factory=lambda: get_tolerance("qr_tol"))
    eigenvalue_check_tol: float = field(
        default_factory=lambda: get_tolerance("eigenvalue_check_tol")
    )

    def __post_init__(self) -> None:
        if self.max_order < 1:
            msg = f"max_order must be >= 1, got {self.max_order}"
            raise ValueError(msg)
        if self.random_seeds < 0 or self.grid_size < 1:
            msg = (
                "random_seeds must be >= 0 and grid_size >= 1, got "
                f"{self.random_seeds} and {self.grid_size}"
            )
            raise ValueError(msg)

    def make_rng(self) -> np.random.Generator:
        """Create a fresh generator for one solver run."""
        return np.random.default_rng(self.seed)


__all__ = [
    "DEFAULT_SEED",
    "SolverConfig",
    "SolverTier",
    "get_tolerance",
    "list_tolerances",
]
