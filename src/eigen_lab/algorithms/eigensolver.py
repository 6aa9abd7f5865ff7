"""Characteristic-polynomial eigenvalue pipeline.

    matrix -> xI - A -> det expression -> coefficients -> real roots
           -> eigenvalues (validated) -> eigenspaces

Root finding degrades tier by tier instead of failing:

    CLOSED_FORM / NEWTON -> QR -> GENERAL -> NONE

The QR and general tiers are only consulted when a degree 4-5 polynomial
yields no root at all; their values must satisfy det(A - λI) ≈ 0 before use.
A partial spectrum is kept and reported through ``spectrum_complete`` and
``missing_root_count``.

Example:
    >>> result = find_eigenvalues([[2, 0], [0, 3]])
    >>> result.eigenvalues, result.characteristic_polynomial
    ((2.0, 3.0), 'x^2 - 5x + 6 = 0')
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.algorithms.eigenspace import Eigenspace, Eigenvalue, compute_eigenspace
from eigen_lab.algorithms.matrix_ops import as_square_matrix, determinant
from eigen_lab.algorithms.matrix_ops import trace as matrix_trace
from eigen_lab.algorithms.polynomial import ExpandedPolynomial, expand
from eigen_lab.algorithms.qr_iteration import general_eigenvalues, qr_algorithm
from eigen_lab.algorithms.roots import (
    root_bound,
    root_multiplicity,
    snap_and_deduplicate,
    solve_real_roots,
)
from eigen_lab.algorithms.symbolic import (
    SymbolicMatrix,
    build_characteristic_matrix,
    expand_determinant,
)
from eigen_lab.data.tolerances import SolverConfig, SolverTier, get_tolerance

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EigenResult:
    """Eigenvalues, eigenspaces and the intermediate derivation strings."""

    eigenvalues: tuple[float, ...]
    """Distinct real eigenvalues, ascending."""

    multiplicities: tuple[int, ...]
    """Algebraic multiplicity of each eigenvalue."""

    eigenspaces: tuple[Eigenspace, ...]
    """One eigenspace per eigenvalue, same order."""

    characteristic_polynomial: str
    """Expanded polynomial as an equation, e.g. ``x^2 - 5x + 6 = 0``."""

    coefficients: tuple[float, ...]
    """Descending polynomial coefficients."""

    characteristic_matrix: SymbolicMatrix
    """Symbolic xI - A."""

    determinant_expression: str
    """Cofactor expansion of det(xI - A)."""

    trace: float
    """Trace of A."""

    solver: SolverTier
    """Tier that produced the eigenvalues."""

    order: int
    """Matrix order n."""

    @property
    def spectrum_complete(self) -> bool:
        """True if the real eigenvalues account for all n roots."""
        return sum(self.multiplicities) >= self.order

    @property
    def missing_root_count(self) -> int:
        """Roots (with multiplicity) not found as real eigenvalues."""
        return max(self.order - sum(self.multiplicities), 0)

    @property
    def is_real(self) -> bool:
        """True if every eigenvalue of A is real (and was found)."""
        return bool(self.eigenvalues) and self.spectrum_complete

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "order": self.order,
            "eigenvalues": list(self.eigenvalues),
            "multiplicities": list(self.multiplicities),
            "eigenspaces": [space.to_dict() for space in self.eigenspaces],
            "characteristic_matrix": [list(row) for row in self.characteristic_matrix.as_text()],
            "determinant_expression": self.determinant_expression,
            "characteristic_polynomial": self.characteristic_polynomial,
            "coefficients": list(self.coefficients),
            "trace": self.trace,
            "is_real": self.is_real,
            "spectrum_complete": self.spectrum_complete,
            "missing_root_count": self.missing_root_count,
            "solver": self.solver.value,
        }


# =============================================================================
# VALIDATION
# =============================================================================


def characteristic_value(matrix: ArrayLike, value: float) -> float:
    """det(A - λI) by cofactor expansion."""
    A = as_square_matrix(matrix)
    return determinant(A - value * np.eye(A.shape[0]))


def validate_eigenvalues(
    matrix: ArrayLike,
    eigenvalues: Iterable[float],
    *,
    tolerance: float | None = None,
) -> list[float]:
    """Keep the values λ for which det(A - λI) vanishes.

    The check is relative: |det(A - λI)| <= tolerance * (||A||_inf + |λ|)^n.

    Example:
        >>> validate_eigenvalues([[2, 0], [0, 3]], [2.0, 2.5, 3.0])
        [2.0, 3.0]
    """
    tol = get_tolerance("eigenvalue_check_tol") if tolerance is None else tolerance
    A = as_square_matrix(matrix)
    n = A.shape[0]
    norm = float(np.max(np.sum(np.abs(A), axis=1)))

    valid = []
    for value in eigenvalues:
        if not np.isfinite(value):
            continue
        scale = (norm + abs(value)) ** n
        if abs(characteristic_value(A, value)) <= tol * scale:
            valid.append(float(value))
    return valid


# =============================================================================
# PIPELINE
# =============================================================================


def _solve_cascade(
    A: NDArray[np.float64],
    polynomial: ExpandedPolynomial,
    expression: str,
    config: SolverConfig,
) -> tuple[list[float], SolverTier]:
    degree = polynomial.degree
    roots = solve_real_roots(polynomial.coefficients, expression, config=config)
    if roots:
        return roots, SolverTier.CLOSED_FORM if degree <= 3 else SolverTier.NEWTON
    if degree < 4:
        return [], SolverTier.NONE

    logger.info("Newton-Raphson found no root of the degree %d polynomial; trying QR iteration", degree)
    scale = root_bound(polynomial.coefficients)
    trace = qr_algorithm(A, max_iterations=config.qr_max_iterations, tolerance=config.qr_tol)
    candidates = validate_eigenvalues(A, trace.eigenvalues, tolerance=config.eigenvalue_check_tol)
    if candidates:
        return snap_and_deduplicate(candidates, tolerance=config.snap_tol, scale=scale), SolverTier.QR

    logger.info("QR iteration gave no valid eigenvalue; falling back to numpy.linalg.eigvals")
    candidates = validate_eigenvalues(
        A, general_eigenvalues(A), tolerance=config.eigenvalue_check_tol
    )
    if candidates:
        return (
            snap_and_deduplicate(candidates, tolerance=config.snap_tol, scale=scale),
            SolverTier.GENERAL,
        )

    logger.info("No real eigenvalue found by any solver tier")
    return [], SolverTier.NONE


def find_eigenvalues(matrix: ArrayLike, *, config: SolverConfig | None = None) -> EigenResult:
    """Run the full characteristic-polynomial pipeline.

    Args:
        matrix: Square real matrix of order 1 to ``config.max_order``.
        config: Solver configuration (default: ``SolverConfig()``).

    Returns:
        EigenResult with eigenvalues, eigenspaces and derivation strings.

    Raises:
        MatrixShapeError: If the matrix is invalid or too large.
        ExpressionParseError: If the determinant expression cannot be expanded.
    """
    config = config or SolverConfig()
    A = as_square_matrix(matrix, max_order=config.max_order)
    n = A.shape[0]

    characteristic_matrix = build_characteristic_matrix(A)
    expression = expand_determinant(characteristic_matrix)
    logger.debug("det(xI - A) = %s", expression)

    polynomial = expand(expression)
    logger.debug("Characteristic polynomial: %s", polynomial.expression)

    values, tier = _solve_cascade(A, polynomial, expression, config)
    logger.debug("Eigenvalues %s from tier %s", values, tier.value)

    eigenspaces = []
    for value in values:
        multiplicity = max(1, root_multiplicity(polynomial.coefficients, value))
        space = compute_eigenspace(
            characteristic_matrix,
            value,
            multiplicity=multiplicity,
            tolerance=config.null_space_pivot_tol,
        )
        if space.dimension > multiplicity:
            # Geometric multiplicity bounds the algebraic one from below
            space = replace(space, eigenvalue=Eigenvalue(value, space.dimension))
        eigenspaces.append(space)

    result = EigenResult(
        eigenvalues=tuple(values),
        multiplicities=tuple(space.multiplicity for space in eigenspaces),
        eigenspaces=tuple(eigenspaces),
        characteristic_polynomial=f"{polynomial.expression} = 0",
        coefficients=polynomial.coefficients,
        characteristic_matrix=characteristic_matrix,
        determinant_expression=expression,
        trace=matrix_trace(A),
        solver=tier,
        order=n,
    )
    if not result.spectrum_complete:
        logger.info(
            "Incomplete real spectrum: %d of %d roots are not real eigenvalues found",
            result.missing_root_count,
            n,
        )
    return result


__all__ = [
    "EigenResult",
    "characteristic_value",
    "find_eigenvalues",
    "validate_eigenvalues",
]
