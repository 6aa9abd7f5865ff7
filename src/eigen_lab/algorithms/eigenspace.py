"""Eigenspaces by null-space extraction.

For an eigenvalue λ, the eigenspace is the null space of λI - A: substitute
λ into the symbolic characteristic matrix, row reduce, and read one basis
vector per free variable. The basis is compared against the algebraic
multiplicity of λ to flag defective eigenspaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.algorithms.matrix_ops import null_space
from eigen_lab.data.tolerances import get_tolerance

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from eigen_lab.algorithms.symbolic import SymbolicMatrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Eigenvalue:
    """A real eigenvalue with its algebraic multiplicity."""

    value: float
    multiplicity: int = 1


@dataclass(frozen=True, slots=True)
class Eigenspace:
    """Basis of the eigenspace belonging to one eigenvalue."""

    eigenvalue: Eigenvalue
    """Eigenvalue and its algebraic multiplicity."""

    basis: tuple[NDArray[np.float64], ...]
    """Linearly independent vectors, one per free variable."""

    degenerate: bool = False
    """True if the null-space computation found no usable vector."""

    @property
    def dimension(self) -> int:
        """Geometric multiplicity."""
        return len(self.basis)

    @property
    def multiplicity(self) -> int:
        """Algebraic multiplicity."""
        return self.eigenvalue.multiplicity

    @property
    def is_defective(self) -> bool:
        """True if the geometric multiplicity is below the algebraic one."""
        return self.dimension < self.eigenvalue.multiplicity

    @property
    def kind(self) -> str:
        """Geometric description, e.g. ``Line (1D eigenspace)``."""
        if self.dimension == 0:
            return "Zero space (no eigenvectors)"
        if self.dimension == 1:
            return "Line (1D eigenspace)"
        if self.dimension == 2:
            return "Plane (2D eigenspace)"
        return f"{self.dimension}D eigenspace"

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "eigenvalue": self.eigenvalue.value,
            "multiplicity": self.eigenvalue.multiplicity,
            "dimension": self.dimension,
            "defective": self.is_defective,
            "degenerate": self.degenerate,
            "basis": [vector.tolist() for vector in self.basis],
        }


def _null_vectors(numeric: NDArray[np.float64], tol: float) -> tuple[NDArray[np.float64], ...]:
    """Non-zero null-space vectors at pivot threshold ``tol`` (empty if degenerate)."""
    result = null_space(numeric, tolerance=tol)
    if result.degenerate:
        return ()
    return tuple(v for v in result.basis if np.any(np.abs(v) > tol))


def compute_eigenspace(
    characteristic_matrix: SymbolicMatrix,
    eigenvalue: float,
    *,
    multiplicity: int = 1,
    tolerance: float | None = None,
) -> Eigenspace:
    """Compute the eigenspace of ``eigenvalue``.

    The characteristic matrix is never mutated: substitution produces a
    fresh numeric λI - A. The pivot threshold is ``tolerance`` scaled by
    the largest |entry| of that matrix.

    If that finds no vector, thresholds ten times coarser are tried up to
    ``null_space_max_pivot_tol``. A coarser basis is kept only if every
    vector satisfies ||(λI - A) v|| <= threshold * ||v||.

    All-zero vectors and the e1 guard returned for a degenerate null space
    are discarded. An empty basis is logged and reported with
    ``degenerate=True``; no eigenvector is made up.

    Args:
        characteristic_matrix: Symbolic xI - A.
        eigenvalue: Real eigenvalue λ.
        multiplicity: Algebraic multiplicity of λ.
        tolerance: Base pivot threshold (default: ``null_space_pivot_tol``).

    Returns:
        Eigenspace with basis and defect information.

    Example:
        >>> from eigen_lab.algorithms.symbolic import build_characteristic_matrix
        >>> space = compute_eigenspace(build_characteristic_matrix([[2, 1], [0, 2]]), 2.0, multiplicity=2)
        >>> space.dimension, space.is_defective
        (1, True)
    """
    base_tol = get_tolerance("null_space_pivot_tol") if tolerance is None else tolerance
    numeric = characteristic_matrix.substitute(eigenvalue)
    magnitude = float(np.max(np.abs(numeric)))

    basis = _null_vectors(numeric, base_tol * magnitude)
    if not basis:
        # A tiny early pivot amplifies rounding in later rows; retry with
        # coarser pivots, keeping only vectors that A really maps to λv
        coarse = base_tol * 10.0
        while not basis and coarse <= get_tolerance("null_space_max_pivot_tol") * (1 + 1e-9):
            candidates = _null_vectors(numeric, coarse * magnitude)
            if candidates and all(
                np.linalg.norm(numeric @ v) <= coarse * magnitude * np.linalg.norm(v)
                for v in candidates
            ):
                logger.debug("Eigenspace of %.12g found at pivot tolerance %.0e", eigenvalue, coarse)
                basis = candidates
            coarse *= 10.0
    degenerate = not basis

    if not basis:
        logger.warning(
            "Empty eigenspace for eigenvalue %.12g: λI - A has full rank at this "
            "precision (defective matrix or inaccurate eigenvalue)",
            eigenvalue,
        )
    elif len(basis) > multiplicity:
        logger.warning(
            "Eigenspace of %.12g has dimension %d above its multiplicity %d",
            eigenvalue,
            len(basis),
            multiplicity,
        )

    space = Eigenspace(Eigenvalue(float(eigenvalue), multiplicity), basis, degenerate)
    if space.is_defective and basis:
        logger.info(
            "Defective eigenspace for %.12g: dim %d < multiplicity %d",
            eigenvalue,
            space.dimension,
            multiplicity,
        )
    return space


__all__ = [
    "Eigenspace",
    "Eigenvalue",
    "compute_eigenspace",
]
