"""QR iteration fallback for eigenvalue extraction.

Used when the Newton-Raphson tier finds no root of a degree 4-5
characteristic polynomial. Unshifted QR iteration:

    A_0 = A,    A_k = Q_k R_k,    A_{k+1} = R_k Q_k

Every A_k is similar to A. For real, distinct-magnitude eigenvalues the
iterates approach upper triangular form and the diagonal holds the
eigenvalues. Complex pairs leave 2×2 blocks on the diagonal and the
iteration does not converge; repeated eigenvalues can converge slowly.
Both are known limitations, covered by :func:`general_eigenvalues`.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §5.2.7 (Gram-Schmidt), §7.3
- Francis (1961): "The QR Transformation", The Computer Journal 4(3)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.algorithms.matrix_ops import as_square_matrix
from eigen_lab.data.tolerances import get_tolerance

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

# Columns with norm at or below this are left as zero vectors
_ZERO_NORM = 1e-15


def qr_decomposition(
    matrix: ArrayLike,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Classical Gram-Schmidt QR decomposition.

    Each column is projected onto the previously orthonormalized columns,
    the projections are subtracted and the remainder normalized. A column
    that is (numerically) dependent on its predecessors is left as zero in Q.

    Returns:
        (Q, R) with ``Q @ R ≈ matrix`` and R upper triangular.

    Example:
        >>> Q, R = qr_decomposition([[1, 0], [0, 2]])
        >>> R.tolist()
        [[1.0, 0.0], [0.0, 2.0]]
    """
    A = np.array(matrix, dtype=np.float64)
    n = A.shape[1]
    Q = np.zeros_like(A)
    R = np.zeros((n, n))

    for j in range(n):
        v = A[:, j].copy()
        for i in range(j):
            R[i, j] = Q[:, i] @ A[:, j]
            v -= R[i, j] * Q[:, i]

        norm = float(np.linalg.norm(v))
        if norm > _ZERO_NORM:
            R[j, j] = norm
            Q[:, j] = v / norm

    return Q, R


@dataclass(frozen=True, slots=True)
class QRTrace:
    """Complete trace of a QR iteration run."""

    eigenvalues: tuple[float, ...]
    """Diagonal of the final iterate (finite values only), ascending."""

    iterations: int
    """Number of QR steps performed."""

    converged: bool
    """True if every off-diagonal entry fell below tolerance."""

    off_diagonal: float
    """Largest off-diagonal magnitude of the final iterate."""

    history: list[dict]
    """Per-iteration metrics."""


def _largest_off_diagonal(A: NDArray[np.float64]) -> float:
    off = A - np.diag(np.diag(A))
    return float(np.max(np.abs(off))) if off.size else 0.0


def qr_algorithm(
    matrix: ArrayLike,
    *,
    max_iterations: int = 100,
    tolerance: float | None = None,
) -> QRTrace:
    """Run unshifted QR iteration.

    Args:
        matrix: Square real matrix.
        max_iterations: Iteration cap.
        tolerance: Off-diagonal convergence threshold relative to the largest
            entry of the input (default: ``qr_tol``).

    Returns:
        QRTrace. The eigenvalues are returned whether or not the iteration
        converged; callers validate them before use.

    Example:
        >>> [round(v, 8) for v in qr_algorithm([[2, 1], [1, 2]]).eigenvalues]
        [1.0, 3.0]
    """
    tol = get_tolerance("qr_tol") if tolerance is None else tolerance
    A = as_square_matrix(matrix)
    magnitude = float(np.max(np.abs(A)))
    if magnitude > 0:
        tol *= magnitude

    history: list[dict] = []
    off_diagonal = _largest_off_diagonal(A)
    converged = off_diagonal <= tol

    while not converged and len(history) < max_iterations:
        Q, R = qr_decomposition(A)
        A = R @ Q
        off_diagonal = _largest_off_diagonal(A)
        converged = off_diagonal <= tol
        history.append({"iteration": len(history), "off_diagonal": off_diagonal})

    if not converged:
        logger.warning(
            "QR iteration did not converge after %d iterations (off-diagonal %.3e)",
            len(history),
            off_diagonal,
        )

    diagonal = np.diag(A)
    eigenvalues = tuple(sorted(float(v) + 0.0 for v in diagonal[np.isfinite(diagonal)]))
    return QRTrace(
        eigenvalues=eigenvalues,
        iterations=len(history),
        converged=converged,
        off_diagonal=off_diagonal,
        history=history,
    )


def general_eigenvalues(
    matrix: ArrayLike,
    *,
    imaginary_tol: float | None = None,
) -> list[float]:
    """Last-resort real eigenvalues from ``numpy.linalg.eigvals`` (LAPACK).

    Eigenvalues with |imag| above ``imaginary_tol`` are dropped.

    Example:
        >>> general_eigenvalues([[0, -1], [1, 0]])
        []
    """
    tol = get_tolerance("imaginary_tol") if imaginary_tol is None else imaginary_tol
    values = np.linalg.eigvals(as_square_matrix(matrix))
    real = values.real[np.abs(values.imag) <= tol]
    return sorted(float(v) + 0.0 for v in real)


__all__ = [
    "QRTrace",
    "general_eigenvalues",
    "qr_algorithm",
    "qr_decomposition",
]
