"""Row reduction, null spaces and cofactor determinants.

Implements the hand-computation linear algebra used by the eigenspace stage:
the three elementary row operations, Gauss-Jordan elimination to reduced row
echelon form (RREF), pivot/free-variable detection and null-space bases.

Every routine works on a fresh float64 copy; inputs are never mutated.

Precision note:
    Pivots with magnitude under the tolerance are treated as absent and the
    column is skipped. For ill-conditioned input this can under-detect the
    rank. This is a known limitation of exact-style elimination in floating
    point and is left visible rather than patched over.

References:
- Lay, Lay & McDonald: "Linear Algebra and Its Applications" (6th ed.), §1.2, §4.2
- Golub & Van Loan: "Matrix Computations" (4th ed.), §3.2
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from eigen_lab.data.tolerances import get_tolerance
from eigen_lab.errors import MatrixShapeError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


def as_square_matrix(
    matrix: ArrayLike,
    *,
    max_order: int | None = None,
) -> NDArray[np.float64]:
    """Validate input and return it as a fresh n×n float64 array.

    Args:
        matrix: Nested sequence or array of real numbers.
        max_order: Optional upper bound on n.

    Returns:
        Copy of the matrix as float64.

    Raises:
        MatrixShapeError: If the matrix is empty, ragged, non-square,
            contains non-finite values or exceeds ``max_order``.
    """
    try:
        array = np.array(matrix, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        msg = "Matrix must be a rectangular grid of real numbers"
        raise MatrixShapeError(msg) from exc

    if array.size == 0:
        msg = "Matrix cannot be empty"
        raise MatrixShapeError(msg)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        msg = f"Matrix must be square (n×n), got shape {array.shape}"
        raise MatrixShapeError(msg)
    if not np.all(np.isfinite(array)):
        msg = "Matrix entries must be finite"
        raise MatrixShapeError(msg)
    if max_order is not None and array.shape[0] > max_order:
        msg = f"Matrix order {array.shape[0]} exceeds the supported maximum {max_order}"
        raise MatrixShapeError(msg)

    return array


# =============================================================================
# ELEMENTARY ROW OPERATIONS
# =============================================================================


def swap_rows(matrix: ArrayLike, r1: int, r2: int) -> NDArray[np.float64]:
    """E1: interchange rows r1 and r2."""
    result = np.array(matrix, dtype=np.float64)
    result[[r1, r2]] = result[[r2, r1]]
    return result


def scale_row(matrix: ArrayLike, row: int, scalar: float) -> NDArray[np.float64]:
    """E2: multiply a row by a non-zero scalar."""
    result = np.array(matrix, dtype=np.float64)
    result[row] *= scalar
    return result


def replace_row(
    matrix: ArrayLike,
    source: int,
    target: int,
    scalar: float,
) -> NDArray[np.float64]:
    """E3: row[target] <- row[target] - scalar * row[source]."""
    result = np.array(matrix, dtype=np.float64)
    result[target] -= scalar * result[source]
    return result


# =============================================================================
# ROW REDUCTION
# =============================================================================


def row_reduce(
    matrix: ArrayLike,
    *,
    tolerance: float | None = None,
) -> NDArray[np.float64]:
    """Reduce a matrix to RREF with Gauss-Jordan elimination.

    For each column left to right: take the first entry at or below the
    current pivot row whose magnitude exceeds ``tolerance``, swap it into
    place, scale it to 1 and eliminate the rest of the column.

    Args:
        matrix: m×n numeric matrix (symbolic cells must be substituted first).
        tolerance: Pivot threshold (default: ``pivot_tol``).

    Returns:
        New m×n array in reduced row echelon form.

    Example:
        >>> row_reduce([[1, 2], [2, 4]]).tolist()
        [[1.0, 2.0], [0.0, 0.0]]
    """
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    result = np.array(matrix, dtype=np.float64)
    if result.ndim != 2 or result.size == 0:
        msg = f"Row reduction needs a non-empty 2-D matrix, got shape {result.shape}"
        raise MatrixShapeError(msg)

    rows, cols = result.shape
    pivot_row = 0

    for col in range(cols):
        if pivot_row >= rows:
            break

        candidates = np.flatnonzero(np.abs(result[pivot_row:, col]) > tol)
        if candidates.size == 0:
            # No usable pivot: the column is (numerically) zero below pivot_row
            result[pivot_row:, col] = 0.0
            continue

        found = pivot_row + int(candidates[0])
        if found != pivot_row:
            result = swap_rows(result, found, pivot_row)

        pivot = result[pivot_row, col]
        if pivot != 1.0:
            result = scale_row(result, pivot_row, 1.0 / pivot)
            result[pivot_row, col] = 1.0

        for row in range(rows):
            if row != pivot_row and result[row, col] != 0.0:
                result = replace_row(result, pivot_row, row, result[row, col])

        result[np.abs(result) <= tol] = 0.0
        pivot_row += 1

    # Normalise signed zeros for display
    return result + 0.0


def _leading_entries(
    rref: NDArray[np.float64],
    tol: float,
) -> list[tuple[int, int]]:
    """(row, col) of every leading entry that is ≈ 1."""
    positions: list[tuple[int, int]] = []
    for row_idx, row in enumerate(rref):
        nonzero = np.flatnonzero(np.abs(row) > tol)
        if nonzero.size and abs(row[nonzero[0]] - 1.0) <= tol:
            positions.append((row_idx, int(nonzero[0])))
    return positions


def pivot_columns(
    rref: ArrayLike,
    *,
    tolerance: float | None = None,
) -> list[int]:
    """Columns holding a leading 1 in an RREF matrix."""
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    return [col for _, col in _leading_entries(np.asarray(rref, dtype=np.float64), tol)]


def matrix_rank(matrix: ArrayLike, *, tolerance: float | None = None) -> int:
    """Rank as the number of pivot columns of the RREF."""
    rref = row_reduce(matrix, tolerance=tolerance)
    return len(pivot_columns(rref, tolerance=tolerance))


@dataclass(frozen=True, slots=True)
class NullSpace:
    """Null-space basis together with the RREF bookkeeping that produced it."""

    basis: tuple[NDArray[np.float64], ...]
    """One vector per free variable (or the e1 guard vector if degenerate)."""

    pivot_columns: tuple[int, ...]
    """Columns with a leading 1."""

    free_columns: tuple[int, ...]
    """Columns treated as free variables."""

    degenerate: bool
    """True when no free variable was found and e1 was substituted."""

    @property
    def dimension(self) -> int:
        """Number of free variables (0 when degenerate)."""
        return len(self.free_columns)


def null_space(matrix: ArrayLike, *, tolerance: float | None = None) -> NullSpace:
    """Compute a basis for the solutions of ``matrix @ v = 0``.

    Each free variable yields one basis vector: the free variable is set to 1
    and every pivot variable to the negated coefficient of that free column
    in its pivot row.

    If no free variable exists (a full-rank matrix, which should not happen
    for a singular λI - A), a warning is logged and the standard basis vector
    e1 is returned with ``degenerate=True``.

    Args:
        matrix: m×n numeric matrix.
        tolerance: Pivot threshold passed to :func:`row_reduce`.

    Returns:
        NullSpace with basis, pivot and free columns.
    """
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    rref = row_reduce(matrix, tolerance=tol)
    cols = rref.shape[1]

    positions = _leading_entries(rref, tol)
    pivots = tuple(col for _, col in positions)
    free = tuple(col for col in range(cols) if col not in pivots)

    if not free:
        logger.warning(
            "No free variables found in a %dx%d system; falling back to e1",
            rref.shape[0],
            cols,
        )
        fallback = np.zeros(cols)
        fallback[0] = 1.0
        return NullSpace(
            basis=(fallback,),
            pivot_columns=pivots,
            free_columns=(),
            degenerate=True,
        )

    basis = []
    for free_col in free:
        vector = np.zeros(cols)
        vector[free_col] = 1.0
        for row, pivot_col in positions:
            vector[pivot_col] = -rref[row, free_col]
        basis.append(vector + 0.0)

    return NullSpace(
        basis=tuple(basis),
        pivot_columns=pivots,
        free_columns=free,
        degenerate=False,
    )


def null_space_basis(
    matrix: ArrayLike,
    *,
    tolerance: float | None = None,
) -> list[NDArray[np.float64]]:
    """Null-space basis vectors (see :func:`null_space`)."""
    return list(null_space(matrix, tolerance=tolerance).basis)


def is_row_echelon_form(matrix: ArrayLike, *, tolerance: float | None = None) -> bool:
    """True if pivots move strictly right and zero rows sit at the bottom."""
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    array = np.asarray(matrix, dtype=np.float64)
    last_pivot = -1
    seen_zero_row = False

    for row in array:
        nonzero = np.flatnonzero(np.abs(row) > tol)
        if nonzero.size == 0:
            seen_zero_row = True
            continue
        if seen_zero_row or nonzero[0] <= last_pivot:
            return False
        last_pivot = int(nonzero[0])

    return True


def is_reduced_row_echelon_form(
    matrix: ArrayLike,
    *,
    tolerance: float | None = None,
) -> bool:
    """True if in REF, every pivot is 1 and pivot columns are otherwise zero."""
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    array = np.asarray(matrix, dtype=np.float64)
    if not is_row_echelon_form(array, tolerance=tol):
        return False

    for row_idx, row in enumerate(array):
        nonzero = np.flatnonzero(np.abs(row) > tol)
        if nonzero.size == 0:
            continue
        col = nonzero[0]
        if abs(row[col] - 1.0) > tol:
            return False
        others = np.delete(array[:, col], row_idx)
        if np.any(np.abs(others) > tol):
            return False

    return True


def solve_linear_system(
    A: ArrayLike,
    b: ArrayLike,
    *,
    tolerance: float | None = None,
) -> NDArray[np.float64] | None:
    """Solve ``A x = b`` by row reducing the augmented matrix ``[A | b]``.

    Free variables are set to zero, so an underdetermined system returns one
    particular solution.

    Returns:
        Solution vector, or None if the system is inconsistent.
    """
    tol = get_tolerance("pivot_tol") if tolerance is None else tolerance
    coefficients = np.asarray(A, dtype=np.float64)
    rhs = np.asarray(b, dtype=np.float64).reshape(-1, 1)
    cols = coefficients.shape[1]

    rref = row_reduce(np.hstack([coefficients, rhs]), tolerance=tol)

    for row in rref:
        if np.all(np.abs(row[:cols]) <= tol) and abs(row[cols]) > tol:
            return None

    solution = np.zeros(cols)
    for row, col in _leading_entries(rref[:, :cols], tol):
        solution[col] = rref[row, cols]
    return solution + 0.0


# =============================================================================
# DETERMINANT, TRACE, SHAPE CHECKS
# =============================================================================


def minor(matrix: ArrayLike, row: int, col: int) -> NDArray[np.float64]:
    """Sub-matrix with one row and one column removed."""
    array = np.asarray(matrix, dtype=np.float64)
    return np.delete(np.delete(array, row, axis=0), col, axis=1)


def determinant(matrix: ArrayLike) -> float:
    """Determinant by cofactor expansion along row 0.

    Closed forms for 1×1 and 2×2; otherwise the sum of
    ``(-1)^j * a_0j * det(M_0j)``, skipping zero entries.

    Example:
        >>> determinant([[2, 0, 0], [0, 3, 0], [0, 0, 4]])
        24.0
    """
    array = np.asarray(matrix, dtype=np.float64)
    n = array.shape[0]

    if n == 1:
        return float(array[0, 0])
    if n == 2:
        return float(array[0, 0] * array[1, 1] - array[0, 1] * array[1, 0])

    total = 0.0
    for j in range(n):
        if array[0, j] == 0:
            continue
        sign = -1.0 if j % 2 else 1.0
        total += sign * array[0, j] * determinant(minor(array, 0, j))
    return float(total)


def _is_numeric_zero(value: Any) -> bool:
    return bool(value == 0)


def is_triangular(
    grid: Sequence[Sequence[Any]] | NDArray[np.floating],
    *,
    is_zero: Callable[[Any], bool] | None = None,
) -> bool:
    """True if every entry strictly below, or strictly above, the diagonal is zero.

    Args:
        grid: Square grid of cells (numbers, or any cell type with ``is_zero``).
        is_zero: Predicate identifying zero cells (default: ``cell == 0``).
    """
    zero = is_zero or _is_numeric_zero
    n = len(grid)
    upper = all(zero(grid[i][j]) for i in range(n) for j in range(i))
    lower = all(zero(grid[i][j]) for i in range(n) for j in range(i + 1, n))
    return upper or lower


def trace(matrix: ArrayLike) -> float:
    """Sum of the diagonal."""
    return float(np.trace(np.asarray(matrix, dtype=np.float64)))


__all__ = [
    "NullSpace",
    "as_square_matrix",
    "determinant",
    "is_reduced_row_echelon_form",
    "is_row_echelon_form",
    "is_triangular",
    "matrix_rank",
    "minor",
    "null_space",
    "null_space_basis",
    "pivot_columns",
    "replace_row",
    "row_reduce",
    "scale_row",
    "solve_linear_system",
    "swap_rows",
    "trace",
]
