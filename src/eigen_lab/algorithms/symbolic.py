"""Symbolic characteristic matrix and determinant expansion.

Builds xI - A as a grid of tagged cells and expands det(xI - A) into the
bracketed expression a student would write by hand (cofactor expansion along
the first row), ready for :mod:`eigen_lab.algorithms.polynomial`.

Example:
    >>> matrix = build_characteristic_matrix([[2, 1], [1, 2]])
    >>> expand_determinant(matrix)
    '(x - 2)(x - 2) - (-1)(-1)'
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

import numpy as np

from eigen_lab.algorithms.matrix_ops import as_square_matrix, is_triangular
from eigen_lab.errors import MatrixShapeError
from eigen_lab.formatting import format_number

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

VARIABLE = "x"
"""Free variable of the characteristic polynomial."""

# Bracket pair per recursion depth, for legibility only
_BRACKETS: tuple[tuple[str, str], ...] = (("[", "]"), ("{", "}"), ("(", ")"))


@dataclass(frozen=True, slots=True)
class NumericCell:
    """Constant cell (an off-diagonal ``-a_ij``)."""

    value: float

    @property
    def text(self) -> str:
        return format_number(self.value)

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def evaluate(self, x: float) -> float:
        return self.value

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class SymbolicCell:
    """Diagonal cell ``x - offset``."""

    offset: float

    @property
    def text(self) -> str:
        if self.offset == 0:
            return VARIABLE
        if self.offset > 0:
            return f"{VARIABLE} - {format_number(self.offset)}"
        return f"{VARIABLE} + {format_number(-self.offset)}"

    @property
    def is_zero(self) -> bool:
        return False

    def evaluate(self, x: float) -> float:
        return x - self.offset

    def __str__(self) -> str:
        return self.text


Cell: TypeAlias = "NumericCell | SymbolicCell"


@dataclass(frozen=True, slots=True)
class SymbolicMatrix:
    """Immutable square grid of cells.

    Minors of a characteristic matrix are SymbolicMatrix instances too, so
    the diagonal-is-symbolic invariant is enforced by
    :func:`build_characteristic_matrix` rather than here.
    """

    cells: tuple[tuple[Cell, ...], ...]

    def __post_init__(self) -> None:
        n = len(self.cells)
        if n == 0 or any(len(row) != n for row in self.cells):
            msg = "SymbolicMatrix must be a non-empty square grid"
            raise MatrixShapeError(msg)

    @property
    def size(self) -> int:
        """Matrix order n."""
        return len(self.cells)

    def __getitem__(self, row: int) -> tuple[Cell, ...]:
        return self.cells[row]

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def minor(self, row: int, col: int) -> SymbolicMatrix:
        """Sub-matrix with ``row`` and ``col`` removed."""
        return SymbolicMatrix(
            tuple(
                tuple(cell for j, cell in enumerate(cells) if j != col)
                for i, cells in enumerate(self.cells)
                if i != row
            )
        )

    def is_triangular(self) -> bool:
        return is_triangular(self.cells, is_zero=lambda cell: cell.is_zero)

    def substitute(self, x: float) -> NDArray[np.float64]:
        """Evaluate every cell at ``x`` into a fresh numeric matrix."""
        return np.array(
            [[cell.evaluate(x) for cell in row] for row in self.cells],
            dtype=np.float64,
        )

    def as_text(self) -> tuple[tuple[str, ...], ...]:
        """Cell strings, e.g. for JSON output."""
        return tuple(tuple(cell.text for cell in row) for row in self.cells)


def build_characteristic_matrix(
    matrix: ArrayLike,
    *,
    max_order: int | None = None,
) -> SymbolicMatrix:
    """Build xI - A.

    Diagonal cells become ``x``, ``x - v`` or ``x + |v|``; off-diagonal cells
    hold ``-a_ij``.

    Raises:
        MatrixShapeError: If the input is not a valid square matrix.
    """
    array = as_square_matrix(matrix, max_order=max_order)
    n = array.shape[0]
    return SymbolicMatrix(
        tuple(
            tuple(
                SymbolicCell(float(array[i, j]) + 0.0)
                if i == j
                else NumericCell(float(-array[i, j]) + 0.0)
                for j in range(n)
            )
            for i in range(n)
        )
    )


def expand_determinant(matrix: SymbolicMatrix, depth: int = 0) -> str:
    """Expand det(matrix) into an algebraic expression string.

    - 1×1: the single cell.
    - Triangular: product of the diagonal, ``(d1) * (d2) * ...``.
    - 2×2: ``(a)(d) - (b)(c)``.
    - Otherwise: cofactor expansion along row 0. Zero elements and zero
      minors are skipped; each term is ``± (a_0j) <minor>`` with the minor
      wrapped in ``[]``, ``{}`` or ``()`` depending on depth.

    An identically zero determinant expands to ``"0"``.

    Args:
        matrix: Square symbolic matrix.
        depth: Recursion depth (selects the bracket pair).

    Returns:
        Expression in ``x`` understood by :func:`eigen_lab.algorithms.polynomial.expand`.
    """
    n = matrix.size

    if n == 1:
        return matrix[0][0].text

    if matrix.is_triangular():
        return " * ".join(f"({matrix[i][i].text})" for i in range(n))

    if n == 2:
        (a, b), (c, d) = matrix
        return f"({a.text})({d.text}) - ({b.text})({c.text})"

    open_bracket, close_bracket = _BRACKETS[min(depth, len(_BRACKETS) - 1)]
    terms: list[tuple[str, str]] = []

    for j, element in enumerate(matrix[0]):
        if element.is_zero:
            continue

        minor_expression = expand_determinant(matrix.minor(0, j), depth + 1)
        if minor_expression == "0":
            continue

        sign = "-" if j % 2 else "+"
        body = f"({element.text}) {open_bracket}{minor_expression}{close_bracket}"
        terms.append((sign, body))

    if not terms:
        return "0"

    first_sign, first_body = terms[0]
    parts = [first_body if first_sign == "+" else f"-{first_body}"]
    parts.extend(f"{sign} {body}" for sign, body in terms[1:])
    return " ".join(parts)


def characteristic_equation(matrix: ArrayLike) -> str:
    """The characteristic equation ``det(xI - A) = 0`` in expanded-minor form."""
    return f"{expand_determinant(build_characteristic_matrix(matrix))} = 0"


__all__ = [
    "VARIABLE",
    "Cell",
    "NumericCell",
    "SymbolicCell",
    "SymbolicMatrix",
    "build_characteristic_matrix",
    "characteristic_equation",
    "expand_determinant",
]
