"""Display formatting for the step-by-step eigenvalue derivation.

Turns pipeline output into plain text or LaTeX strings. Rendering the LaTeX
(KaTeX, MathJax, ...) is left to whatever front end consumes these strings.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from eigen_lab.algorithms.eigensolver import EigenResult
    from eigen_lab.algorithms.eigenspace import Eigenspace
    from eigen_lab.algorithms.symbolic import SymbolicMatrix


@dataclass(frozen=True, slots=True)
class SolutionStep:
    """One titled step of the derivation."""

    title: str
    body: str


def format_number(value: float, *, precision: int | None = None) -> str:
    """Format a number without scientific notation.

    Integral values drop the decimal point so that ``x - 3.0`` reads
    ``x - 3``. With ``precision`` the value is printed with that many fixed
    decimals instead.

    Example:
        >>> format_number(3.0), format_number(-0.5), format_number(2, precision=2)
        ('3', '-0.5', '2.00')
    """
    value = float(value) + 0.0
    if precision is not None:
        return f"{value:.{precision}f}"
    return np.format_float_positional(value, trim="-")


def format_vector(vector: Iterable[float], *, precision: int = 5) -> str:
    """Format a basis vector as ``[1.00000, 0.00000]``."""
    return "[" + ", ".join(format_number(v, precision=precision) for v in vector) + "]"


def _cell_text(cell: Any) -> str:
    text = getattr(cell, "text", None)
    return text if isinstance(text, str) else format_number(cell)


def format_matrix(grid: Sequence[Sequence[Any]]) -> str:
    """Format a numeric or symbolic grid with right-aligned columns."""
    cells = [[_cell_text(cell) for cell in row] for row in grid]
    widths = [max(len(row[j]) for row in cells) for j in range(len(cells[0]))]

    lines = []
    for row in cells:
        padded = "  ".join(text.rjust(widths[j]) for j, text in enumerate(row))
        lines.append(f"[ {padded} ]")
    return "\n".join(lines)


def format_characteristic_matrix(matrix: SymbolicMatrix) -> str:
    """Format xI - A as an aligned block headed ``xI - A =``."""
    cells = [[cell.text for cell in row] for row in matrix]
    widths = [max(len(row[j]) for row in cells) for j in range(len(cells[0]))]

    lines = ["xI - A ="]
    for row in cells:
        padded = "   ".join(text.ljust(widths[j]) for j, text in enumerate(row))
        lines.append(f"| {padded} |")
    return "\n".join(lines)


# =============================================================================
# LATEX
# =============================================================================


def format_matrix_latex(grid: Sequence[Sequence[Any]]) -> str:
    r"""Format a grid as ``\begin{bmatrix} ... \end{bmatrix}`` with x -> \lambda."""
    rows = (
        " & ".join(_cell_text(cell).replace("x", r"\lambda") for cell in row)
        for row in grid
    )
    return r"\begin{bmatrix} " + r" \\ ".join(rows) + r" \end{bmatrix}"


def format_expression_latex(expression: str) -> str:
    """Format a determinant expression or polynomial for LaTeX."""
    latex = expression.replace("x", r"\lambda").replace("*", r"\cdot")
    latex = latex.replace("{", r"\{").replace("}", r"\}")
    return re.sub(r"\^(\d+)", r"^{\1}", latex)


def format_polynomial_latex(polynomial: str) -> str:
    """Format a characteristic polynomial (``... = 0``) for LaTeX."""
    return format_expression_latex(polynomial)


def format_eigenvalues_latex(
    eigenvalues: Iterable[float],
    *,
    precision: int = 4,
) -> str:
    r"""Format the spectrum as ``\sigma(A) = \{...\}``."""
    values = ", ".join(format_number(v, precision=precision) for v in eigenvalues)
    return rf"\sigma(A) = \{{{values}\}}"


def format_eigenvalues(eigenvalues: Iterable[float], *, precision: int = 4) -> str:
    """Plain-text spectrum, e.g. ``σ(A) = {2.0000, 3.0000}``."""
    values = ", ".join(format_number(v, precision=precision) for v in eigenvalues)
    return f"σ(A) = {{{values}}}"


def describe_eigenspace(eigenspace: Eigenspace) -> str:
    """One-line summary: kind, plus a defective note where it applies."""
    text = eigenspace.kind
    if eigenspace.is_defective:
        text += (
            f"; defective eigenspace, dim(E) < mult(λ): "
            f"{eigenspace.dimension} < {eigenspace.eigenvalue.multiplicity}"
        )
    return text


def solution_steps(result: EigenResult, *, latex: bool = False) -> tuple[SolutionStep, ...]:
    """Steps 1-4 of the hand derivation as plain structured data.

    Args:
        result: Pipeline output.
        latex: Produce LaTeX bodies instead of plain text.
    """
    if latex:
        bodies = (
            format_matrix_latex(result.characteristic_matrix),
            r"\det(xI - A) = " + format_expression_latex(result.determinant_expression),
            format_polynomial_latex(result.characteristic_polynomial),
            format_eigenvalues_latex(result.eigenvalues),
        )
    else:
        bodies = (
            format_characteristic_matrix(result.characteristic_matrix),
            f"det(xI - A) = {result.determinant_expression}",
            result.characteristic_polynomial,
            format_eigenvalues(result.eigenvalues),
        )

    titles = (
        "Step 1: Create xI - A matrix",
        "Step 2: Calculate det(xI - A)",
        "Step 3: Characteristic Polynomial",
        "Step 4: Eigenvalues σ(A)",
    )
    return tuple(SolutionStep(title, body) for title, body in zip(titles, bodies, strict=True))


__all__ = [
    "SolutionStep",
    "describe_eigenspace",
    "format_characteristic_matrix",
    "format_eigenvalues",
    "format_eigenvalues_latex",
    "format_expression_latex",
    "format_matrix",
    "format_matrix_latex",
    "format_number",
    "format_polynomial_latex",
    "format_vector",
    "solution_steps",
]
