"""Exception hierarchy for Eigen Lab.

Input validation and expression parsing failures are raised; numerical
non-convergence is never an exception (the pipeline degrades to the next
solver tier and reports an incomplete spectrum instead).
"""


class EigenLabError(Exception):
    """Base class for all Eigen Lab errors."""


class MatrixShapeError(EigenLabError, ValueError):
    """Input matrix is empty, ragged, non-square, non-finite or too large."""


class ExpressionParseError(EigenLabError, ValueError):
    """Determinant expression could not be tokenized, parsed or expanded."""


__all__ = [
    "EigenLabError",
    "ExpressionParseError",
    "MatrixShapeError",
]
