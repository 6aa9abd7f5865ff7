"""Eigen Lab: eigenvalues through the characteristic polynomial, step by step."""

import logging

__version__ = "0.1.0"

from eigen_lab.algorithms.eigensolver import EigenResult, find_eigenvalues
from eigen_lab.data.tolerances import SolverConfig, SolverTier
from eigen_lab.errors import EigenLabError, ExpressionParseError, MatrixShapeError

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "EigenLabError",
    "EigenResult",
    "ExpressionParseError",
    "MatrixShapeError",
    "SolverConfig",
    "SolverTier",
    "find_eigenvalues",
]
