"""Numerical algorithms module.

This module contains implementations of:
- Row reduction, null spaces and cofactor determinants
- Symbolic characteristic matrix and determinant expansion
- Expression parsing and polynomial expansion
- Real root finding (closed forms, hybrid Newton-Raphson)
- QR iteration fallback
- Eigenspaces and the full eigenvalue pipeline
"""

from eigen_lab.algorithms.eigensolver import (
    EigenResult,
    characteristic_value,
    find_eigenvalues,
    validate_eigenvalues,
)
from eigen_lab.algorithms.eigenspace import (
    Eigenspace,
    Eigenvalue,
    compute_eigenspace,
)
from eigen_lab.algorithms.matrix_ops import (
    NullSpace,
    as_square_matrix,
    determinant,
    is_triangular,
    matrix_rank,
    null_space,
    null_space_basis,
    row_reduce,
    trace,
)
from eigen_lab.algorithms.polynomial import (
    ExpandedPolynomial,
    evaluate_expression,
    expand,
)
from eigen_lab.algorithms.qr_iteration import (
    QRTrace,
    general_eigenvalues,
    qr_algorithm,
    qr_decomposition,
)
from eigen_lab.algorithms.roots import (
    HybridNewtonSolver,
    NewtonTrace,
    root_multiplicity,
    snap_and_deduplicate,
    solve_real_roots,
)
from eigen_lab.algorithms.symbolic import (
    NumericCell,
    SymbolicCell,
    SymbolicMatrix,
    build_characteristic_matrix,
    expand_determinant,
)

__all__ = [
    # Pipeline
    "EigenResult",
    "characteristic_value",
    "find_eigenvalues",
    "validate_eigenvalues",
    # Eigenspaces
    "Eigenspace",
    "Eigenvalue",
    "compute_eigenspace",
    # Matrix algebra
    "NullSpace",
    "as_square_matrix",
    "determinant",
    "is_triangular",
    "matrix_rank",
    "null_space",
    "null_space_basis",
    "row_reduce",
    "trace",
    # Polynomial expansion
    "ExpandedPolynomial",
    "evaluate_expression",
    "expand",
    # QR fallback
    "QRTrace",
    "general_eigenvalues",
    "qr_algorithm",
    "qr_decomposition",
    # Root finding
    "HybridNewtonSolver",
    "NewtonTrace",
    "root_multiplicity",
    "snap_and_deduplicate",
    "solve_real_roots",
    # Symbolic determinant
    "NumericCell",
    "SymbolicCell",
    "SymbolicMatrix",
    "build_characteristic_matrix",
    "expand_determinant",
]
