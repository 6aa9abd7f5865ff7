"""Tests for the eigenvalue pipeline."""

import json
from dataclasses import replace

import numpy as np
import pytest

from eigen_lab.algorithms import eigensolver
from eigen_lab.algorithms.eigensolver import (
    EigenResult,
    characteristic_value,
    find_eigenvalues,
    validate_eigenvalues,
)
from eigen_lab.algorithms.qr_iteration import QRTrace
from eigen_lab.data.tolerances import SolverConfig, SolverTier
from eigen_lab.errors import MatrixShapeError

# Second-difference matrices: symmetric, distinct eigenvalues 2 - 2cos(kπ/(n+1))
LAPLACIAN_4 = np.array(
    [[2, -1, 0, 0], [-1, 2, -1, 0], [0, -1, 2, -1], [0, 0, -1, 2]],
    dtype=float,
)
LAPLACIAN_5 = 2 * np.eye(5) - np.eye(5, k=1) - np.eye(5, k=-1)


class TestFixtures:
    """Reference matrices with known spectra."""

    def test_diagonal(self) -> None:
        """diag(3, 5): eigenvalues 3 and 5 with eigenvectors e1 and e2."""
        result = find_eigenvalues([[3, 0], [0, 5]])
        assert isinstance(result, EigenResult)
        assert result.eigenvalues == (3.0, 5.0)
        assert result.multiplicities == (1, 1)
        np.testing.assert_array_equal(result.eigenspaces[0].basis[0], [1, 0])
        np.testing.assert_array_equal(result.eigenspaces[1].basis[0], [0, 1])
        assert result.is_real
        assert result.solver is SolverTier.CLOSED_FORM

    def test_defective(self) -> None:
        """[[2, 1], [0, 2]]: double eigenvalue with a one-dimensional eigenspace."""
        result = find_eigenvalues([[2, 1], [0, 2]])
        assert result.eigenvalues == (2.0,)
        assert result.multiplicities == (2,)
        space = result.eigenspaces[0]
        assert space.dimension == 1
        assert space.is_defective
        np.testing.assert_array_equal(space.basis[0], [1, 0])
        assert result.spectrum_complete

    def test_identity(self) -> None:
        """I_3: eigenvalue 1 of multiplicity 3, whole space as eigenspace."""
        result = find_eigenvalues(np.eye(3))
        assert result.eigenvalues == (1.0,)
        assert result.multiplicities == (3,)
        np.testing.assert_array_equal(np.array(result.eigenspaces[0].basis), np.eye(3))
        assert not result.eigenspaces[0].is_defective

    def test_rotation(self) -> None:
        """[[0, -1], [1, 0]]: no real eigenvalues, no crash, no NaN."""
        result = find_eigenvalues([[0, -1], [1, 0]])
        assert result.eigenvalues == ()
        assert result.eigenspaces == ()
        assert not result.is_real
        assert not result.spectrum_complete
        assert result.missing_root_count == 2
        assert result.solver is SolverTier.NONE
        assert result.characteristic_polynomial == "x^2 + 1 = 0"

    def test_one_by_one(self) -> None:
        """A scalar is its own eigenvalue."""
        result = find_eigenvalues([[-4]])
        assert result.eigenvalues == (-4.0,)
        assert result.determinant_expression == "x + 4"


class TestDerivationStrings:
    """Tests for the intermediate display data."""

    def test_diagonal_strings(self) -> None:
        """Triangular input gives a product expression."""
        result = find_eigenvalues([[3, 0], [0, 5]])
        assert result.determinant_expression == "(x - 3) * (x - 5)"
        assert result.characteristic_polynomial == "x^2 - 8x + 15 = 0"
        assert result.coefficients == (1.0, -8.0, 15.0)
        assert result.trace == 8.0
        assert result.order == 2

    def test_characteristic_matrix_text(self) -> None:
        """The symbolic matrix is kept for display."""
        result = find_eigenvalues([[1, 2], [3, 4]])
        assert result.characteristic_matrix.as_text() == (("x - 1", "-2"), ("-3", "x - 4"))

    def test_to_dict_is_json(self) -> None:
        """to_dict round-trips through json."""
        result = find_eigenvalues([[2, 1], [1, 2]])
        data = json.loads(json.dumps(result.to_dict()))
        assert data["eigenvalues"] == [1.0, 3.0]
        assert data["solver"] == "closed_form"
        assert data["characteristic_matrix"] == [["x - 2", "-1"], ["-1", "x - 2"]]
        assert data["eigenspaces"][0]["dimension"] == 1


class TestHigherOrder:
    """Degree 4-5 polynomials through the Newton tier."""

    def test_diagonal_four(self) -> None:
        """A diagonal 4×4 matrix."""
        result = find_eigenvalues(np.diag([4.0, -1.0, 2.0, 7.0]))
        assert result.eigenvalues == (-1.0, 2.0, 4.0, 7.0)
        assert result.solver is SolverTier.NEWTON

    @pytest.mark.parametrize("matrix", [LAPLACIAN_4, LAPLACIAN_5])
    def test_laplacian(self, matrix) -> None:
        """Symmetric tridiagonal matrices with irrational eigenvalues."""
        result = find_eigenvalues(matrix)
        np.testing.assert_allclose(result.eigenvalues, np.linalg.eigvalsh(matrix), atol=1e-8)
        assert result.is_real

    def test_repeated_five(self) -> None:
        """Upper triangular 5×5 with eigenvalues 2 (twice) and 3 (three times)."""
        matrix = np.diag([2.0, 2.0, 3.0, 3.0, 3.0]) + np.triu(np.ones((5, 5)), k=1)
        result = find_eigenvalues(matrix)
        assert result.eigenvalues == (2.0, 3.0)
        assert result.multiplicities == (2, 3)
        assert all(space.dimension == 1 for space in result.eigenspaces)

    def test_complex_blocks(self) -> None:
        """Two rotation blocks: every tier comes up empty."""
        matrix = np.zeros((4, 4))
        matrix[:2, :2] = [[0, -1], [1, 0]]
        matrix[2:, 2:] = [[0, -2], [2, 0]]
        result = find_eigenvalues(matrix)
        assert result.eigenvalues == ()
        assert result.solver is SolverTier.NONE
        assert result.missing_root_count == 4

    def test_partial_spectrum(self) -> None:
        """A rotation block plus two real eigenvalues keeps the real ones."""
        matrix = np.zeros((4, 4))
        matrix[:2, :2] = [[0, -1], [1, 0]]
        matrix[2, 2] = 3.0
        matrix[3, 3] = -2.0
        result = find_eigenvalues(matrix)
        assert result.eigenvalues == (-2.0, 3.0)
        assert not result.spectrum_complete
        assert result.missing_root_count == 2
        assert not result.is_real


def _random_symmetric(n: int, seed: int) -> np.ndarray:
    matrix = np.random.default_rng(seed).normal(size=(n, n))
    return (matrix + matrix.T) / 2.0


class TestScaledMatrices:
    """The same matrices multiplied by 1e-4 and 1e3."""

    @pytest.fixture(
        params=[LAPLACIAN_4, LAPLACIAN_5, _random_symmetric(4, 11), _random_symmetric(5, 2024)],
        ids=["laplacian_4", "laplacian_5", "random_4", "random_5"],
    )
    def base(self, request) -> np.ndarray:
        """Symmetric matrix with distinct eigenvalues."""
        return request.param

    @pytest.mark.parametrize("scale", [1e-4, 1e3])
    def test_spectrum(self, base, scale: float) -> None:
        """All eigenvalues found, each with a one-dimensional eigenspace."""
        matrix = scale * base
        result = find_eigenvalues(matrix, config=SolverConfig(seed=42))
        np.testing.assert_allclose(
            result.eigenvalues, np.linalg.eigvalsh(matrix), rtol=0, atol=1e-7 * scale
        )
        assert result.multiplicities == (1,) * len(base)
        assert [space.dimension for space in result.eigenspaces] == [1] * len(base)
        assert result.spectrum_complete

    @pytest.mark.parametrize("scale", [1e-4, 1e3])
    def test_eigenvalues_validate(self, base, scale: float) -> None:
        """det(A - λI) is small relative to the matrix, not to 1."""
        matrix = scale * base
        result = find_eigenvalues(matrix)
        assert validate_eigenvalues(matrix, result.eigenvalues) == list(result.eigenvalues)

    def test_non_eigenvalue_rejected_at_small_scale(self) -> None:
        """A point between eigenvalues fails the check even when det is tiny."""
        matrix = 1e-4 * LAPLACIAN_4
        assert validate_eigenvalues(matrix, [1e-4]) == []

    def test_qr_tier_small_scale(self, monkeypatch) -> None:
        """QR convergence is judged relative to the entries."""
        monkeypatch.setattr(eigensolver, "solve_real_roots", lambda *args, **kwargs: [])
        matrix = 1e-4 * LAPLACIAN_4
        result = find_eigenvalues(matrix)
        assert result.solver is SolverTier.QR
        np.testing.assert_allclose(
            result.eigenvalues, np.linalg.eigvalsh(matrix), rtol=0, atol=1e-10
        )

    def test_symmetric_four_with_ill_conditioned_pivot(self) -> None:
        """Every eigenvalue of this matrix has a one-dimensional eigenspace."""
        matrix = [[6, 4, -2, -7], [4, 2, -2, 2], [-2, -2, 8, -5], [-7, 2, -5, -6]]
        result = find_eigenvalues(matrix)
        np.testing.assert_allclose(result.eigenvalues, np.linalg.eigvalsh(matrix), atol=1e-8)
        assert [space.dimension for space in result.eigenspaces] == [1, 1, 1, 1]
        assert not any(space.is_defective for space in result.eigenspaces)
        assert not any(space.degenerate for space in result.eigenspaces)


class TestSpectrumCount:
    """Bookkeeping of found versus missing roots."""

    def test_multiplicities_above_order(self) -> None:
        """A multiplicity sum above n still counts as a complete spectrum."""
        result = replace(find_eigenvalues([[2, 0], [0, 3]]), multiplicities=(2, 1))
        assert result.spectrum_complete
        assert result.missing_root_count == 0

    def test_exact_count(self) -> None:
        """Multiplicities summing to n are complete."""
        result = find_eigenvalues([[2, 1], [0, 2]])
        assert result.spectrum_complete
        assert result.missing_root_count == 0


class TestFallbackTiers:
    """QR and general tiers when Newton-Raphson finds nothing."""

    def test_qr_tier(self, monkeypatch) -> None:
        """QR iteration supplies validated eigenvalues."""
        monkeypatch.setattr(eigensolver, "solve_real_roots", lambda *args, **kwargs: [])
        result = find_eigenvalues(LAPLACIAN_4)
        assert result.solver is SolverTier.QR
        np.testing.assert_allclose(result.eigenvalues, np.linalg.eigvalsh(LAPLACIAN_4), atol=1e-6)

    def test_general_tier(self, monkeypatch) -> None:
        """Invalid QR output falls through to numpy.linalg.eigvals."""
        monkeypatch.setattr(eigensolver, "solve_real_roots", lambda *args, **kwargs: [])
        monkeypatch.setattr(
            eigensolver,
            "qr_algorithm",
            lambda *args, **kwargs: QRTrace((100.0,), 1, False, 1.0, []),
        )
        result = find_eigenvalues(LAPLACIAN_4)
        assert result.solver is SolverTier.GENERAL
        assert 100.0 not in result.eigenvalues
        assert len(result.eigenvalues) == 4

    def test_low_degree_skips_fallbacks(self, monkeypatch) -> None:
        """Degree 3 or less never consults the fallback tiers."""
        monkeypatch.setattr(eigensolver, "solve_real_roots", lambda *args, **kwargs: [])
        result = find_eigenvalues(np.eye(3))
        assert result.solver is SolverTier.NONE


class TestProperties:
    """Invariants that hold for every result."""

    @pytest.fixture(
        params=[
            [[2, 1], [1, 2]],
            [[2, 1], [0, 2]],
            [[4, 1, 2], [1, 3, 0], [2, 0, 5]],
            [[1, 1, 0], [0, 1, 1], [0, 0, 1]],
            [[1, 2, 3], [4, 5, 6], [7, 8, 10]],
            LAPLACIAN_4.tolist(),
            LAPLACIAN_5.tolist(),
        ]
    )
    def result(self, request) -> EigenResult:
        """Pipeline result for a representative matrix."""
        return find_eigenvalues(request.param)

    def test_dimension_at_most_multiplicity(self, result) -> None:
        """Geometric multiplicity never exceeds algebraic multiplicity."""
        for space in result.eigenspaces:
            assert space.dimension <= space.multiplicity

    def test_trace_equals_eigenvalue_sum(self, result) -> None:
        """A complete real spectrum sums to the trace."""
        if result.spectrum_complete:
            total = sum(v * m for v, m in zip(result.eigenvalues, result.multiplicities))
            assert total == pytest.approx(result.trace, abs=1e-6)

    def test_eigenvalues_validate(self, result) -> None:
        """Every eigenvalue satisfies det(A - λI) ≈ 0."""
        matrix = result.characteristic_matrix.substitute(0.0) * -1
        assert validate_eigenvalues(matrix, result.eigenvalues) == list(result.eigenvalues)

    def test_sorted(self, result) -> None:
        """Eigenvalues are ascending."""
        assert list(result.eigenvalues) == sorted(result.eigenvalues)


class TestValidation:
    """Tests for input validation and eigenvalue checks."""

    @pytest.mark.parametrize("matrix", [[], [[1, 2, 3], [4, 5, 6]], np.eye(6)])
    def test_invalid_matrix(self, matrix) -> None:
        """Empty, non-square and oversized input raise."""
        with pytest.raises(MatrixShapeError):
            find_eigenvalues(matrix)

    def test_max_order_configurable(self) -> None:
        """max_order comes from the config."""
        with pytest.raises(MatrixShapeError):
            find_eigenvalues(np.eye(3), config=SolverConfig(max_order=2))

    def test_characteristic_value(self) -> None:
        """det(A - λI) vanishes at eigenvalues."""
        assert characteristic_value([[2, 0], [0, 3]], 2.0) == 0.0
        assert characteristic_value([[2, 0], [0, 3]], 0.0) == 6.0

    def test_validate_filters(self) -> None:
        """Non-eigenvalues and NaN are dropped."""
        assert validate_eigenvalues([[2, 0], [0, 3]], [2.0, float("nan"), 2.5, 3.0]) == [2.0, 3.0]
