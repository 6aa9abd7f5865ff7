"""Tests for eigenspace computation."""

import numpy as np
import pytest

from eigen_lab.algorithms.eigenspace import Eigenspace, Eigenvalue, compute_eigenspace
from eigen_lab.algorithms.symbolic import build_characteristic_matrix


class TestEigenspace:
    """Tests for the Eigenspace dataclass."""

    @pytest.mark.parametrize(
        "dimension,kind",
        [
            (0, "Zero space (no eigenvectors)"),
            (1, "Line (1D eigenspace)"),
            (2, "Plane (2D eigenspace)"),
            (3, "3D eigenspace"),
        ],
    )
    def test_kind(self, dimension: int, kind: str) -> None:
        """Kind text depends on the dimension."""
        basis = tuple(np.eye(3)[:dimension])
        space = Eigenspace(Eigenvalue(1.0, 3), basis)
        assert space.kind == kind

    def test_defective(self) -> None:
        """Dimension below multiplicity is defective."""
        space = Eigenspace(Eigenvalue(2.0, 2), (np.array([1.0, 0.0]),))
        assert space.is_defective
        assert space.multiplicity == 2

    def test_to_dict(self) -> None:
        """to_dict is JSON friendly."""
        space = Eigenspace(Eigenvalue(3.0), (np.array([1.0, 0.0]),))
        assert space.to_dict() == {
            "eigenvalue": 3.0,
            "multiplicity": 1,
            "dimension": 1,
            "defective": False,
            "degenerate": False,
            "basis": [[1.0, 0.0]],
        }


class TestComputeEigenspace:
    """Tests for null-space based eigenspaces."""

    def test_diagonal(self) -> None:
        """diag(3, 5): eigenvalue 3 has eigenvector e1, 5 has e2."""
        characteristic = build_characteristic_matrix([[3, 0], [0, 5]])
        first = compute_eigenspace(characteristic, 3.0)
        second = compute_eigenspace(characteristic, 5.0)
        np.testing.assert_array_equal(first.basis[0], [1, 0])
        np.testing.assert_array_equal(second.basis[0], [0, 1])

    def test_defective_jordan_block(self) -> None:
        """[[2, 1], [0, 2]] has a one-dimensional eigenspace for a double root."""
        characteristic = build_characteristic_matrix([[2, 1], [0, 2]])
        space = compute_eigenspace(characteristic, 2.0, multiplicity=2)
        assert space.dimension == 1
        assert space.is_defective
        np.testing.assert_array_equal(space.basis[0], [1, 0])

    def test_identity_full_space(self) -> None:
        """I_3 has the whole space as eigenspace of 1."""
        characteristic = build_characteristic_matrix(np.eye(3))
        space = compute_eigenspace(characteristic, 1.0, multiplicity=3)
        np.testing.assert_array_equal(np.array(space.basis), np.eye(3))
        assert not space.is_defective
        assert space.kind == "3D eigenspace"

    def test_basis_vectors_are_eigenvectors(self) -> None:
        """A v = λ v for every basis vector."""
        matrix = np.array([[4.0, 1.0, 2.0], [1.0, 3.0, 0.0], [2.0, 0.0, 5.0]])
        characteristic = build_characteristic_matrix(matrix)
        for value in np.linalg.eigvalsh(matrix):
            space = compute_eigenspace(characteristic, value)
            assert space.dimension == 1
            vector = space.basis[0]
            np.testing.assert_allclose(matrix @ vector, value * vector, atol=1e-6)

    def test_simple_eigenvalue_after_tiny_pivot(self) -> None:
        """Row reduction of λI - A meets a near-zero pivot for the largest λ."""
        matrix = np.array(
            [[6, 4, -2, -7], [4, 2, -2, 2], [-2, -2, 8, -5], [-7, 2, -5, -6]],
            dtype=float,
        )
        characteristic = build_characteristic_matrix(matrix)
        for value in np.linalg.eigvalsh(matrix):
            space = compute_eigenspace(characteristic, value)
            assert space.dimension == 1, value
            assert not space.degenerate
            vector = space.basis[0]
            residual = np.linalg.norm(matrix @ vector - value * vector)
            assert residual <= 2e-5 * np.linalg.norm(vector)

    def test_coarse_retry_keeps_non_eigenvalue_empty(self) -> None:
        """The coarser pivot retries never accept a value far from the spectrum."""
        matrix = [[6, 4, -2, -7], [4, 2, -2, 2], [-2, -2, 8, -5], [-7, 2, -5, -6]]
        characteristic = build_characteristic_matrix(matrix)
        space = compute_eigenspace(characteristic, 11.0)
        assert space.degenerate
        assert space.basis == ()

    def test_small_scale_matrix(self) -> None:
        """Pivot thresholds follow the size of the entries."""
        matrix = 1e-4 * np.array([[4.0, 1.0, 2.0], [1.0, 3.0, 0.0], [2.0, 0.0, 5.0]])
        characteristic = build_characteristic_matrix(matrix)
        for value in np.linalg.eigvalsh(matrix):
            space = compute_eigenspace(characteristic, value)
            assert space.dimension == 1
            vector = space.basis[0]
            np.testing.assert_allclose(matrix @ vector, value * vector, atol=1e-12)
        assert compute_eigenspace(characteristic, 2e-4).degenerate

    def test_non_eigenvalue_is_degenerate(self, caplog) -> None:
        """A value that is not an eigenvalue gives an empty, flagged basis."""
        characteristic = build_characteristic_matrix([[3, 0], [0, 5]])
        with caplog.at_level("WARNING", logger="eigen_lab.algorithms.eigenspace"):
            space = compute_eigenspace(characteristic, 4.0)
        assert space.basis == ()
        assert space.degenerate
        assert space.kind == "Zero space (no eigenvectors)"
        assert "Empty eigenspace" in caplog.text

    def test_characteristic_matrix_unchanged(self) -> None:
        """Substitution never alters the symbolic matrix."""
        characteristic = build_characteristic_matrix([[1, 2], [2, 1]])
        before = characteristic.as_text()
        compute_eigenspace(characteristic, 3.0)
        assert characteristic.as_text() == before
