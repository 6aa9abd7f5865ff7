"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from eigen_lab import __version__
from eigen_lab.cli import app


@pytest.fixture
def runner() -> CliRunner:
    """Typer test runner."""
    return CliRunner()


class TestSolve:
    """Tests for the solve command."""

    def test_diagonal(self, runner) -> None:
        """Steps, eigenvalues and eigenspace table are printed."""
        result = runner.invoke(app, ["solve", "3 0; 0 5"])
        assert result.exit_code == 0
        assert "Step 1: Create xI - A matrix" in result.output
        assert "(x - 3) * (x - 5)" in result.output
        assert "x^2 - 8x + 15 = 0" in result.output
        assert "σ(A) = {3.0000, 5.0000}" in result.output
        assert "Solver: closed_form" in result.output

    def test_comma_separated(self, runner) -> None:
        """Entries may be separated by commas."""
        result = runner.invoke(app, ["solve", "2,1;1,2"])
        assert result.exit_code == 0
        assert "σ(A) = {1.0000, 3.0000}" in result.output

    def test_json(self, runner) -> None:
        """--json prints a parseable result."""
        result = runner.invoke(app, ["solve", "2 1; 0 2", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["eigenvalues"] == [2.0]
        assert data["multiplicities"] == [2]
        assert data["spectrum_complete"] is True

    def test_latex(self, runner) -> None:
        """--latex switches the step bodies to LaTeX."""
        result = runner.invoke(app, ["solve", "3 0; 0 5", "--latex"])
        assert result.exit_code == 0
        assert r"\begin{bmatrix}" in result.output
        assert r"\sigma(A)" in result.output

    def test_complex_spectrum_note(self, runner) -> None:
        """A rotation reports missing roots instead of failing."""
        result = runner.invoke(app, ["solve", "0 -1; 1 0"])
        assert result.exit_code == 0
        assert "No real eigenvalues" in result.output
        assert "2 root(s)" in result.output

    @pytest.mark.parametrize(
        "matrix", ["1 2 3; 4 5", "1 a; 2 3", ";", "1 2; 3 4; 5 6", "1 inf; 0 1"]
    )
    def test_invalid_matrix(self, runner, matrix: str) -> None:
        """Malformed input exits with code 1 and an error message."""
        result = runner.invoke(app, ["solve", matrix])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestExpand:
    """Tests for the expand command."""

    def test_square(self, runner) -> None:
        """(x - 1)^2 expands to x^2 - 2x + 1."""
        result = runner.invoke(app, ["expand", "(x - 1)^2"])
        assert result.exit_code == 0
        assert "x^2 - 2x + 1" in result.output
        assert "Coefficients: 1, -2, 1" in result.output

    def test_parse_error(self, runner) -> None:
        """Unbalanced brackets exit with code 1."""
        result = runner.invoke(app, ["expand", "(x - 1"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestRoots:
    """Tests for the roots command."""

    def test_quadratic(self, runner) -> None:
        """x^2 - 5x + 6 has roots 2 and 3."""
        result = runner.invoke(app, ["roots", "1 -5 6"])
        assert result.exit_code == 0
        assert "2.000000" in result.output
        assert "3.000000" in result.output

    def test_no_real_roots(self, runner) -> None:
        """x^2 + 1 has no real roots."""
        result = runner.invoke(app, ["roots", "1 0 1"])
        assert result.exit_code == 0
        assert "No real roots." in result.output

    def test_huge_constant_term(self, runner) -> None:
        """x^4 + 1e308 finishes without overflow and has no real root."""
        result = runner.invoke(app, ["roots", "1 0 0 0 1e308"])
        assert result.exit_code == 0
        assert "No real roots." in result.output

    @pytest.mark.parametrize("coefficients", ["1 inf", "1 -inf 2", "nan 1"])
    def test_non_finite_rejected(self, runner, coefficients: str) -> None:
        """inf and nan are input errors."""
        result = runner.invoke(app, ["roots", coefficients])
        assert result.exit_code == 1
        assert "finite" in result.output


class TestInfo:
    """Tests for info and version output."""

    def test_info(self, runner) -> None:
        """Tolerance and tier tables are shown."""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "Solver Tolerances" in result.output
        assert "closed_form" in result.output
        assert "Max order: 5" in result.output

    def test_version(self, runner) -> None:
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
