"""
Command-line interface for Eigen Lab.

Usage:
    eigen-lab solve "2 1; 1 2"   Step-by-step eigenvalues and eigenspaces
    eigen-lab expand EXPR        Expand a polynomial expression in x
    eigen-lab roots "1 -5 6"     Real roots of a polynomial (descending coefficients)
    eigen-lab info               Show solver tolerances and tiers
"""

import json
import logging
import math
import re
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from eigen_lab import __version__
from eigen_lab.algorithms import (
    EigenResult,
    expand as expand_expression,
    find_eigenvalues,
    root_multiplicity,
    solve_real_roots,
)
from eigen_lab.data import (
    DEFAULT_SEED,
    SolverConfig,
    SolverTier,
    list_tolerances,
)
from eigen_lab.errors import EigenLabError, MatrixShapeError
from eigen_lab.formatting import (
    describe_eigenspace,
    format_number,
    format_vector,
    solution_steps,
)

app = typer.Typer(
    name="eigen-lab",
    help="Eigenvalues the way they are derived by hand: det(xI - A), roots, eigenspaces",
    add_completion=False,
)
console = Console()

_SEPARATORS = re.compile(r"[,\s]+")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"eigen-lab version {__version__}")
        raise typer.Exit()


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log solver diagnostics."),
    ] = False,
) -> None:
    """Eigen Lab - Characteristic polynomial eigenvalue solver."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


def _parse_numbers(text: str) -> list[float]:
    entries = [entry for entry in _SEPARATORS.split(text.strip()) if entry]
    try:
        numbers = [float(entry) for entry in entries]
    except ValueError as exc:
        msg = f"Invalid number in {text.strip()!r}"
        raise MatrixShapeError(msg) from exc
    if not all(math.isfinite(number) for number in numbers):
        msg = f"Numbers must be finite, got {text.strip()!r}"
        raise MatrixShapeError(msg)
    return numbers


def _parse_matrix(text: str) -> list[list[float]]:
    """Parse ``"a b; c d"`` (rows split by ``;``, entries by ``,`` or spaces)."""
    rows = [_parse_numbers(row) for row in text.split(";") if row.strip()]
    if not rows:
        msg = "Matrix cannot be empty"
        raise MatrixShapeError(msg)
    return rows


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    raise typer.Exit(code=1) from exc


def _print_eigenspaces(result: EigenResult) -> None:
    if not result.eigenspaces:
        console.print("No real eigenvalues: no real eigenspaces.")
        return

    table = Table(title="Eigenspaces")
    table.add_column("λ", style="cyan", justify="right")
    table.add_column("Mult", justify="right")
    table.add_column("Dim", justify="right")
    table.add_column("Basis")
    table.add_column("Kind")

    for space in result.eigenspaces:
        basis = "\n".join(format_vector(v) for v in space.basis) or "-"
        table.add_row(
            Text(format_number(space.eigenvalue.value, precision=4)),
            str(space.multiplicity),
            str(space.dimension),
            Text(basis),
            Text(describe_eigenspace(space)),
            style="yellow" if space.is_defective else "",
        )

    console.print(table)


@app.command()  # type: ignore[misc]
def solve(
    matrix: Annotated[
        str,
        typer.Argument(help='Matrix rows separated by ";", e.g. "2 1; 1 2"'),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full result as JSON."),
    ] = False,
    latex: Annotated[
        bool,
        typer.Option("--latex", help="Print derivation steps as LaTeX."),
    ] = False,
    seed: Annotated[
        int,
        typer.Option("--seed", "-s", help="Random seed for the Newton-Raphson solver"),
    ] = DEFAULT_SEED,
) -> None:
    """Compute eigenvalues and eigenspaces step by step."""
    try:
        result = find_eigenvalues(_parse_matrix(matrix), config=SolverConfig(seed=seed))
    except EigenLabError as exc:
        _fail(exc)
        return

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    for step in solution_steps(result, latex=latex):
        console.print(step.title, style="bold cyan")
        console.print(step.body, markup=False, highlight=False)
        console.print()

    _print_eigenspaces(result)

    console.print(f"\nTrace: {format_number(result.trace)}    Solver: {result.solver.value}")
    if not result.spectrum_complete:
        console.print(
            f"[yellow]Note:[/] {result.missing_root_count} root(s) of the characteristic "
            "polynomial are not real eigenvalues (complex, or not found)."
        )


@app.command()  # type: ignore[misc]
def expand(
    expression: Annotated[
        str,
        typer.Argument(help='Expression in x, e.g. "(x - 1)^2"'),
    ],
) -> None:
    """Expand an expression in x into polynomial coefficients."""
    try:
        polynomial = expand_expression(expression)
    except EigenLabError as exc:
        _fail(exc)
        return

    console.print(polynomial.expression, markup=False, highlight=False)
    console.print(
        "Coefficients: " + ", ".join(format_number(c) for c in polynomial.coefficients),
        markup=False,
        highlight=False,
    )


@app.command()  # type: ignore[misc]
def roots(
    coefficients: Annotated[
        str,
        typer.Argument(help='Descending coefficients, e.g. "1 -5 6" (x^2 - 5x + 6)'),
    ],
    seed: Annotated[
        int,
        typer.Option("--seed", "-s", help="Random seed for the Newton-Raphson solver"),
    ] = DEFAULT_SEED,
) -> None:
    """Find the real roots of a polynomial."""
    try:
        coeffs = _parse_numbers(coefficients)
    except EigenLabError as exc:
        _fail(exc)
        return

    found = solve_real_roots(coeffs, config=SolverConfig(seed=seed))
    if not found:
        console.print("No real roots.")
        return

    table = Table(title="Real Roots")
    table.add_column("Root", style="cyan", justify="right")
    table.add_column("Multiplicity", justify="right")
    for root in found:
        table.add_row(format_number(root, precision=6), str(max(1, root_multiplicity(coeffs, root))))
    console.print(table)


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display solver tolerances and tiers."""
    table = Table(title="Solver Tolerances")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    for name, value in list_tolerances().items():
        table.add_row(name, f"{value:.0e}")
    console.print(table)

    tiers = Table(title="Solver Tiers")
    tiers.add_column("Order", justify="right")
    tiers.add_column("Tier", style="cyan")
    for i, tier in enumerate(SolverTier, start=1):
        tiers.add_row(str(i), tier.value)
    console.print(tiers)

    config = SolverConfig()
    console.print(
        f"\nMax order: {config.max_order}    Default seed: {config.seed}    "
        f"Random seeds per stage: {config.random_seeds}"
    )


if __name__ == "__main__":
    app()
