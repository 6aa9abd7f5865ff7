"""Real roots of characteristic polynomials.

Closed forms handle degrees 1-3. Degrees 4 and 5 go through a hybrid,
damped Newton-Raphson solver with synthetic-division deflation:

    1. Bound the roots (Fujiwara): |x| <= 2 max |a_{n-k} / a_n|^(1/k)
    2. Build a seed set: uniform grid, random samples, coefficient ratios,
       points near roots already found, sign-change midpoints
    3. From each seed, iterate the multiple-root aware step

           x_{k+1} = x_k - s * f f' / (f'^2 - f f'')

       accepting a step only if it strictly reduces |f| (otherwise s is
       halved down to a floor); stagnation triggers a bisection search
    4. Polish the candidate on the original polynomial, verify its relative
       residual, deflate it out, repeat on the quotient

A stage that finds no root ends the search: the caller receives fewer roots
than the degree and decides what to do with the incomplete spectrum.

Every threshold is relative to the polynomial (residuals, derivative
cancellation) or to its root bound (nudges, search widths, snapping), so a matrix
scaled by 1e-4 goes through the same steps as the unscaled one.

References:
    - Press et al.: "Numerical Recipes" (3rd ed.), §9.4 Newton-Raphson, §9.5 Roots of Polynomials
    - Schröder (1870): "Über unendlich viele Algorithmen zur Auflösung der Gleichungen"
    - Cardano: "Ars Magna" (1545); trigonometric form after Viète
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.algorithms.polynomial import (
    compile_expression,
    deflate,
    derivative,
    evaluate_compiled,
)
from eigen_lab.data.tolerances import SolverConfig, get_tolerance

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from eigen_lab.algorithms.polynomial import Token

logger = logging.getLogger(__name__)

# Largest root bound handed to the seed generator
_MAX_BOUND = 1e100


def strip_leading_zeros(coefficients: ArrayLike) -> NDArray[np.float64]:
    """Descending coefficients without exact-zero leading terms (may be empty)."""
    coeffs = np.asarray(coefficients, dtype=np.float64).ravel()
    nonzero = np.flatnonzero(coeffs)
    if nonzero.size == 0:
        return np.empty(0)
    return coeffs[nonzero[0]:].copy()


# =============================================================================
# CLOSED FORMS
# =============================================================================


def solve_linear(a: float, b: float) -> list[float]:
    """Root of ``a x + b``."""
    if a == 0:
        return []
    root = -b / a + 0.0
    return [root] if math.isfinite(root) else []


def solve_quadratic(a: float, b: float, c: float) -> list[float]:
    """Real roots of ``a x^2 + b x + c``, ascending.

    A discriminant within a relative 1e-12 of zero is treated as zero, and
    roots closer than 1e-14 are reported once. A negative discriminant
    yields no roots.
    """
    if a == 0:
        return solve_linear(b, c)

    disc = b * b - 4.0 * a * c
    if abs(disc) <= get_tolerance("cubic_discriminant_tol") * max(b * b, abs(4.0 * a * c)):
        disc = 0.0
    if disc < 0:
        return []

    # Cancellation-free form: q = -(b + sign(b) sqrt(disc)) / 2
    q = -0.5 * (b + math.copysign(math.sqrt(disc), b))
    if q == 0:
        return [0.0]
    roots = sorted((q / a + 0.0, c / q + 0.0))

    if abs(roots[1] - roots[0]) <= get_tolerance("quadratic_dedup_tol"):
        return [roots[0]]
    return roots


def solve_cubic(a: float, b: float, c: float, d: float) -> list[float]:
    """Real roots of ``a x^3 + b x^2 + c x + d``, ascending.

    Substituting ``x = t - b / 3a`` gives the depressed cubic
    ``t^3 + p t + q`` with discriminant ``D = q^2/4 + p^3/27``:

    - D > 0: one real root (Cardano)
    - D = 0: a triple root (p = 0) or a simple and a double root
    - D < 0: three real roots (trigonometric method)
    """
    if a == 0:
        return solve_quadratic(b, c, d)

    b, c, d = b / a, c / a, d / a
    shift = b / 3.0
    p = c - b * b / 3.0
    q = 2.0 * b**3 / 27.0 - b * c / 3.0 + d

    tol = get_tolerance("cubic_discriminant_tol")
    disc = q * q / 4.0 + p**3 / 27.0
    if abs(disc) <= tol * max(q * q / 4.0, abs(p**3 / 27.0)):
        disc = 0.0

    if disc > 0:
        sqrt_disc = math.sqrt(disc)
        u = float(np.cbrt(-q / 2.0 + sqrt_disc))
        v = -p / (3.0 * u) if u != 0 else float(np.cbrt(-q / 2.0 - sqrt_disc))
        roots = [u + v - shift]
    elif disc == 0:
        if abs(p) <= tol * max(abs(c), b * b / 3.0):
            roots = [-shift]
        else:
            roots = [3.0 * q / p - shift, -3.0 * q / (2.0 * p) - shift]
    else:
        m = 2.0 * math.sqrt(-p / 3.0)
        arg = min(1.0, max(-1.0, (3.0 * q / (2.0 * p)) * math.sqrt(-3.0 / p)))
        theta = math.acos(arg) / 3.0
        roots = [m * math.cos(theta - 2.0 * math.pi * k / 3.0) - shift for k in range(3)]

    dedup_tol = get_tolerance("quadratic_dedup_tol")
    result: list[float] = []
    for root in sorted(r + 0.0 for r in roots if math.isfinite(r)):
        if not result or abs(root - result[-1]) > dedup_tol:
            result.append(root)
    return result


# =============================================================================
# HELPERS
# =============================================================================


def root_bound(coefficients: ArrayLike) -> float:
    """Fujiwara's bound on the magnitude of every root.

    |x| <= 2 max(|a_{n-1}/a_n|, |a_{n-2}/a_n|^(1/2), ..., |a_0/2a_n|^(1/n))

    Unlike Cauchy's bound it scales with the roots: multiplying every root
    by s multiplies the bound by s. The result is capped so that it can
    always be sampled from.

    Example:
        >>> root_bound([1, -3, 2])
        6.0
    """
    coeffs = strip_leading_zeros(coefficients)
    n = coeffs.size - 1
    if n < 1:
        return 0.0
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        ratios = np.abs(coeffs[1:] / coeffs[0])
        ratios[-1] /= 2.0
        terms = ratios ** (1.0 / np.arange(1, n + 1))
    bound = 2.0 * float(np.max(terms))
    return min(bound, _MAX_BOUND) if math.isfinite(bound) else _MAX_BOUND


def relative_residual(coefficients: ArrayLike, x: float) -> float:
    """|p(x)| scaled by sum |a_i| |x|^i (the rounding-error scale of p(x))."""
    coeffs = np.asarray(coefficients, dtype=np.float64)
    value = abs(float(np.polyval(coeffs, x)))
    scale = float(np.polyval(np.abs(coeffs), abs(x)))
    return value / scale if scale > 0 else value


def root_multiplicity(
    coefficients: ArrayLike,
    root: float,
    *,
    tolerance: float | None = None,
) -> int:
    """Algebraic multiplicity of ``root`` as the number of vanishing derivatives.

    p, p', p'', ... are evaluated at ``root`` until one does not vanish
    relative to its own rounding scale. Returns 0 if ``root`` is not a root.

    Example:
        >>> root_multiplicity([1, -4, 5, -2], 1.0)  # (x - 1)^2 (x - 2)
        2
    """
    tol = get_tolerance("multiplicity_tol") if tolerance is None else tolerance
    current = strip_leading_zeros(coefficients)
    degree = current.size - 1

    multiplicity = 0
    while multiplicity < degree and relative_residual(current, root) <= tol:
        multiplicity += 1
        current = np.asarray(derivative(current))
    return multiplicity


def snap_and_deduplicate(
    roots: Iterable[float],
    *,
    tolerance: float | None = None,
    scale: float = 1.0,
) -> list[float]:
    """Snap near-integer roots to the integer, then merge near-duplicates.

    Args:
        roots: Roots in any order.
        tolerance: Snap and merge distance (default: ``snap_tol``).
        scale: Typical root magnitude, e.g. :func:`root_bound`. Below 1 the
            distance shrinks with it, so roots of a polynomial scaled down
            by 1e-4 are neither snapped to 0 nor merged.

    Example:
        >>> snap_and_deduplicate([2.0000000001, 1.9999999, -1e-9, 0.5])
        [0.0, 0.5, 2.0]
        >>> snap_and_deduplicate([1e-7, 2e-7], scale=1e-6)
        [1e-07, 2e-07]
    """
    tol = get_tolerance("snap_tol") if tolerance is None else tolerance
    if 0 < scale < 1:
        tol *= scale
    snapped = []
    for root in roots:
        nearest = round(root)
        snapped.append(float(nearest) + 0.0 if abs(root - nearest) < tol else float(root))

    unique: list[float] = []
    for root in sorted(snapped):
        if not unique or abs(root - unique[-1]) >= tol:
            unique.append(root)
    return unique


# =============================================================================
# HYBRID NEWTON-RAPHSON
# =============================================================================


@dataclass(frozen=True, slots=True)
class NewtonStage:
    """Outcome of one deflation stage."""

    root: float | None
    """Root found at this stage (None ends the search)."""

    seeds_tried: int
    """Starting points tried before success or exhaustion."""

    multiplicity: int = 0
    """Times the root was deflated out."""


@dataclass(frozen=True, slots=True)
class NewtonTrace:
    """Full record of a hybrid Newton-Raphson run."""

    roots: tuple[float, ...]
    """Roots found, ascending, repeated by multiplicity."""

    stages: tuple[NewtonStage, ...]
    """One entry per deflation stage."""

    degree: int
    """Degree of the input polynomial."""

    @property
    def complete(self) -> bool:
        """True if the roots account for the full degree."""
        return len(self.roots) == self.degree


@dataclass
class HybridNewtonSolver:
    """Damped Newton-Raphson with deflation for polynomials of degree 4-5.

    Args:
        coefficients: Descending coefficients.
        expression: Optional original expression; when given, a candidate
            also passes verification if the expression itself vanishes.
        config: Solver configuration (seed, caps, tolerances).

    Example:
        >>> solver = HybridNewtonSolver([1, -10, 35, -50, 24])  # roots 1, 2, 3, 4
        >>> [round(r, 9) for r in solver.run().roots]
        [1.0, 2.0, 3.0, 4.0]
    """

    coefficients: ArrayLike
    expression: str | None = None
    config: SolverConfig = field(default_factory=SolverConfig)
    _original: NDArray[np.float64] = field(init=False, repr=False)
    _compiled: tuple[Token, ...] | None = field(init=False, repr=False)
    _rng: np.random.Generator = field(init=False, repr=False)
    _unit: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._original = strip_leading_zeros(self.coefficients)
        self._compiled = compile_expression(self.expression) if self.expression else None
        self._rng = self.config.make_rng()
        # Length scale for nudges and search widths: 1, or the root bound when smaller
        bound = root_bound(self._original)
        self._unit = min(1.0, bound) if bound > 0 else 1.0

    # -- public ---------------------------------------------------------------

    def run(self) -> NewtonTrace:
        """Find roots stage by stage until the polynomial is exhausted or a stage fails."""
        working = self._original.copy()
        degree = max(working.size - 1, 0)
        found: list[float] = []
        stages: list[NewtonStage] = []

        # Seeds near a huge root bound overflow; those iterates are rejected as non-finite
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            while working.size > 1:
                root, tried = self._find_root(working, found)
                if root is None:
                    logger.info(
                        "Insufficient roots: stage %d found none after %d seeds (%d of %d found)",
                        len(stages) + 1,
                        tried,
                        len(found),
                        degree,
                    )
                    stages.append(NewtonStage(None, tried))
                    break

                multiplicity = max(1, min(root_multiplicity(working, root), working.size - 1))
                for _ in range(multiplicity):
                    quotient, _ = deflate(working, root)
                    working = np.asarray(quotient)
                found.extend([root] * multiplicity)
                stages.append(NewtonStage(root, tried, multiplicity))
                logger.debug(
                    "Stage %d: root %.12g (multiplicity %d)", len(stages), root, multiplicity
                )

        return NewtonTrace(tuple(sorted(found)), tuple(stages), degree)

    # -- seeds ----------------------------------------------------------------

    def _seeds(self, working: NDArray[np.float64], found: Sequence[float]) -> NDArray[np.float64]:
        bound = root_bound(working)
        grid = np.linspace(-bound, bound, self.config.grid_size + 1)
        values = np.polyval(working, grid)

        points = [grid, self._rng.uniform(-bound, bound, self.config.random_seeds)]

        ratios = -working[1:] / working[0]
        ratios = ratios[np.abs(ratios) <= bound]
        points.extend([ratios, ratios * 1.1, ratios * 0.9])

        offset = 0.1 * self._unit
        for root in found:
            points.append(np.array([root + offset, root - offset, root * 1.01, root * 0.99]))

        change = np.flatnonzero(values[:-1] * values[1:] < 0)
        points.append((grid[change] + grid[change + 1]) / 2.0)

        seeds = np.unique(np.concatenate(points))
        seeds = seeds[np.isfinite(seeds)]
        if found:
            distance = np.min(np.abs(seeds[:, None] - np.asarray(found)[None, :]), axis=1)
            seeds = seeds[distance >= 1e-8 * self._unit]
        return seeds

    def _brackets(self, working: NDArray[np.float64]) -> list[tuple[float, float]]:
        bound = root_bound(working)
        grid = np.linspace(-bound, bound, 4 * self.config.grid_size + 1)
        values = np.polyval(working, grid)
        change = np.flatnonzero(values[:-1] * values[1:] < 0)
        return [(float(grid[i]), float(grid[i + 1])) for i in change]

    # -- root search ----------------------------------------------------------

    def _find_root(
        self,
        working: NDArray[np.float64],
        found: Sequence[float],
    ) -> tuple[float | None, int]:
        seeds = self._seeds(working, found)
        tried = 0

        for seed in seeds:
            tried += 1
            candidate = self._newton(working, float(seed))
            if candidate is None:
                continue
            root = self._accept(candidate)
            if root is not None:
                return root, tried

        # Fallback: plain bisection on every sign change of the working polynomial
        for lo, hi in self._brackets(working):
            tried += 1
            root = self._accept(self._bisect(working, lo, hi))
            if root is not None:
                return root, tried

        return None, tried

    def _accept(self, candidate: float) -> float | None:
        """Polish on the original polynomial, snap to an integer if no worse, verify."""
        x = self._polish(candidate)
        multiplicity = root_multiplicity(self._original, x)
        if multiplicity > 1:
            refined = self._refine_multiple(x, multiplicity)
            if self._verify(refined):
                x = refined

        nearest = float(round(x)) if math.isfinite(x) else x
        if abs(x - nearest) < self.config.snap_tol * self._unit and (
            relative_residual(self._original, nearest) <= relative_residual(self._original, x)
        ):
            x = nearest

        return x + 0.0 if self._verify(x) else None

    def _verify(self, x: float) -> bool:
        """Relative residual of the coefficients, or of the raw expression.

        Both are measured against sum |a_i| |x|^i, so neither check loosens
        when every coefficient is small.
        """
        if not math.isfinite(x):
            return False
        if relative_residual(self._original, x) < self.config.newton_residual_tol:
            return True
        if self._compiled is None:
            return False
        scale = float(np.polyval(np.abs(self._original), abs(x)))
        value = abs(evaluate_compiled(self._compiled, x))
        return value < self.config.expression_residual_tol * scale

    # -- iterations -----------------------------------------------------------

    @staticmethod
    def _step(coeffs: NDArray[np.float64], x: float, fx: float) -> float | None:
        d1 = float(np.polyval(np.polyder(coeffs), x)) if coeffs.size > 1 else 0.0
        d2 = float(np.polyval(np.polyder(coeffs, 2), x)) if coeffs.size > 2 else 0.0
        floor = get_tolerance("derivative_floor")

        # Floors are relative: near a cluster of tiny roots f' itself is tiny
        denominator = d1 * d1 - fx * d2
        if abs(denominator) > floor * (d1 * d1 + abs(fx * d2)):
            return fx * d1 / denominator
        if d1 != 0 and math.isfinite(d1):
            return fx / d1
        return None

    def _newton(self, coeffs: NDArray[np.float64], x: float) -> float | None:
        tol = self.config.newton_residual_tol
        fx = float(np.polyval(coeffs, x))
        scale = 1.0
        slow = 0

        for _ in range(self.config.max_newton_iterations):
            if fx == 0 or relative_residual(coeffs, x) < tol:
                return x

            step = self._step(coeffs, x, fx)
            if step is None:
                # Flat spot: nudge deterministically and retry
                x += 1e-6 * max(self._unit, abs(x))
                fx = float(np.polyval(coeffs, x))
                continue

            trial = x - scale * step
            f_trial = float(np.polyval(coeffs, trial))

            if abs(f_trial) < abs(fx):
                moved = abs(trial - x)
                slow = slow + 1 if abs(f_trial) > 0.999 * abs(fx) else 0
                x, fx = trial, f_trial
                scale = min(1.0, scale * 2.0)
                if moved <= 4 * np.finfo(float).eps * max(self._unit, abs(x)) or slow >= 10:
                    return self._local_bisect(coeffs, x)
            else:
                scale *= 0.5
                if scale < self.config.newton_step_floor:
                    return self._local_bisect(coeffs, x)

        return x if relative_residual(coeffs, x) < tol else None

    def _local_bisect(self, coeffs: NDArray[np.float64], x: float) -> float | None:
        """Bisection search around a stalled iterate."""
        if relative_residual(coeffs, x) < self.config.newton_residual_tol:
            return x

        for width in (1e-10, 1e-8, 1e-6, 1e-4, 1e-2):
            h = width * max(self._unit, abs(x))
            lo, hi = x - h, x + h
            if np.polyval(coeffs, lo) * np.polyval(coeffs, hi) < 0:
                return self._bisect(coeffs, lo, hi)
        return None

    def _bisect(self, coeffs: NDArray[np.float64], lo: float, hi: float) -> float:
        f_lo = float(np.polyval(coeffs, lo))
        for _ in range(200):
            mid = 0.5 * (lo + hi)
            f_mid = float(np.polyval(coeffs, mid))
            if f_mid == 0 or hi - lo <= 4 * np.finfo(float).eps * max(self._unit, abs(mid)):
                return mid
            if (f_mid < 0) == (f_lo < 0):
                lo, f_lo = mid, f_mid
            else:
                hi = mid
        return 0.5 * (lo + hi)

    def _polish(self, x: float) -> float:
        """A few strictly-improving steps on the original (undeflated) polynomial."""
        coeffs = self._original
        fx = float(np.polyval(coeffs, x))
        for _ in range(20):
            if fx == 0:
                break
            step = self._step(coeffs, x, fx)
            if step is None:
                break
            trial = x - step
            f_trial = float(np.polyval(coeffs, trial))
            if abs(f_trial) >= abs(fx):
                break
            x, fx = trial, f_trial
        return x

    def _refine_multiple(self, x: float, multiplicity: int) -> float:
        """Newton on p^(m-1), where a root of multiplicity m is simple.

        Rounding noise limits a direct solve near an m-fold root to about
        eps^(1/m); the derivative restores full precision.
        """
        g = np.asarray(derivative(self._original, multiplicity - 1))
        dg = np.polyder(g)
        gx = float(np.polyval(g, x))
        for _ in range(20):
            slope = float(np.polyval(dg, x))
            if gx == 0 or slope == 0:
                break
            trial = x - gx / slope
            g_trial = float(np.polyval(g, trial))
            if abs(g_trial) >= abs(gx):
                break
            x, gx = trial, g_trial
        return x


# =============================================================================
# PUBLIC API
# =============================================================================


def solve_real_roots(
    coefficients: ArrayLike,
    expression: str | None = None,
    *,
    config: SolverConfig | None = None,
) -> list[float]:
    """Real roots of a polynomial, ascending and without duplicates.

    Args:
        coefficients: Descending coefficients (a_n, ..., a_0).
        expression: Original expression, used by the degree 4-5 solver to
            verify candidates independently of the expanded coefficients.
        config: Solver configuration (default: ``SolverConfig()``).

    Returns:
        Distinct real roots. Fewer than the degree when roots are complex,
        repeated or (degree 4-5) not found.

    Example:
        >>> solve_real_roots([1, -5, 6])
        [2.0, 3.0]
    """
    config = config or SolverConfig()
    coeffs = strip_leading_zeros(coefficients)
    degree = coeffs.size - 1

    values = [float(c) for c in coeffs]
    scale = root_bound(coeffs)
    if degree < 1:
        return []
    if degree == 1:
        return solve_linear(*values)
    if degree == 2:
        return solve_quadratic(*values)
    if degree == 3:
        return snap_and_deduplicate(solve_cubic(*values), tolerance=config.snap_tol, scale=scale)

    trace = HybridNewtonSolver(coeffs, expression, config).run()
    if not trace.complete:
        logger.debug("Newton-Raphson found %d of %d roots", len(trace.roots), degree)
    return snap_and_deduplicate(trace.roots, tolerance=config.snap_tol, scale=scale)


__all__ = [
    "HybridNewtonSolver",
    "NewtonStage",
    "NewtonTrace",
    "relative_residual",
    "root_bound",
    "root_multiplicity",
    "snap_and_deduplicate",
    "solve_cubic",
    "solve_linear",
    "solve_quadratic",
    "solve_real_roots",
    "strip_leading_zeros",
]
