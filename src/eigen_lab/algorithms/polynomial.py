"""Expression parsing and polynomial expansion.

Turns a determinant expression such as ``(x - 2)(x - 2) - (-1)(-1)`` into
explicit polynomial coefficients with a small compiler pipeline:

1. Tokenize (implicit multiplication, unary minus rewritten as ``-1 *``)
2. Shunting-yard to reverse Polish notation (RPN)
3. Evaluate the RPN over polynomial arithmetic

Coefficients are ascending-degree numpy arrays during arithmetic (so that
multiplication is a plain ``np.convolve``) and descending ``(a_n, ..., a_0)``
tuples at module boundaries.

Example:
    >>> expand("(x-1)^2").coefficients
    (1.0, -2.0, 1.0)

References:
    - Dijkstra: "ALGOL Bulletin Supplement nr. 10" (1961), shunting-yard
    - Knuth: "The Art of Computer Programming" Vol. 2, §4.6.1
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.data.tolerances import get_tolerance
from eigen_lab.errors import ExpressionParseError
from eigen_lab.formatting import format_number

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

VARIABLE = "x"

_ALIASES = {"−": "-", "·": "*", "×": "*"}
_BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSING = frozenset(_BRACKET_PAIRS.values())
_OPERATORS = frozenset("+-*^")

# (precedence, right-associative)
_PRECEDENCE: dict[str, tuple[int, bool]] = {
    "+": (1, False),
    "-": (1, False),
    "*": (2, False),
    "^": (3, True),
}


class TokenKind(Enum):
    NUMBER = "number"
    VARIABLE = "variable"
    OPERATOR = "operator"
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True, slots=True)
class Token:
    """One lexical token."""

    kind: TokenKind
    text: str
    value: float = 0.0
    """Numeric value (NUMBER tokens only)."""


_OPERAND_END = frozenset({TokenKind.NUMBER, TokenKind.VARIABLE, TokenKind.CLOSE})
_OPERAND_START = frozenset({TokenKind.NUMBER, TokenKind.VARIABLE, TokenKind.OPEN})


# =============================================================================
# TOKENIZER
# =============================================================================


def _push_operand(tokens: list[Token], token: Token) -> None:
    """Append an operand-start token, inserting an implicit ``*`` if needed."""
    if tokens and tokens[-1].kind in _OPERAND_END and token.kind in _OPERAND_START:
        tokens.append(Token(TokenKind.OPERATOR, "*"))
    tokens.append(token)


def _expects_operand(tokens: list[Token]) -> bool:
    return not tokens or tokens[-1].kind in (TokenKind.OPERATOR, TokenKind.OPEN)


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    Recognizes integer and decimal numbers, the variable ``x``, the operators
    ``+ - * ^`` (with ``−``, ``·`` and ``×`` as aliases) and the bracket pairs
    ``()``, ``[]`` and ``{}``. A unary minus becomes ``-1 *``; a unary plus
    is dropped.

    Raises:
        ExpressionParseError: On an unknown character or malformed number.

    Example:
        >>> [t.text for t in tokenize("2(x-1)")]
        ['2', '*', '(', 'x', '-', '1', ')']
    """
    tokens: list[Token] = []
    i = 0
    n = len(expression)

    while i < n:
        char = _ALIASES.get(expression[i], expression[i])

        if char.isspace():
            i += 1
            continue

        if char.isdigit() or char == ".":
            start = i
            while i < n and (expression[i].isdigit() or expression[i] == "."):
                i += 1
            text = expression[start:i]
            try:
                value = float(text)
            except ValueError as exc:
                msg = f"Invalid number {text!r} at position {start}"
                raise ExpressionParseError(msg) from exc
            _push_operand(tokens, Token(TokenKind.NUMBER, text, value))
            continue

        if char == VARIABLE:
            _push_operand(tokens, Token(TokenKind.VARIABLE, char))
        elif char in _BRACKET_PAIRS:
            _push_operand(tokens, Token(TokenKind.OPEN, char))
        elif char in _CLOSING:
            tokens.append(Token(TokenKind.CLOSE, char))
        elif char in _OPERATORS:
            if char in "+-" and _expects_operand(tokens):
                if char == "-":
                    tokens.append(Token(TokenKind.NUMBER, "-1", -1.0))
                    tokens.append(Token(TokenKind.OPERATOR, "*"))
            else:
                tokens.append(Token(TokenKind.OPERATOR, char))
        else:
            msg = f"Unexpected character {expression[i]!r} at position {i}"
            raise ExpressionParseError(msg)
        i += 1

    return tokens


# =============================================================================
# SHUNTING-YARD
# =============================================================================


def to_postfix(tokens: Iterable[Token]) -> list[Token]:
    """Convert infix tokens to RPN.

    ``^`` binds tighter than ``*``, which binds tighter than ``+``/``-``;
    ``^`` is right-associative, the others left-associative.

    Raises:
        ExpressionParseError: On mismatched brackets.
    """
    output: list[Token] = []
    stack: list[Token] = []

    for token in tokens:
        if token.kind in (TokenKind.NUMBER, TokenKind.VARIABLE):
            output.append(token)
        elif token.kind is TokenKind.OPERATOR:
            precedence, right = _PRECEDENCE[token.text]
            while stack and stack[-1].kind is TokenKind.OPERATOR:
                top_precedence, _ = _PRECEDENCE[stack[-1].text]
                if top_precedence > precedence or (top_precedence == precedence and not right):
                    output.append(stack.pop())
                else:
                    break
            stack.append(token)
        elif token.kind is TokenKind.OPEN:
            stack.append(token)
        else:
            while stack and stack[-1].kind is not TokenKind.OPEN:
                output.append(stack.pop())
            if not stack:
                msg = f"Unmatched closing bracket {token.text!r}"
                raise ExpressionParseError(msg)
            opening = stack.pop()
            if _BRACKET_PAIRS[opening.text] != token.text:
                msg = f"Mismatched brackets {opening.text!r} and {token.text!r}"
                raise ExpressionParseError(msg)

    while stack:
        token = stack.pop()
        if token.kind is TokenKind.OPEN:
            msg = f"Unclosed bracket {token.text!r}"
            raise ExpressionParseError(msg)
        output.append(token)

    return output


# =============================================================================
# POLYNOMIAL ARITHMETIC (ascending degree)
# =============================================================================


def _pad(p: NDArray[np.float64], length: int) -> NDArray[np.float64]:
    return np.pad(p, (0, length - p.size))


def poly_add(p: ArrayLike, q: ArrayLike) -> NDArray[np.float64]:
    """Sum of two ascending-degree polynomials."""
    a = np.asarray(p, dtype=np.float64)
    b = np.asarray(q, dtype=np.float64)
    length = max(a.size, b.size)
    return _pad(a, length) + _pad(b, length)


def poly_sub(p: ArrayLike, q: ArrayLike) -> NDArray[np.float64]:
    """Difference of two ascending-degree polynomials."""
    return poly_add(p, -np.asarray(q, dtype=np.float64))


def poly_mul(p: ArrayLike, q: ArrayLike) -> NDArray[np.float64]:
    """Product of two ascending-degree polynomials (discrete convolution)."""
    return np.convolve(np.asarray(p, dtype=np.float64), np.asarray(q, dtype=np.float64))


def _exponent(value: float) -> int:
    rounded = round(value)
    if value < 0 or abs(value - rounded) > 1e-9:
        msg = f"Malformed exponent: {format_number(value)} is not a non-negative integer"
        raise ExpressionParseError(msg)
    return int(rounded)


def poly_pow(p: ArrayLike, exponent: ArrayLike) -> NDArray[np.float64]:
    """Raise a polynomial to a non-negative integer constant power.

    Raises:
        ExpressionParseError: If the exponent is not a constant non-negative
            integer polynomial.
    """
    base = np.asarray(p, dtype=np.float64)
    power = np.trim_zeros(np.asarray(exponent, dtype=np.float64), "b")
    if power.size > 1:
        msg = "Malformed exponent: exponent must be a constant"
        raise ExpressionParseError(msg)

    result = np.ones(1)
    for _ in range(_exponent(float(power[0]) if power.size else 0.0)):
        result = np.convolve(result, base)
    return result


_POLY_OPS = {"+": poly_add, "-": poly_sub, "*": poly_mul, "^": poly_pow}


def _pop_operands(stack: list, operator: str) -> tuple:
    if len(stack) < 2:
        msg = f"Malformed expression: operator {operator!r} is missing an operand"
        raise ExpressionParseError(msg)
    right = stack.pop()
    left = stack.pop()
    return left, right


def evaluate_postfix(rpn: Iterable[Token]) -> NDArray[np.float64]:
    """Evaluate RPN over polynomial arithmetic.

    Returns:
        Ascending-degree coefficients (not yet trimmed).

    Raises:
        ExpressionParseError: On a malformed expression or exponent.
    """
    stack: list[NDArray[np.float64]] = []

    for token in rpn:
        if token.kind is TokenKind.NUMBER:
            stack.append(np.array([token.value]))
        elif token.kind is TokenKind.VARIABLE:
            stack.append(np.array([0.0, 1.0]))
        else:
            left, right = _pop_operands(stack, token.text)
            stack.append(_POLY_OPS[token.text](left, right))

    if len(stack) != 1:
        msg = "Malformed expression: expected a single result"
        raise ExpressionParseError(msg)
    return stack[0]


# =============================================================================
# EXPANSION
# =============================================================================


@dataclass(frozen=True, slots=True)
class ExpandedPolynomial:
    """Result of expanding an expression."""

    expression: str
    """Human-readable polynomial, e.g. ``x^2 - 2x + 1``."""

    coefficients: tuple[float, ...]
    """Descending coefficients (a_n, ..., a_0)."""

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1


def strip_leading(
    coefficients: Sequence[float],
    *,
    tolerance: float | None = None,
) -> tuple[float, ...]:
    """Drop near-zero high-degree terms; an all-zero input becomes ``(0.0,)``."""
    tol = get_tolerance("coefficient_zero_tol") if tolerance is None else tolerance
    values = [float(c) + 0.0 for c in coefficients]
    for i, c in enumerate(values):
        if abs(c) >= tol:
            return tuple(values[i:])
    return (0.0,)


def format_polynomial(coefficients: Sequence[float], *, precision: int = 4) -> str:
    """Render descending coefficients, e.g. ``(1, -2, 1) -> 'x^2 - 2x + 1'``.

    Coefficients are rounded to ``precision`` decimals with trailing zeros
    dropped; terms that round to zero are omitted.
    """
    degree = len(coefficients) - 1
    parts: list[str] = []

    for i, c in enumerate(coefficients):
        power = degree - i
        magnitude = round(abs(float(c)), precision)
        if magnitude == 0:
            continue

        number = format_number(magnitude)
        if power == 0:
            term = number
        else:
            term = "" if magnitude == 1 else number
            term += VARIABLE if power == 1 else f"{VARIABLE}^{power}"

        negative = c < 0
        if not parts:
            parts.append(f"-{term}" if negative else term)
        else:
            parts.append(f"{'-' if negative else '+'} {term}")

    return " ".join(parts) if parts else "0"


def expand(expression: str) -> ExpandedPolynomial:
    """Expand an algebraic expression in ``x`` into polynomial coefficients.

    Args:
        expression: E.g. the output of
            :func:`eigen_lab.algorithms.symbolic.expand_determinant`.

    Returns:
        ExpandedPolynomial with descending coefficients and display string.

    Raises:
        ExpressionParseError: If the expression cannot be parsed.
    """
    if not expression.strip():
        msg = "Cannot expand an empty expression"
        raise ExpressionParseError(msg)

    ascending = evaluate_postfix(to_postfix(tokenize(expression)))
    coefficients = strip_leading(ascending[::-1])
    logger.debug("Expanded %r to coefficients %s", expression, coefficients)
    return ExpandedPolynomial(format_polynomial(coefficients), coefficients)


# =============================================================================
# NUMERIC EVALUATION
# =============================================================================


def compile_expression(expression: str) -> tuple[Token, ...]:
    """Parse an expression once for repeated numeric evaluation."""
    return tuple(to_postfix(tokenize(expression)))


def evaluate_compiled(rpn: Iterable[Token], x: float) -> float:
    """Evaluate a compiled expression at ``x``."""
    stack: list[float] = []

    for token in rpn:
        if token.kind is TokenKind.NUMBER:
            stack.append(token.value)
        elif token.kind is TokenKind.VARIABLE:
            stack.append(float(x))
        else:
            left, right = _pop_operands(stack, token.text)
            if token.text == "+":
                stack.append(left + right)
            elif token.text == "-":
                stack.append(left - right)
            elif token.text == "*":
                stack.append(left * right)
            else:
                stack.append(left ** _exponent(right))

    if len(stack) != 1:
        msg = "Malformed expression: expected a single result"
        raise ExpressionParseError(msg)
    return float(stack[0])


def evaluate_expression(expression: str, x: float) -> float:
    """Evaluate the original expression string directly at ``x``.

    Independent of the expanded coefficients, so it can verify them.

    Example:
        >>> evaluate_expression("(x - 2)(x - 2) - (-1)(-1)", 3.0)
        0.0
    """
    return evaluate_compiled(compile_expression(expression), x)


def evaluate_polynomial(coefficients: ArrayLike, x: float) -> float:
    """Horner evaluation of descending coefficients."""
    return float(np.polyval(np.asarray(coefficients, dtype=np.float64), x))


def derivative(coefficients: ArrayLike, order: int = 1) -> tuple[float, ...]:
    """Descending coefficients of the ``order``-th derivative."""
    current = np.asarray(coefficients, dtype=np.float64)
    for _ in range(order):
        degree = current.size - 1
        if degree <= 0:
            return (0.0,)
        current = current[:-1] * np.arange(degree, 0, -1)
    return tuple(float(c) for c in current)


def deflate(coefficients: ArrayLike, root: float) -> tuple[tuple[float, ...], float]:
    """Divide by ``(x - root)`` with synthetic division.

    Returns:
        (quotient, remainder), quotient in descending order. An entry is
        cleaned to zero when it is below ``deflation_zero_tol`` times the
        magnitude of the two terms it was summed from, i.e. pure cancellation
        noise; small but genuine coefficients are kept at any scale.

    Example:
        >>> deflate([1, -3, 2], 1.0)
        ((1.0, -2.0), 0.0)
    """
    coeffs = np.asarray(coefficients, dtype=np.float64)
    if coeffs.size < 2:
        msg = "Cannot deflate a constant polynomial"
        raise ValueError(msg)

    quotient = np.empty(coeffs.size - 1)
    magnitude = np.empty(coeffs.size - 1)
    carry, size = coeffs[0], abs(coeffs[0])
    for i in range(1, coeffs.size):
        quotient[i - 1], magnitude[i - 1] = carry, size
        size = abs(coeffs[i]) + abs(carry * root)
        carry = coeffs[i] + carry * root

    tol = get_tolerance("deflation_zero_tol")
    quotient[np.abs(quotient) < tol * magnitude] = 0.0
    return tuple(float(q) + 0.0 for q in quotient), float(carry) + 0.0


__all__ = [
    "ExpandedPolynomial",
    "Token",
    "TokenKind",
    "compile_expression",
    "deflate",
    "derivative",
    "evaluate_compiled",
    "evaluate_expression",
    "evaluate_polynomial",
    "evaluate_postfix",
    "expand",
    "format_polynomial",
    "poly_add",
    "poly_mul",
    "poly_pow",
    "poly_sub",
    "strip_leading",
    "to_postfix",
    "tokenize",
]
