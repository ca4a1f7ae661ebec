"""Minimal evaluator for the conditions and values used by scene directives.

The analyser never needs full expression semantics: conditions are treated as
free choices unless pruning is enabled, and even then only expressions whose
operands are all bound to concrete values are folded. Anything else evaluates
to :data:`UNKNOWN`.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping

from parsimonious.exceptions import ParseError as GrammarParseError
from parsimonious.exceptions import VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor


class _Unknown:
    """Sentinel for values that cannot be determined statically."""

    _instance: "_Unknown | None" = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        raise TypeError("UNKNOWN cannot be converted to a boolean value.")


UNKNOWN: Any = _Unknown()


@dataclass(frozen=True)
class Symbolic:
    """A binding whose value is only known as the expression that produced it."""

    expression: str

    def __str__(self) -> str:
        return f"<{self.expression}>"


class ExpressionError(ValueError):
    """Raised when condition text does not match the expression grammar."""


EXPRESSION_GRAMMAR = Grammar(
    r"""
    expression   = _ disjunction _
    disjunction  = conjunction (_ or_kw _ conjunction)*
    conjunction  = negation (_ and_kw _ negation)*
    negation     = not_call / comparison
    not_call     = not_kw _ "(" _ expression _ ")"
    comparison   = sum (_ comp_op _ sum)?
    sum          = product (_ add_op _ product)*
    product      = atom (_ mul_op _ atom)*
    atom         = number / string / boolean / variable / group
    group        = "(" _ expression _ ")"

    comp_op      = "<=" / ">=" / "!=" / "<" / ">" / "="
    add_op       = "%+" / "%-" / "+" / "-" / "&"
    mul_op       = "*" / "/" / ~r"modulo\b"i

    or_kw        = ~r"or\b"i
    and_kw       = ~r"and\b"i
    not_kw       = ~r"not\b"i

    number       = ~r"\d+(\.\d+)?"
    string       = ~r'"(?:[^"\\]|\\.)*"'
    boolean      = ~r"(true|false)\b"i
    variable     = ~r"[A-Za-z_][A-Za-z0-9_]*"
    _            = ~r"\s*"
    """
)


def _tail(children: Any) -> list[Any]:
    """Normalise an optional/repeated group into a list of visited items."""

    if isinstance(children, Node):
        return []
    return list(children)


class _ExpressionBuilder(NodeVisitor):
    """Turn a parse tree into nested tuples ``(op, *operands)``."""

    grammar = EXPRESSION_GRAMMAR

    def visit_expression(self, node, visited_children):
        return visited_children[1]

    def _fold(self, node, visited_children):
        result = visited_children[0]
        for _, op, _, operand in _tail(visited_children[1]):
            result = ("bin", op, result, operand)
        return result

    visit_disjunction = _fold
    visit_conjunction = _fold
    visit_sum = _fold
    visit_product = _fold

    def visit_comparison(self, node, visited_children):
        left, rest = visited_children
        tail = _tail(rest)
        if not tail:
            return left
        _, op, _, right = tail[0]
        return ("bin", op, left, right)

    def visit_negation(self, node, visited_children):
        return visited_children[0]

    def visit_not_call(self, node, visited_children):
        return ("not", visited_children[4])

    def visit_atom(self, node, visited_children):
        return visited_children[0]

    def visit_group(self, node, visited_children):
        return visited_children[2]

    def visit_comp_op(self, node, visited_children):
        return node.text

    def visit_add_op(self, node, visited_children):
        return node.text

    def visit_mul_op(self, node, visited_children):
        return node.text.lower()

    def visit_or_kw(self, node, visited_children):
        return "or"

    def visit_and_kw(self, node, visited_children):
        return "and"

    def visit_number(self, node, visited_children):
        text = node.text
        return ("lit", float(text) if "." in text else int(text))

    def visit_string(self, node, visited_children):
        body = node.text[1:-1]
        return ("lit", body.replace('\\"', '"').replace("\\\\", "\\"))

    def visit_boolean(self, node, visited_children):
        return ("lit", node.text.lower() == "true")

    def visit_variable(self, node, visited_children):
        return ("var", node.text.lower())

    def generic_visit(self, node, visited_children):
        return visited_children or node


@lru_cache(maxsize=512)
def parse_expression(text: str) -> tuple:
    """Parse ``text`` into an expression tree, caching repeated conditions."""

    try:
        return _ExpressionBuilder().parse(text)
    except (GrammarParseError, VisitationError) as exc:
        raise ExpressionError(f"Cannot parse expression '{text}'") from exc


def _fairmath_add(left: Any, right: Any) -> int:
    return round(left + (100 - left) * right / 100)


def _fairmath_sub(left: Any, right: Any) -> int:
    return round(left - left * right / 100)


_ARITHMETIC: Mapping[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "modulo": operator.mod,
    "%+": _fairmath_add,
    "%-": _fairmath_sub,
}

_COMPARISONS: Mapping[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


def _is_known(value: Any) -> bool:
    return value is not UNKNOWN and not isinstance(value, Symbolic)


def _evaluate_tree(tree: tuple, bindings: Mapping[str, Any]) -> Any:
    tag = tree[0]
    if tag == "lit":
        return tree[1]
    if tag == "var":
        value = bindings.get(tree[1], UNKNOWN)
        return value if _is_known(value) else UNKNOWN
    if tag == "not":
        value = _evaluate_tree(tree[1], bindings)
        if isinstance(value, bool):
            return not value
        return UNKNOWN

    _, op, left_tree, right_tree = tree
    left = _evaluate_tree(left_tree, bindings)
    if op in ("and", "or"):
        # Short-circuit on a definite left operand so an unknown right side
        # does not hide a decided result.
        if op == "and" and left is False:
            return False
        if op == "or" and left is True:
            return True
        right = _evaluate_tree(right_tree, bindings)
        if op == "and" and right is False:
            return False
        if op == "or" and right is True:
            return True
        if isinstance(left, bool) and isinstance(right, bool):
            return left and right if op == "and" else left or right
        return UNKNOWN

    right = _evaluate_tree(right_tree, bindings)
    if not (_is_known(left) and _is_known(right)):
        return UNKNOWN
    try:
        if op == "&":
            return f"{left}{right}"
        if op in _COMPARISONS:
            return _COMPARISONS[op](left, right)
        return _ARITHMETIC[op](left, right)
    except (TypeError, ZeroDivisionError):
        return UNKNOWN


def evaluate(text: str, bindings: Mapping[str, Any]) -> Any:
    """Evaluate ``text`` against ``bindings``; undecidable results are ``UNKNOWN``.

    Text that is not a valid expression also yields ``UNKNOWN``: the analyser
    keeps exploring both outcomes rather than rejecting the scene.
    """

    try:
        tree = parse_expression(text)
    except ExpressionError:
        return UNKNOWN
    return _evaluate_tree(tree, bindings)


def evaluate_condition(text: str, bindings: Mapping[str, Any]) -> bool | None:
    """Return ``True``/``False`` for decided conditions and ``None`` otherwise."""

    value = evaluate(text, bindings)
    if isinstance(value, bool):
        return value
    return None


def evaluate_assignment(
    variable: str, expression: str, bindings: Mapping[str, Any]
) -> Any:
    """Compute the value a ``*set`` assigns.

    Expressions starting with an operator are shorthand for applying it to the
    variable's current value (``*set strength +1``).
    """

    text = expression.strip()
    for shorthand in ("%+", "%-", "+", "-", "*", "/", "&"):
        if text.startswith(shorthand):
            current = bindings.get(variable, UNKNOWN)
            operand = evaluate(text[len(shorthand) :], bindings)
            if not (_is_known(current) and _is_known(operand)):
                return Symbolic(text)
            try:
                if shorthand == "&":
                    return f"{current}{operand}"
                return _ARITHMETIC[shorthand](current, operand)
            except (TypeError, ZeroDivisionError):
                return Symbolic(text)

    value = evaluate(text, bindings)
    if value is UNKNOWN:
        return Symbolic(text)
    return value


__all__ = [
    "UNKNOWN",
    "Symbolic",
    "ExpressionError",
    "EXPRESSION_GRAMMAR",
    "parse_expression",
    "evaluate",
    "evaluate_condition",
    "evaluate_assignment",
]
