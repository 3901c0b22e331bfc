"""
Structured comparison expressions.

Conditions that arrive as data (CSP constraints, counting predicates) are
described with these models instead of source strings:

    {"op": "ne", "left": "x", "right": "y"}
    {"op": "eq", "left": {"sum": ["x", "z"]}, "right": 5}
    {"op": "gt", "value": 10}                      # predicate on one item

A bare string term names a variable; numbers are constants; ``{"const": v}``
wraps any other constant (for example a string to compare against).
"""

import operator
from typing import Any, Callable, Dict, List, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError

from ..exceptions import ValidationError

ITEM = "item"

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}


class ConstTerm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    const: Any


class SumTerm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sum: List["Term"]


class DiffTerm(BaseModel):
    """``diff: [a, b]`` evaluates to ``a - b``."""

    model_config = ConfigDict(extra="forbid")

    diff: List["Term"]


Term = Union[int, float, str, ConstTerm, SumTerm, DiffTerm]

SumTerm.model_rebuild()
DiffTerm.model_rebuild()


def _term_variables(term: Term, found: List[str]) -> None:
    if isinstance(term, str):
        if term not in found:
            found.append(term)
    elif isinstance(term, SumTerm):
        for part in term.sum:
            _term_variables(part, found)
    elif isinstance(term, DiffTerm):
        for part in term.diff:
            _term_variables(part, found)


def _evaluate_term(term: Term, bindings: Mapping[str, Any]) -> Any:
    if isinstance(term, str):
        return bindings[term]
    if isinstance(term, ConstTerm):
        return term.const
    if isinstance(term, SumTerm):
        return sum(_evaluate_term(part, bindings) for part in term.sum)
    if isinstance(term, DiffTerm):
        if len(term.diff) != 2:
            raise ValidationError("diff takes exactly two terms")
        return _evaluate_term(term.diff[0], bindings) - _evaluate_term(term.diff[1], bindings)
    return term


class Comparison(BaseModel):
    """``left <op> right`` over variables, constants and sums."""

    model_config = ConfigDict(extra="forbid")

    op: Literal["eq", "ne", "lt", "le", "gt", "ge"]
    left: Term
    right: Term

    def variables(self) -> List[str]:
        found: List[str] = []
        _term_variables(self.left, found)
        _term_variables(self.right, found)
        return found

    def evaluate(self, bindings: Mapping[str, Any]) -> bool:
        missing = [v for v in self.variables() if v not in bindings]
        if missing:
            raise ValidationError(f"Unbound variables in expression: {missing}")
        return bool(_OPERATORS[self.op](
            _evaluate_term(self.left, bindings),
            _evaluate_term(self.right, bindings),
        ))


def parse_comparison(spec: Union[Comparison, Mapping[str, Any]]) -> Comparison:
    """Validate a mapping into a :class:`Comparison`."""
    if isinstance(spec, Comparison):
        return spec
    try:
        return Comparison.model_validate(spec)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid expression {dict(spec)!r}: {e}") from e


def parse_predicate(spec: Union[Callable[[Any], bool], Comparison, Mapping[str, Any]]) -> Callable[[Any], bool]:
    """
    Build a one-argument predicate.

    Callables pass through unchanged. Mappings are comparisons over the
    variable ``item``; the shorthand ``{"op": ..., "value": v}`` means
    ``item <op> v``.
    """
    if callable(spec) and not isinstance(spec, Comparison):
        return spec

    if isinstance(spec, Mapping) and "value" in spec and "left" not in spec:
        spec = {"op": spec.get("op"), "left": ITEM, "right": {"const": spec["value"]}}

    comparison = parse_comparison(spec)
    unexpected = [v for v in comparison.variables() if v != ITEM]
    if unexpected:
        raise ValidationError(f"Predicates may only reference {ITEM!r}, found {unexpected}")

    def predicate(value: Any) -> bool:
        return comparison.evaluate({ITEM: value})

    return predicate
