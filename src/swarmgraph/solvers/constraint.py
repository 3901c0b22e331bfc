"""Backtracking constraint satisfaction."""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..exceptions import ValidationError
from .expressions import Comparison, parse_comparison

Assignment = Dict[str, Any]


class Constraint:
    """
    A check over a fixed set of variables.

    The solver calls ``check`` only once every variable in ``variables`` has
    a value in the assignment.
    """

    def __init__(self, variables: Sequence[str], check: Callable[[Assignment], bool], name: Optional[str] = None):
        if not variables:
            raise ValidationError("A constraint must reference at least one variable")
        self.variables = list(variables)
        self.check = check
        self.name = name or f"constraint({', '.join(self.variables)})"

    @classmethod
    def from_expression(cls, spec: Union[Comparison, Mapping[str, Any]]) -> "Constraint":
        comparison = parse_comparison(spec)
        variables = comparison.variables()
        return cls(variables, comparison.evaluate, name=f"{comparison.op}({', '.join(variables)})")

    def is_ready(self, assignment: Assignment) -> bool:
        return all(v in assignment for v in self.variables)

    def __repr__(self) -> str:
        return f"<Constraint {self.name}>"


def _as_constraint(item: Union[Constraint, Comparison, Mapping[str, Any]]) -> Constraint:
    if isinstance(item, Constraint):
        return item
    return Constraint.from_expression(item)


def constraint_solve(
    variables: Sequence[str],
    domains: Mapping[str, Sequence[Any]],
    constraints: Sequence[Union[Constraint, Comparison, Mapping[str, Any]]],
) -> Dict[str, Any]:
    """
    Depth-first backtracking search.

    Variables are assigned in the given order and domain values are tried in
    the given order, so the first consistent assignment found is
    deterministic.

    Returns:
        ``{solved, assignment, variables, constraints, nodes_explored}``;
        ``assignment`` is None when the search space is exhausted
    """
    parsed = [_as_constraint(c) for c in constraints]

    known = set(variables)
    for constraint in parsed:
        unknown = [v for v in constraint.variables if v not in known]
        if unknown:
            raise ValidationError(f"{constraint.name} references undeclared variables {unknown}")

    assignment: Assignment = {}
    explored = 0

    def consistent(variable: str) -> bool:
        for constraint in parsed:
            if variable in constraint.variables and constraint.is_ready(assignment):
                if not constraint.check(assignment):
                    return False
        return True

    def backtrack(index: int) -> bool:
        nonlocal explored
        if index == len(variables):
            return True

        variable = variables[index]
        for value in domains.get(variable, []):
            explored += 1
            assignment[variable] = value
            if consistent(variable) and backtrack(index + 1):
                return True
            del assignment[variable]

        return False

    solved = backtrack(0)

    return {
        "solved": solved,
        "assignment": dict(assignment) if solved else None,
        "variables": len(variables),
        "constraints": len(parsed),
        "nodes_explored": explored,
    }
