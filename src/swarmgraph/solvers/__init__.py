"""Solver Toolbox: stateless algorithms usable as node handlers or swarm task bodies."""

from .constraint import Constraint, constraint_solve
from .expressions import Comparison, parse_comparison, parse_predicate
from .graphs import dijkstra, shortest_paths
from .optimization import build_objective, gradient_descent, numerical_gradient
from .sampling import (
    CountMinSketch,
    approximate_count,
    approximate_median,
    count_min_sketch,
    random_sample,
)
from .search import binary_search, interpolation_search, jump_search
from .signals import momentum_signal
from .toolbox import Solution, SolverToolbox

__all__ = [
    "Comparison",
    "Constraint",
    "CountMinSketch",
    "Solution",
    "SolverToolbox",
    "approximate_count",
    "approximate_median",
    "binary_search",
    "build_objective",
    "constraint_solve",
    "count_min_sketch",
    "dijkstra",
    "gradient_descent",
    "interpolation_search",
    "jump_search",
    "momentum_signal",
    "numerical_gradient",
    "parse_comparison",
    "parse_predicate",
    "random_sample",
    "shortest_paths",
]
