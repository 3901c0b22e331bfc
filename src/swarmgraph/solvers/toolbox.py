"""
Solver Toolbox

Routes problem payloads to the stateless solver functions, keeps a bounded
cache of recent solutions and tracks solve metrics.
"""

import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from ..communication.events import EventBus
from ..exceptions import ValidationError
from ..utils.helpers import generate_id, setup_logging
from ..utils.registry import BoundedRegistry
from .constraint import constraint_solve
from .graphs import shortest_paths
from .optimization import gradient_descent
from .sampling import approximate_count, approximate_median, count_min_sketch, random_sample
from .search import binary_search, interpolation_search, jump_search
from .signals import momentum_signal

logger = setup_logging(__name__)

SOLVER_TYPES = {
    "sublinear": "sublinear",
    "shortest-path": "shortest-path",
    "bmssp": "shortest-path",
    "constraint": "constraint",
    "optimization": "optimization",
    "signal": "signal",
    "neural-trader": "signal",
}

SUBLINEAR_ALGORITHMS = (
    "binary-search",
    "jump-search",
    "interpolation-search",
    "approximate-median",
    "approximate-count",
    "sampling",
    "sketch",
)

SolverHandler = Callable[[Mapping[str, Any]], Any]


class Solution(BaseModel):
    """A solved problem."""

    problem_id: str
    type: str
    solution: Any = None
    solve_time: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _param(source: Mapping[str, Any], name: str, alias: Optional[str] = None, default: Any = None) -> Any:
    if name in source:
        return source[name]
    if alias and alias in source:
        return source[alias]
    return default


def _require(source: Mapping[str, Any], name: str, problem_type: str, alias: Optional[str] = None) -> Any:
    value = _param(source, name, alias)
    if value is None:
        raise ValidationError(f"{problem_type} problem is missing {name!r}")
    return value


class SolverToolbox:
    """
    Solves problem payloads of the form ``{"type": ..., ...}``.

    Built-in types: ``sublinear`` (dispatched further by ``algorithm``),
    ``shortest-path`` (alias ``bmssp``), ``constraint``, ``optimization`` and
    ``signal`` (alias ``neural-trader``). Additional types can be added with
    :meth:`register_solver`. Unknown types or algorithms are rejected.
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        max_solutions: int = 1024,
        seed: Optional[int] = None,
    ):
        """
        Initialize the toolbox.

        Args:
            events: Event bus for ``solve_completed`` notifications
            max_solutions: Capacity of the solution cache
            seed: Seed for the randomized sublinear estimators
        """
        self.events = events or EventBus()
        self.rng = random.Random(seed)
        self.solvers: Dict[str, SolverHandler] = {}
        self.solutions: BoundedRegistry[Solution] = BoundedRegistry("solution", max_solutions)
        self.metrics = {
            "problems_solved": 0,
            "average_solve_time": 0.0,
            "sublinear_ops": 0,
            "paths_computed": 0,
        }

    def register_solver(self, name: str, handler: SolverHandler) -> None:
        """Register a custom solver for problems whose ``type`` is ``name``."""
        if name in SOLVER_TYPES:
            raise ValidationError(f"Solver type {name!r} is built in and cannot be replaced")
        self.solvers[name] = handler
        logger.debug(f"Registered solver {name}")

    def can_solve(self, problem: Any) -> bool:
        return isinstance(problem, Mapping) and (
            problem.get("type") in SOLVER_TYPES or problem.get("type") in self.solvers
        )

    def solve(self, problem: Mapping[str, Any]) -> Solution:
        """
        Solve one problem.

        Raises:
            ValidationError: If the type or algorithm is unknown or inputs are invalid
        """
        if not isinstance(problem, Mapping):
            raise ValidationError(f"Problem must be a mapping, got {type(problem).__name__}")

        problem_type = problem.get("type")
        problem_id = str(problem["id"]) if problem.get("id") is not None else generate_id("prob-")
        start = time.perf_counter()

        if problem_type in self.solvers:
            solution = self.solvers[problem_type](problem)
        elif problem_type in SOLVER_TYPES:
            kind = SOLVER_TYPES[problem_type]
            solution = getattr(self, f"_solve_{kind.replace('-', '_')}")(problem)
        else:
            raise ValidationError(f"Unknown solver type: {problem_type!r}")

        solve_time = time.perf_counter() - start
        record = Solution(problem_id=problem_id, type=problem_type, solution=solution, solve_time=solve_time)

        self.solutions.register(problem_id, record)
        self._update_metrics(solve_time)

        logger.debug(f"Solved {problem_type} problem {problem_id} in {solve_time:.6f}s")
        self.events.emit("solve_completed", problem_id, type=problem_type, solve_time=solve_time)
        return record

    def _solve_sublinear(self, problem: Mapping[str, Any]) -> Any:
        self.metrics["sublinear_ops"] += 1

        algorithm = problem.get("algorithm")
        data = _require(problem, "data", "sublinear")
        params = problem.get("params") or {}

        if algorithm == "binary-search":
            return binary_search(data, _require(params, "target", algorithm))
        if algorithm == "jump-search":
            return jump_search(data, _require(params, "target", algorithm))
        if algorithm == "interpolation-search":
            return interpolation_search(data, _require(params, "target", algorithm))
        if algorithm == "approximate-median":
            return approximate_median(data, params.get("epsilon", 0.1), rng=self.rng)
        if algorithm == "approximate-count":
            return approximate_count(data, _require(params, "predicate", algorithm), rng=self.rng)
        if algorithm == "sampling":
            size = _require(params, "sample_size", algorithm, alias="sampleSize")
            return random_sample(data, size, rng=self.rng)
        if algorithm == "sketch":
            sketch = count_min_sketch(data)
            queries = params.get("queries")
            if queries is None:
                queries = list(dict.fromkeys(str(item) for item in data))
            return sketch.to_dict(queries)

        raise ValidationError(
            f"Unknown sublinear algorithm {algorithm!r}; expected one of {', '.join(SUBLINEAR_ALGORITHMS)}"
        )

    def _solve_shortest_path(self, problem: Mapping[str, Any]) -> Any:
        self.metrics["paths_computed"] += 1
        graph = _require(problem, "graph", "shortest-path")
        return shortest_paths(graph, problem.get("sources"), problem.get("targets"))

    def _solve_constraint(self, problem: Mapping[str, Any]) -> Any:
        return constraint_solve(
            _require(problem, "variables", "constraint"),
            _require(problem, "domains", "constraint"),
            problem.get("constraints") or [],
        )

    def _solve_optimization(self, problem: Mapping[str, Any]) -> Any:
        return gradient_descent(
            _require(problem, "objective", "optimization"),
            _require(problem, "initial_point", "optimization", alias="initialPoint"),
            learning_rate=_param(problem, "learning_rate", "learningRate", 0.01),
            max_iterations=_param(problem, "max_iterations", "maxIterations", 1000),
            tolerance=_param(problem, "tolerance", default=1e-6),
        )

    def _solve_signal(self, problem: Mapping[str, Any]) -> Any:
        return momentum_signal(problem.get("prices") or [], problem.get("lookback", 20))

    def _update_metrics(self, solve_time: float) -> None:
        count = self.metrics["problems_solved"]
        average = self.metrics["average_solve_time"]
        self.metrics["average_solve_time"] = (average * count + solve_time) / (count + 1)
        self.metrics["problems_solved"] = count + 1

    def get_metrics(self) -> Dict[str, Any]:
        return {
            **self.metrics,
            "registered_solvers": len(self.solvers),
            "cached_solutions": len(self.solutions),
        }
