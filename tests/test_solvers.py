"""Tests for the solver toolbox."""

import math
import random

import pytest

from swarmgraph.communication.events import EventBus, EventRecorder
from swarmgraph.exceptions import ValidationError
from swarmgraph.solvers import (
    Constraint,
    CountMinSketch,
    SolverToolbox,
    approximate_count,
    approximate_median,
    binary_search,
    constraint_solve,
    dijkstra,
    gradient_descent,
    interpolation_search,
    jump_search,
    momentum_signal,
    parse_comparison,
    parse_predicate,
    random_sample,
    shortest_paths,
)

TRIANGLE = {
    "nodes": ["A", "B", "C"],
    "edges": [
        {"from": "A", "to": "B", "weight": 1},
        {"from": "B", "to": "C", "weight": 1},
        {"from": "A", "to": "C", "weight": 5},
    ],
}

XYZ_CONSTRAINTS = [
    {"op": "ne", "left": "x", "right": "y"},
    {"op": "lt", "left": "y", "right": "z"},
    {"op": "eq", "left": {"sum": ["x", "z"]}, "right": 5},
]


class TestSearch:
    """Test cases for the sublinear searches."""

    @pytest.mark.parametrize("n", [1, 2, 7, 100, 1000])
    def test_binary_search_comparison_bound(self, n):
        """Test correctness and the ceil(log2 n) + 1 comparison bound."""
        values = list(range(0, 2 * n, 2))
        bound = math.ceil(math.log2(n)) + 1

        for index, target in enumerate(values):
            result = binary_search(values, target)
            assert result["found"] is True
            assert result["index"] == index
            assert result["comparisons"] <= bound

    def test_binary_search_missing(self):
        """Test a target that is not present."""
        assert binary_search([1, 3, 5], 4) == {"found": False, "index": -1, "comparisons": 2}
        assert binary_search([], 4)["found"] is False

    def test_jump_search(self):
        """Test jump search over present and missing targets."""
        values = list(range(0, 50, 5))

        assert jump_search(values, 35)["index"] == 7
        assert jump_search(values, 0)["index"] == 0
        assert jump_search(values, 45)["index"] == 9
        assert jump_search(values, 36)["found"] is False
        assert jump_search(values, 100)["found"] is False
        assert jump_search([], 1)["found"] is False

    def test_interpolation_search(self):
        """Test interpolation search including equal bounds."""
        values = list(range(10, 110, 10))

        assert interpolation_search(values, 70)["index"] == 6
        assert interpolation_search(values, 75)["found"] is False
        assert interpolation_search(values, 5)["found"] is False
        assert interpolation_search([4, 4, 4], 4) == {"found": True, "index": 0, "comparisons": 1}
        assert interpolation_search([4, 4, 4], 5)["found"] is False


class TestSampling:
    """Test cases for the randomized estimators."""

    def test_approximate_median(self):
        """Test the sample size and a plausible estimate."""
        data = list(range(1001))
        result = approximate_median(data, epsilon=0.1, rng=random.Random(7))

        assert result["sample_size"] == 100
        assert 300 <= result["approximate_median"] <= 700

    def test_approximate_median_validation(self):
        """Test invalid inputs."""
        with pytest.raises(ValidationError):
            approximate_median([], 0.1)
        with pytest.raises(ValidationError):
            approximate_median([1], 0)

    def test_approximate_count_with_structured_predicate(self):
        """Test counting with a data-described predicate."""
        data = [1] * 100
        result = approximate_count(data, {"op": "gt", "value": 0}, rng=random.Random(1))

        assert result == {"estimated_count": 100, "sample_size": 10, "sample_ratio": 1.0}

    def test_approximate_count_empty(self):
        """Test counting over no data."""
        assert approximate_count([], lambda x: True)["estimated_count"] == 0

    def test_random_sample(self):
        """Test sampling without replacement."""
        result = random_sample(list(range(10)), 4, rng=random.Random(3))

        assert result["sample_size"] == 4
        assert len(set(result["samples"])) == 4
        assert random_sample([1, 2], 5)["sample_size"] == 2

    def test_count_min_sketch(self):
        """Test that point queries never underestimate."""
        sketch = CountMinSketch()
        sketch.update(["a", "b", "a", "c", "a"])

        assert sketch.query("a") >= 3
        assert sketch.query("b") >= 1
        assert sketch.total == 5
        assert len(sketch.table) == 7
        assert len(sketch.table[0]) == 1000

    def test_count_min_sketch_rows_differ(self):
        """Test that a collision in one row is not repeated in every row."""
        sketch = CountMinSketch(width=10, depth=2)

        assert sketch._hash("ab", sketch.seeds[0]) == sketch._hash("ba", sketch.seeds[0])
        assert sketch._hash("ab", sketch.seeds[1]) != sketch._hash("ba", sketch.seeds[1])

        for _ in range(5):
            sketch.add("ab")
        assert sketch.query("ab") == 5
        assert sketch.query("ba") == 0


class TestExpressions:
    """Test cases for structured comparisons."""

    def test_comparison_variables_and_evaluation(self):
        """Test variable discovery and evaluation."""
        comparison = parse_comparison({"op": "eq", "left": {"diff": ["x", "y"]}, "right": 1})

        assert comparison.variables() == ["x", "y"]
        assert comparison.evaluate({"x": 3, "y": 2}) is True
        assert comparison.evaluate({"x": 3, "y": 1}) is False

    def test_const_term(self):
        """Test string constants."""
        predicate = parse_predicate({"op": "eq", "left": "item", "right": {"const": "red"}})

        assert predicate("red") is True
        assert predicate("blue") is False

    def test_unbound_variable(self):
        """Test evaluation with a missing binding."""
        comparison = parse_comparison({"op": "lt", "left": "x", "right": "y"})

        with pytest.raises(ValidationError, match="Unbound"):
            comparison.evaluate({"x": 1})

    def test_invalid_expression(self):
        """Test that unknown operators are rejected."""
        with pytest.raises(ValidationError):
            parse_comparison({"op": "matches", "left": "x", "right": 1})

    def test_predicate_only_references_item(self):
        """Test that predicates cannot name other variables."""
        with pytest.raises(ValidationError, match="item"):
            parse_predicate({"op": "lt", "left": "item", "right": "limit"})


class TestGraphs:
    """Test cases for shortest paths."""

    def test_triangle_shortest_path(self):
        """Test that A->C goes through B."""
        result = shortest_paths(TRIANGLE, sources=["A"], targets=["C"])

        assert result["paths"] == {"A->C": 2}
        assert result["sources"] == 1
        assert result["targets"] == 1

    def test_default_sources_and_targets(self):
        """Test defaults: first node as source, every vertex as target."""
        result = shortest_paths(TRIANGLE)

        assert result["paths"] == {"A->B": 1, "A->C": 2}

    def test_unreachable_is_infinite(self):
        """Test that missing edges imply infinite distance."""
        distances = dijkstra(["A", "B", "C"], TRIANGLE["edges"], "C")

        assert distances["C"] == 0
        assert distances["A"] == math.inf

    def test_default_weight_and_node_mappings(self):
        """Test node mappings and the implicit unit weight."""
        distances = dijkstra([{"id": "x"}, {"id": "y"}], [{"from": "x", "to": "y"}], "x")

        assert distances == {"x": 0, "y": 1}

    def test_negative_weight(self):
        """Test that negative weights are rejected."""
        with pytest.raises(ValidationError):
            dijkstra(["a", "b"], [{"from": "a", "to": "b", "weight": -1}], "a")


class TestConstraintSolver:
    """Test cases for backtracking CSP."""

    def test_xyz_problem(self):
        """Test the first consistent assignment in domain order."""
        result = constraint_solve(["x", "y", "z"], {v: [1, 2, 3, 4, 5] for v in "xyz"}, XYZ_CONSTRAINTS)

        assert result["solved"] is True
        assert result["assignment"] == {"x": 1, "y": 2, "z": 4}
        assert result["constraints"] == 3

    def test_unsatisfiable(self):
        """Test that exhausting the search space is a normal result."""
        constraints = [{"op": "eq", "left": "x", "right": 9}]
        result = constraint_solve(["x"], {"x": [1, 2]}, constraints)

        assert result["solved"] is False
        assert result["assignment"] is None
        assert result["nodes_explored"] == 2

    def test_callable_constraint(self):
        """Test constraints built from Python callables."""
        even = Constraint(["x"], lambda a: a["x"] % 2 == 0, name="even")
        result = constraint_solve(["x"], {"x": [1, 3, 4]}, [even])

        assert result["assignment"] == {"x": 4}

    def test_undeclared_variable(self):
        """Test that constraints must reference declared variables."""
        with pytest.raises(ValidationError, match="undeclared"):
            constraint_solve(["x"], {"x": [1]}, [{"op": "lt", "left": "x", "right": "w"}])


class TestOptimizationAndSignals:
    """Test cases for gradient descent and the momentum heuristic."""

    def test_gradient_descent_converges(self):
        """Test minimizing (x-2)^2 + (y-3)^2 from the origin."""
        result = gradient_descent(
            lambda p: (p[0] - 2) ** 2 + (p[1] - 3) ** 2,
            [0, 0],
            learning_rate=0.1,
            max_iterations=100,
        )

        assert abs(result["optimum"][0] - 2) < 0.1
        assert abs(result["optimum"][1] - 3) < 0.1
        assert result["iterations"] <= 100

    def test_gradient_descent_stops_on_tolerance(self):
        """Test early stop when starting at the minimum."""
        result = gradient_descent({"type": "sum_of_squares", "center": [1, 1]}, [1, 1])

        assert result["converged"] is True
        assert result["iterations"] == 0

    def test_unknown_objective(self):
        """Test that objective families must be known."""
        with pytest.raises(ValidationError):
            gradient_descent({"type": "mystery"}, [0])

    def test_momentum_buy_and_sell(self):
        """Test steady rises and falls."""
        rising = [100 * 1.01 ** i for i in range(30)]
        falling = [100 * 0.99 ** i for i in range(30)]

        buy = momentum_signal(rising)
        sell = momentum_signal(falling)

        assert buy["signal"] == "buy"
        assert buy["confidence"] == 0.9
        assert sell["signal"] == "sell"

    def test_momentum_short_history(self):
        """Test that too few prices hold with zero confidence."""
        assert momentum_signal([1, 2, 3], lookback=20) == {"signal": "hold", "confidence": 0.0}

    def test_momentum_flat(self):
        """Test that a flat series holds."""
        assert momentum_signal([50.0] * 25)["signal"] == "hold"


class TestSolverToolbox:
    """Test cases for problem dispatch."""

    def test_dispatch_by_type(self):
        """Test every built-in problem type."""
        toolbox = SolverToolbox(seed=42)

        search = toolbox.solve({
            "type": "sublinear", "algorithm": "binary-search",
            "data": [1, 3, 5, 7], "params": {"target": 5},
        })
        path = toolbox.solve({"type": "bmssp", "graph": TRIANGLE, "sources": ["A"], "targets": ["C"]})
        csp = toolbox.solve({
            "type": "constraint", "variables": ["x", "y", "z"],
            "domains": {v: [1, 2, 3, 4, 5] for v in "xyz"}, "constraints": XYZ_CONSTRAINTS,
        })
        optimum = toolbox.solve({
            "type": "optimization",
            "objective": {"type": "sum_of_squares", "center": [2, 3]},
            "initialPoint": [0, 0], "learningRate": 0.1, "maxIterations": 100,
        })
        signal = toolbox.solve({"type": "neural-trader", "prices": [1, 2]})

        assert search.solution["index"] == 2
        assert path.solution["paths"]["A->C"] == 2
        assert csp.solution["assignment"] == {"x": 1, "y": 2, "z": 4}
        assert abs(optimum.solution["optimum"][0] - 2) < 0.1
        assert signal.solution["signal"] == "hold"

    def test_sketch_default_queries(self):
        """Test that sketch frequencies cover every distinct item."""
        solution = SolverToolbox().solve({"type": "sublinear", "algorithm": "sketch", "data": ["a", "b", "a"]})

        assert solution.solution["frequencies"] == {"a": 2, "b": 1}
        assert solution.solution["total"] == 3

    def test_sampling_alias(self):
        """Test camelCase parameter aliases."""
        solution = SolverToolbox(seed=1).solve({
            "type": "sublinear", "algorithm": "sampling",
            "data": list(range(20)), "params": {"sampleSize": 5},
        })

        assert solution.solution["sample_size"] == 5

    def test_unknown_type_and_algorithm(self):
        """Test that unknown types and algorithms are rejected."""
        toolbox = SolverToolbox()

        with pytest.raises(ValidationError, match="Unknown solver type"):
            toolbox.solve({"type": "quantum"})
        with pytest.raises(ValidationError, match="Unknown sublinear algorithm"):
            toolbox.solve({"type": "sublinear", "algorithm": "guess", "data": [1]})

    def test_missing_input(self):
        """Test that required inputs are checked."""
        with pytest.raises(ValidationError, match="target"):
            SolverToolbox().solve({"type": "sublinear", "algorithm": "binary-search", "data": [1]})

    def test_numeric_problem_id(self):
        """Test that non-string problem ids are stored as strings."""
        toolbox = SolverToolbox()

        solution = toolbox.solve({
            "id": 7, "type": "sublinear", "algorithm": "binary-search",
            "data": [1, 2, 3], "params": {"target": 2},
        })

        assert solution.problem_id == "7"
        assert solution.solution["index"] == 1
        assert "7" in toolbox.solutions

    def test_register_solver(self):
        """Test custom solver registration."""
        toolbox = SolverToolbox()
        toolbox.register_solver("double", lambda problem: problem["value"] * 2)

        assert toolbox.can_solve({"type": "double"})
        assert toolbox.solve({"type": "double", "value": 21}).solution == 42

        with pytest.raises(ValidationError, match="built in"):
            toolbox.register_solver("constraint", lambda problem: None)

    def test_solutions_metrics_and_events(self):
        """Test the solution cache, counters and solve events."""
        events = EventBus()
        recorder = events.subscribe(EventRecorder(), events=["solve_completed"])
        toolbox = SolverToolbox(events=events, max_solutions=1)

        toolbox.solve({"id": "p1", "type": "signal", "prices": []})
        toolbox.solve({"id": "p2", "type": "shortest-path", "graph": TRIANGLE})

        assert "p1" not in toolbox.solutions
        assert toolbox.solutions.get("p2").type == "shortest-path"
        assert [e.source_id for e in recorder.events] == ["p1", "p2"]

        metrics = toolbox.get_metrics()
        assert metrics["problems_solved"] == 2
        assert metrics["paths_computed"] == 1
        assert metrics["cached_solutions"] == 1
