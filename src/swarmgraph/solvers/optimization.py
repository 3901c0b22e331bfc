"""Gradient-based optimization."""

import math
from typing import Any, Callable, Dict, List, Mapping, Sequence, Union

from ..exceptions import ValidationError

Objective = Callable[[List[float]], float]

GRADIENT_EPSILON = 1e-8


def numerical_gradient(objective: Objective, point: Sequence[float], epsilon: float = GRADIENT_EPSILON) -> List[float]:
    """Central-difference gradient of ``objective`` at ``point``."""
    gradient = []
    for j in range(len(point)):
        plus = list(point)
        minus = list(point)
        plus[j] += epsilon
        minus[j] -= epsilon
        gradient.append((objective(plus) - objective(minus)) / (2 * epsilon))
    return gradient


def gradient_descent(
    objective: Union[Objective, Mapping[str, Any]],
    initial_point: Sequence[float],
    learning_rate: float = 0.01,
    max_iterations: int = 1000,
    tolerance: float = 1e-6,
) -> Dict[str, Any]:
    """
    Minimize ``objective`` with fixed-step gradient descent.

    Stops after ``max_iterations`` steps or as soon as the gradient norm
    drops below ``tolerance``.

    Returns:
        ``{optimum, value, iterations, converged, gradient_norm}``
    """
    if not initial_point:
        raise ValidationError("gradient_descent needs a non-empty initial point")
    if learning_rate <= 0:
        raise ValidationError(f"learning_rate must be positive, got {learning_rate}")

    objective = build_objective(objective)
    point = [float(x) for x in initial_point]
    iterations = 0
    converged = False
    gradient_norm = math.inf

    while iterations < max_iterations:
        gradient = numerical_gradient(objective, point)
        gradient_norm = math.sqrt(sum(g * g for g in gradient))
        if gradient_norm < tolerance:
            converged = True
            break

        point = [x - learning_rate * g for x, g in zip(point, gradient)]
        iterations += 1

    return {
        "optimum": point,
        "value": objective(point),
        "iterations": iterations,
        "converged": converged,
        "gradient_norm": gradient_norm,
    }


def sum_of_squares(center: Sequence[float], weights: Sequence[float] = ()) -> Objective:
    """``sum(w_i * (x_i - c_i) ** 2)``; weights default to 1."""
    center = [float(c) for c in center]
    weights = [float(w) for w in weights] or [1.0] * len(center)
    if len(weights) != len(center):
        raise ValidationError("sum_of_squares weights must match the center length")

    def objective(point: List[float]) -> float:
        return sum(w * (x - c) ** 2 for x, c, w in zip(point, center, weights))

    return objective


def rosenbrock(a: float = 1.0, b: float = 100.0) -> Objective:
    """Two-dimensional Rosenbrock function with minimum at ``(a, a**2)``."""

    def objective(point: List[float]) -> float:
        x, y = point[0], point[1]
        return (a - x) ** 2 + b * (y - x * x) ** 2

    return objective


def build_objective(spec: Union[Objective, Mapping[str, Any]]) -> Objective:
    """
    Resolve an objective.

    Callables pass through. Mappings select a named family:
    ``{"type": "sum_of_squares", "center": [...], "weights": [...]}`` or
    ``{"type": "rosenbrock", "a": 1, "b": 100}``.
    """
    if callable(spec):
        return spec
    if not isinstance(spec, Mapping):
        raise ValidationError(f"Objective must be callable or a mapping, got {type(spec).__name__}")

    kind = spec.get("type")
    if kind == "sum_of_squares":
        if "center" not in spec:
            raise ValidationError("sum_of_squares objective needs a center")
        return sum_of_squares(spec["center"], spec.get("weights", ()))
    if kind == "rosenbrock":
        return rosenbrock(spec.get("a", 1.0), spec.get("b", 100.0))

    raise ValidationError(f"Unknown objective type: {kind!r}")
