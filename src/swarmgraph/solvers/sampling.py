"""
Sampling estimators and the count-min sketch.

All randomized functions take an optional ``random.Random`` so callers can
make them reproducible.
"""

import math
import random
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..exceptions import ValidationError
from .expressions import Comparison, parse_predicate


def approximate_median(
    data: Sequence[Any],
    epsilon: float = 0.1,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Estimate the median from ``ceil(1 / epsilon**2)`` samples drawn with replacement.

    Returns:
        ``{approximate_median, sample_size, epsilon}``
    """
    if not data:
        raise ValidationError("approximate_median needs at least one value")
    if not 0 < epsilon <= 1:
        raise ValidationError(f"epsilon must be in (0, 1], got {epsilon}")

    rng = rng or random.Random()
    sample_size = math.ceil(1 / (epsilon * epsilon))
    samples = sorted(rng.choice(data) for _ in range(sample_size))

    return {
        "approximate_median": samples[len(samples) // 2],
        "sample_size": sample_size,
        "epsilon": epsilon,
    }


def approximate_count(
    data: Sequence[Any],
    predicate: Union[Callable[[Any], bool], Comparison, Mapping[str, Any]],
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Estimate how many elements satisfy ``predicate``.

    Samples ``ceil(sqrt n)`` elements (at most n) and scales the observed
    hit rate by n.
    """
    check = parse_predicate(predicate)
    n = len(data)
    if n == 0:
        return {"estimated_count": 0, "sample_size": 0, "sample_ratio": 0.0}

    rng = rng or random.Random()
    sample_size = min(n, math.ceil(math.sqrt(n)))
    hits = sum(1 for _ in range(sample_size) if check(rng.choice(data)))
    ratio = hits / sample_size

    return {
        "estimated_count": round(ratio * n),
        "sample_size": sample_size,
        "sample_ratio": ratio,
    }


def random_sample(
    data: Sequence[Any],
    sample_size: int,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Uniform sample without replacement of ``min(sample_size, n)`` elements."""
    if sample_size < 0:
        raise ValidationError(f"sample_size must not be negative, got {sample_size}")

    rng = rng or random.Random()
    samples = rng.sample(list(data), min(sample_size, len(data)))
    return {"samples": samples, "sample_size": len(samples)}


class CountMinSketch:
    """
    Approximate frequency table.

    ``depth`` rows of ``width`` counters, one hash seed per row. A point
    query returns the minimum counter over all rows, which never
    underestimates the true count.
    """

    def __init__(self, width: int = 1000, depth: int = 7):
        if width < 1 or depth < 1:
            raise ValidationError("CountMinSketch width and depth must be positive")

        self.width = width
        self.depth = depth
        self.seeds = [i * 31 for i in range(depth)]
        self.table: List[List[int]] = [[0] * width for _ in range(depth)]
        self.total = 0

    def _hash(self, item: Any, seed: int) -> int:
        # each row mixes its own seed into every step
        multiplier = 31 + 2 * seed
        h = seed
        for ch in str(item):
            h = (h * multiplier + ord(ch)) % self.width
        return abs(h) % self.width

    def add(self, item: Any, count: int = 1) -> None:
        for row, seed in enumerate(self.seeds):
            self.table[row][self._hash(item, seed)] += count
        self.total += count

    def update(self, items: Iterable[Any]) -> None:
        for item in items:
            self.add(item)

    def query(self, item: Any) -> int:
        return min(self.table[row][self._hash(item, seed)] for row, seed in enumerate(self.seeds))

    def to_dict(self, queries: Iterable[Any] = ()) -> Dict[str, Any]:
        return {
            "sketch": "count-min-sketch",
            "width": self.width,
            "depth": self.depth,
            "total": self.total,
            "frequencies": {str(item): self.query(item) for item in queries},
        }


def count_min_sketch(data: Iterable[Any], width: int = 1000, depth: int = 7) -> CountMinSketch:
    """Build a sketch over ``data``."""
    sketch = CountMinSketch(width=width, depth=depth)
    sketch.update(data)
    return sketch
