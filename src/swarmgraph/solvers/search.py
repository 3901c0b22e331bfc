"""Sublinear search over sorted sequences."""

import math
from typing import Any, Dict, Sequence


def _result(found: bool, index: int, comparisons: int) -> Dict[str, Any]:
    return {"found": found, "index": index, "comparisons": comparisons}


def binary_search(sorted_values: Sequence[Any], target: Any) -> Dict[str, Any]:
    """
    Classic binary search, O(log n).

    Returns:
        ``{found, index, comparisons}``; ``index`` is -1 when absent
    """
    left = 0
    right = len(sorted_values) - 1
    comparisons = 0

    while left <= right:
        comparisons += 1
        mid = (left + right) // 2

        if sorted_values[mid] == target:
            return _result(True, mid, comparisons)

        if sorted_values[mid] < target:
            left = mid + 1
        else:
            right = mid - 1

    return _result(False, -1, comparisons)


def jump_search(sorted_values: Sequence[Any], target: Any) -> Dict[str, Any]:
    """
    Jump search, O(sqrt n).

    Jumps ahead in blocks of ``floor(sqrt n)`` until a block whose last
    element is not below the target, then scans that block linearly.
    """
    n = len(sorted_values)
    comparisons = 0
    if n == 0:
        return _result(False, -1, comparisons)

    step = max(1, math.isqrt(n))
    prev = 0
    block_end = min(step, n)

    while True:
        comparisons += 1
        if not sorted_values[block_end - 1] < target:
            break
        prev = block_end
        if prev >= n:
            return _result(False, -1, comparisons)
        block_end = min(block_end + step, n)

    for i in range(prev, block_end):
        comparisons += 1
        if sorted_values[i] == target:
            return _result(True, i, comparisons)
        if sorted_values[i] > target:
            break

    return _result(False, -1, comparisons)


def interpolation_search(sorted_values: Sequence[Any], target: Any) -> Dict[str, Any]:
    """
    Interpolation search, O(log log n) on uniformly distributed numbers.

    Probes the position estimated by linear interpolation between the
    values at the current bounds. When the bounds hold equal values the
    estimate is undefined, so the range is checked directly.
    """
    low = 0
    high = len(sorted_values) - 1
    comparisons = 0

    while low <= high and sorted_values[low] <= target <= sorted_values[high]:
        comparisons += 1

        if sorted_values[high] == sorted_values[low]:
            if sorted_values[low] == target:
                return _result(True, low, comparisons)
            break

        span = sorted_values[high] - sorted_values[low]
        pos = low + int((high - low) * (target - sorted_values[low]) / span)

        if sorted_values[pos] == target:
            return _result(True, pos, comparisons)

        if sorted_values[pos] < target:
            low = pos + 1
        else:
            high = pos - 1

    return _result(False, -1, comparisons)
