"""Consensus Engine: plurality vote over agent results."""

from typing import Any, Dict, Sequence

from ..exceptions import ValidationError
from ..utils.helpers import canonical_json, setup_logging
from .models import ConsensusResult

logger = setup_logging(__name__)


def validate_threshold(threshold: float) -> float:
    if not 0 < threshold <= 1:
        raise ValidationError(f"Consensus threshold must be in (0, 1], got {threshold}")
    return float(threshold)


def achieve_consensus(results: Sequence[Any], threshold: float) -> ConsensusResult:
    """
    Reconcile agent results by plurality vote.

    Each result is serialized to canonical JSON and identical serializations
    are counted together. The winning value is the first-encountered result
    with the highest count. ``achieved`` is true when the winning share of
    the vote reaches ``threshold``.

    Args:
        results: One result per responding agent
        threshold: Required share of agreeing votes, in (0, 1]

    Returns:
        ConsensusResult; failing to agree is a normal result, not an error
    """
    validate_threshold(threshold)

    total = len(results)
    if total == 0:
        return ConsensusResult(achieved=False, confidence=0.0, result=None, votes=0, total=0)

    counts: Dict[str, int] = {}
    first_seen: Dict[str, Any] = {}
    for result in results:
        key = canonical_json(result)
        if key not in counts:
            counts[key] = 0
            first_seen[key] = result
        counts[key] += 1

    max_count = 0
    consensus_key = None
    # dicts iterate in first-insertion order, so ties go to the earliest value
    for key, count in counts.items():
        if count > max_count:
            max_count = count
            consensus_key = key

    confidence = max_count / total
    consensus = ConsensusResult(
        achieved=confidence >= threshold,
        confidence=confidence,
        result=first_seen[consensus_key],
        votes=max_count,
        total=total,
    )

    logger.debug(
        f"Consensus {'reached' if consensus.achieved else 'not reached'}: "
        f"{max_count}/{total} votes ({len(counts)} distinct values)"
    )
    return consensus
