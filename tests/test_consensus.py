"""Tests for the consensus engine."""

import pytest

from swarmgraph.core.consensus import achieve_consensus, validate_threshold
from swarmgraph.exceptions import ValidationError


class TestAchieveConsensus:
    """Test cases for plurality consensus."""

    def test_unanimous(self):
        """Test three identical results."""
        result = achieve_consensus([{"answer": 42}] * 3, 0.7)

        assert result.achieved is True
        assert result.confidence == 1.0
        assert result.votes == 3
        assert result.total == 3
        assert result.result == {"answer": 42}

    def test_two_to_one_split_below_threshold(self):
        """Test that 2/3 agreement misses a 0.7 threshold."""
        result = achieve_consensus(["yes", "yes", "no"], 0.7)

        assert result.achieved is False
        assert result.votes == 2
        assert result.total == 3
        assert result.confidence == pytest.approx(2 / 3)
        assert result.result == "yes"

    def test_two_to_one_split_meets_lower_threshold(self):
        """Test that the same split passes a 0.6 threshold."""
        assert achieve_consensus(["yes", "yes", "no"], 0.6).achieved is True

    def test_threshold_is_inclusive(self):
        """Test that confidence equal to the threshold is enough."""
        assert achieve_consensus(["a", "a", "b", "b"], 0.5).achieved is True

    def test_key_order_does_not_matter(self):
        """Test that results are compared by canonical serialization."""
        result = achieve_consensus([{"a": 1, "b": 2}, {"b": 2, "a": 1}], 1.0)

        assert result.achieved is True
        assert result.votes == 2

    def test_tie_goes_to_first_seen(self):
        """Test that ties are broken by first occurrence."""
        result = achieve_consensus(["b", "a", "a", "b"], 0.9)

        assert result.result == "b"
        assert result.votes == 2

    def test_returns_original_value(self):
        """Test that the winning value is the first original result, not a copy."""
        first = {"value": [1, 2]}
        result = achieve_consensus([first, {"value": [1, 2]}], 0.5)

        assert result.result == first

    def test_empty_input(self):
        """Test consensus over no results."""
        result = achieve_consensus([], 0.5)

        assert result.achieved is False
        assert result.confidence == 0.0
        assert result.result is None
        assert result.total == 0

    @pytest.mark.parametrize("threshold", [0, -0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        """Test that thresholds outside (0, 1] are rejected."""
        with pytest.raises(ValidationError):
            achieve_consensus(["a"], threshold)

    def test_validate_threshold(self):
        """Test the threshold validator."""
        assert validate_threshold(1) == 1.0
        assert validate_threshold(0.7) == 0.7
