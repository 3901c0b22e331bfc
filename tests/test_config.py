"""Tests for configuration and utilities."""

import json
import logging
import tempfile
from pathlib import Path

import pytest

from swarmgraph.config import CoordinatorConfig, load_config, save_config
from swarmgraph.core.models import ExecutionMode, Topology
from swarmgraph.utils.helpers import canonical_json, format_duration, generate_id, set_log_level, setup_logging
from swarmgraph.utils.registry import BoundedRegistry


class TestCoordinatorConfig:
    """Test cases for CoordinatorConfig."""

    def test_defaults(self):
        """Test the documented defaults."""
        config = CoordinatorConfig()

        assert config.default_topology == Topology.MESH
        assert config.consensus_threshold == 0.7
        assert config.max_agents == 100
        assert config.tolerate_agent_failures is False
        assert config.default_execution_mode == ExecutionMode.PARALLEL
        assert config.max_graphs == 256
        assert config.max_swarms == 64
        assert config.max_solutions == 1024
        assert config.log_level == "INFO"

    @pytest.mark.parametrize("field,value", [
        ("consensus_threshold", 0),
        ("consensus_threshold", 1.2),
        ("max_agents", 0),
        ("log_level", "LOUD"),
        ("default_topology", "torus"),
    ])
    def test_invalid_values(self, field, value):
        """Test field validation."""
        with pytest.raises(ValueError):
            CoordinatorConfig(**{field: value})

    def test_save_and_load(self):
        """Test writing and reading a configuration file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "swarmgraph.json"
            save_config(CoordinatorConfig(default_topology="star", tolerate_agent_failures=True), path)

            with open(path) as f:
                assert json.load(f)["default_topology"] == "star"

            config = load_config(path)

        assert config.default_topology == Topology.STAR
        assert config.tolerate_agent_failures is True

    def test_missing_file(self):
        """Test loading a configuration that does not exist."""
        with pytest.raises(FileNotFoundError, match="Configuration not found"):
            load_config("/nonexistent/swarmgraph.json")

    def test_invalid_json(self, tmp_path):
        """Test loading a file that is not JSON."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Error parsing"):
            load_config(path)


class TestBoundedRegistry:
    """Test cases for BoundedRegistry."""

    def test_lru_eviction(self):
        """Test that reads refresh recency and the oldest entry is evicted."""
        evicted = []
        registry = BoundedRegistry("test", 2, on_evict=lambda key, value: evicted.append(key))
        registry.register("a", 1)
        registry.register("b", 2)
        registry.get("a")
        registry.register("c", 3)

        assert list(registry) == ["a", "c"]
        assert evicted == ["b"]
        assert registry.evictions == 1

    def test_remove_and_clear(self):
        """Test explicit lifetime management."""
        registry = BoundedRegistry("test", 3)
        registry.register("a", 1)
        registry.register("b", 2)

        assert registry.remove("a") == 1
        assert registry.remove("a") is None
        assert registry.as_dict() == {"b": 2}

        registry.clear()
        assert len(registry) == 0

    def test_invalid_capacity(self):
        """Test that capacity must be positive."""
        with pytest.raises(ValueError):
            BoundedRegistry("test", 0)


class TestHelpers:
    """Test cases for helper utilities."""

    def test_generate_id(self):
        """Test ID generation."""
        id1 = generate_id()
        id2 = generate_id()
        assert id1 != id2
        assert len(id1) == 8

        prefixed = generate_id("swarm-", 4)
        assert prefixed.startswith("swarm-")
        assert len(prefixed) == 10

    def test_canonical_json(self):
        """Test key ordering, sets and models."""
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
        assert canonical_json({3, 1, 2}) == "[1,2,3]"
        assert canonical_json(CoordinatorConfig()) == canonical_json(CoordinatorConfig().model_dump())

    def test_format_duration(self):
        """Test duration formatting."""
        assert format_duration(0.25) == "250.0 ms"
        assert format_duration(2.5) == "2.50 s"
        assert format_duration(125) == "2 min 5 s"

    def test_set_log_level(self):
        """Test that levels apply to every swarmgraph logger."""
        logger = setup_logging("swarmgraph.test_helpers")
        try:
            set_log_level("DEBUG")
            assert logger.level == logging.DEBUG
        finally:
            set_log_level("INFO")
