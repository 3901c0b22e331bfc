"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from swarmgraph import __version__
from swarmgraph.cli import cli


@pytest.fixture
def runner(monkeypatch):
    # wide output keeps panel messages on one line
    monkeypatch.setattr("swarmgraph.cli.console", Console(width=200))
    return CliRunner()


def write_json(path, data):
    path.write_text(json.dumps(data))
    return str(path)


class TestCLI:
    """Test cases for the swarmgraph commands."""

    def test_version(self, runner):
        """Test the version flag."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_solve(self, runner, tmp_path):
        """Test solving a problem file."""
        problem = write_json(tmp_path / "problem.json", {
            "id": "csp-1",
            "type": "constraint",
            "variables": ["x", "y"],
            "domains": {"x": [1, 2], "y": [1, 2]},
            "constraints": [{"op": "ne", "left": "x", "right": "y"}],
        })

        result = runner.invoke(cli, ["solve", problem])

        assert result.exit_code == 0
        output = json.loads(result.output)
        assert output["problem_id"] == "csp-1"
        assert output["solution"]["assignment"] == {"x": 1, "y": 2}

    def test_solve_unknown_type(self, runner, tmp_path):
        """Test that solver errors exit with status 1."""
        problem = write_json(tmp_path / "problem.json", {"type": "quantum"})

        result = runner.invoke(cli, ["solve", problem])

        assert result.exit_code == 1
        assert "Unknown solver type" in result.output

    def test_run_graph_with_solver_nodes(self, runner, tmp_path):
        """Test a graph whose nodes solve problems."""
        spec = write_json(tmp_path / "graph.json", {
            "name": "Solve pipeline",
            "nodes": [
                {
                    "id": "search",
                    "handler": "solver",
                    "config": {"problem": {
                        "type": "sublinear", "algorithm": "binary-search",
                        "data": [1, 2, 3], "params": {"target": 2},
                    }},
                },
                {"id": "report"},
            ],
            "edges": [{"from": "search", "to": "report"}],
        })

        result = runner.invoke(cli, ["run-graph", spec, "--mode", "sequential"])

        assert result.exit_code == 0
        assert "Solve pipeline" in result.output
        assert "completed: 2 nodes" in result.output

    def test_run_graph_cycle(self, runner, tmp_path):
        """Test that a cyclic graph is reported as an error."""
        spec = write_json(tmp_path / "graph.json", {
            "nodes": [{"id": "a"}, {"id": "b"}],
            "edges": [{"from": "a", "to": "b"}, {"from": "b", "to": "a"}],
        })

        result = runner.invoke(cli, ["run-graph", spec])

        assert result.exit_code == 1
        assert "cycle" in result.output

    def test_run_swarm(self, runner, tmp_path):
        """Test dispatching a solver task to a mesh swarm."""
        spec = write_json(tmp_path / "swarm.json", {
            "id": "solvers",
            "topology": "mesh",
            "roles": [{"name": "one"}, {"name": "two"}, {"name": "three"}],
        })
        task = write_json(tmp_path / "task.json", {
            "type": "shortest-path",
            "graph": {"nodes": ["A", "B"], "edges": [{"from": "A", "to": "B", "weight": 3}]},
        })

        result = runner.invoke(cli, ["run-swarm", spec, "--task", task])

        assert result.exit_code == 0
        assert "3/3" in result.output

    def test_topology(self, runner, tmp_path):
        """Test printing derived connections."""
        spec = write_json(tmp_path / "swarm.json", {
            "id": "tree",
            "topology": "hierarchical",
            "roles": [{"name": "lead", "isCoordinator": True}, {"name": "w1"}, {"name": "w2"}],
        })

        result = runner.invoke(cli, ["topology", spec])

        assert result.exit_code == 0
        assert "coordinator" in result.output
        assert "hierarchical" in result.output

    def test_invalid_swarm_spec(self, runner, tmp_path):
        """Test that an empty roster is reported."""
        spec = write_json(tmp_path / "swarm.json", {"topology": "mesh", "roles": []})

        result = runner.invoke(cli, ["topology", spec])

        assert result.exit_code == 1
        assert "at least one role" in result.output

    def test_config_option(self, runner, tmp_path):
        """Test that the configuration file supplies defaults."""
        config = write_json(tmp_path / "config.json", {"default_topology": "star"})
        spec = write_json(tmp_path / "swarm.json", {"id": "s", "roles": [{"name": "a"}, {"name": "b"}]})

        result = runner.invoke(cli, ["--config", config, "topology", spec])

        assert result.exit_code == 0
        assert "star" in result.output

    def test_missing_config(self, runner, tmp_path):
        """Test a configuration path that does not exist."""
        spec = write_json(tmp_path / "swarm.json", {"roles": [{"name": "a"}]})

        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.json"), "topology", spec])

        assert result.exit_code == 1
        assert "Configuration not found" in result.output
