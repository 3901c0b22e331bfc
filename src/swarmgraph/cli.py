"""
swarmgraph CLI

Command-line interface for running dependency graphs, dispatching swarm
tasks and solving single problems from JSON files.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config import CoordinatorConfig, load_config
from .core.coordinator import SwarmCoordinator
from .core.dag import DAGScheduler
from .core.executor import SolverTaskExecutor
from .exceptions import ValidationError
from .evaluation.report import RunReport
from .solvers.toolbox import SolverToolbox
from .utils.helpers import set_log_level

console = Console()


def print_version(ctx, param, value):
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console.print(f"swarmgraph v{__version__}")
    ctx.exit()


def _error(message: str) -> None:
    console.print(Panel(f"❌ {message}", title="Error", border_style="red"))
    sys.exit(1)


def _load_json(path: Path) -> Any:
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error parsing {path}: {e}")


def _solver_handler(toolbox: SolverToolbox):
    """Node handler that solves ``config["problem"]``."""

    def handler(inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        problem = config.get("problem")
        if problem is None:
            raise ValidationError("solver nodes need a 'problem' in their config")
        return toolbox.solve(problem).solution

    return handler


@click.group()
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=print_version,
    help="Show version and exit.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    help="JSON configuration file.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """
    swarmgraph - Schedule dependency graphs and coordinate agent swarms.

    Specifications, tasks and problems are read from JSON files.
    """
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path) if config_path else CoordinatorConfig()
    except (FileNotFoundError, ValueError) as e:
        _error(f"Failed to load configuration: {e}")

    set_log_level("DEBUG" if verbose else config.log_level)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config


@cli.command("run-graph")
@click.argument("spec_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--mode",
    type=click.Choice(["parallel", "sequential"]),
    default=None,
    help="Execution mode (defaults to the configured mode).",
)
@click.pass_context
def run_graph(ctx: click.Context, spec_file: Path, mode: Optional[str]) -> None:
    """Execute a dependency graph specification."""
    config: CoordinatorConfig = ctx.obj["config"]
    report = RunReport(console)

    toolbox = SolverToolbox(max_solutions=config.max_solutions)
    scheduler = DAGScheduler(
        handlers={"solver": _solver_handler(toolbox)},
        max_graphs=config.max_graphs,
        default_mode=config.default_execution_mode,
    )

    graph = None
    try:
        graph = scheduler.create_graph(_load_json(spec_file))
        asyncio.run(scheduler.execute_graph(graph, mode=mode))
    except Exception as e:
        if graph is not None:
            report.show_graph(graph)
        _error(f"Graph run failed: {e}")

    report.show_graph(graph)
    console.print(Panel(
        f"✅ Graph '{graph.name}' completed: {len(graph.results)} nodes",
        title="Success",
        border_style="green"
    ))


@cli.command("run-swarm")
@click.argument("spec_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--task",
    "-t",
    "task_file",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="JSON task payload to dispatch.",
)
@click.pass_context
def run_swarm(ctx: click.Context, spec_file: Path, task_file: Path) -> None:
    """Create a swarm and dispatch one task to it."""
    config: CoordinatorConfig = ctx.obj["config"]
    report = RunReport(console)

    try:
        toolbox = SolverToolbox(max_solutions=config.max_solutions)
        coordinator = SwarmCoordinator(executor=SolverTaskExecutor(toolbox), config=config)
        swarm = coordinator.create_swarm(_load_json(spec_file))
        outcome = asyncio.run(coordinator.execute_task(swarm.id, _load_json(task_file)))
    except Exception as e:
        _error(f"Swarm task failed: {e}")

    report.show_swarm(swarm)
    report.show_outcome(outcome)
    if ctx.obj.get("verbose"):
        console.print(report.metrics_table("Coordinator", coordinator.get_metrics()))


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def topology(ctx: click.Context, spec_file: Path) -> None:
    """Show the connections derived for a swarm specification."""
    config: CoordinatorConfig = ctx.obj["config"]

    try:
        coordinator = SwarmCoordinator(config=config)
        swarm = coordinator.create_swarm(_load_json(spec_file))
    except Exception as e:
        _error(f"Invalid swarm specification: {e}")

    RunReport(console).show_swarm(swarm)


@cli.command()
@click.argument("problem_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed for the randomized estimators.",
)
@click.pass_context
def solve(ctx: click.Context, problem_file: Path, seed: Optional[int]) -> None:
    """Solve one problem and print the solution as JSON."""
    config: CoordinatorConfig = ctx.obj["config"]

    try:
        toolbox = SolverToolbox(max_solutions=config.max_solutions, seed=seed)
        solution = toolbox.solve(_load_json(problem_file))
    except Exception as e:
        _error(f"Failed to solve problem: {e}")

    click.echo(json.dumps(solution.model_dump(mode="json"), indent=2, default=str))


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
        sys.exit(0)


if __name__ == "__main__":
    main()
