"""
Configuration for swarmgraph.

Defaults for swarm creation, failure policy and registry capacities, stored
as JSON on disk.
"""

import json
from pathlib import Path
from typing import Union

from pydantic import BaseModel, Field

from .core.models import ExecutionMode, Topology
from .utils.helpers import setup_logging

logger = setup_logging(__name__)


class CoordinatorConfig(BaseModel):
    """Runtime configuration shared by the scheduler and the swarm coordinator."""

    default_topology: Topology = Topology.MESH
    consensus_threshold: float = Field(default=0.7, gt=0, le=1)
    max_agents: int = Field(default=100, ge=1)
    tolerate_agent_failures: bool = Field(
        default=False,
        description="Exclude failed agents from a dispatch instead of aborting it",
    )
    default_execution_mode: ExecutionMode = ExecutionMode.PARALLEL
    max_graphs: int = Field(default=256, ge=1)
    max_swarms: int = Field(default=64, ge=1)
    max_solutions: int = Field(default=1024, ge=1)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


def load_config(path: Union[str, Path]) -> CoordinatorConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Validated CoordinatorConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON
    """
    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration not found: {config_file}")

    try:
        with open(config_file, 'r') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error parsing configuration {config_file}: {e}")

    logger.debug(f"Loaded configuration from {config_file}")
    return CoordinatorConfig(**config_data)


def save_config(config: CoordinatorConfig, path: Union[str, Path]) -> None:
    """Write configuration to a JSON file, creating parent directories."""
    config_file = Path(path)
    config_file.parent.mkdir(parents=True, exist_ok=True)

    with open(config_file, 'w') as f:
        json.dump(config.model_dump(mode="json"), f, indent=2, default=str)

    logger.info(f"Configuration saved to: {config_file}")
