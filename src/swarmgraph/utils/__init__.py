"""Utility modules for swarmgraph."""

from .helpers import setup_logging, generate_id, canonical_json
from .registry import BoundedRegistry

__all__ = [
    "setup_logging",
    "generate_id",
    "canonical_json",
    "BoundedRegistry",
]
