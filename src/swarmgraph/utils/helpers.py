"""Helper utilities for swarmgraph."""

import json
import logging
import uuid
from typing import Any, Union


def setup_logging(name: str, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Set up logging for a module.

    Args:
        name: Logger name (usually __name__)
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)

    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Apply a level to every swarmgraph logger created so far."""
    logging.getLogger("swarmgraph").setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("swarmgraph") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def generate_id(prefix: str = "", length: int = 8) -> str:
    """
    Generate a unique ID.

    Args:
        prefix: Optional prefix for the ID
        length: Length of the random part

    Returns:
        Unique ID string
    """
    random_part = str(uuid.uuid4()).replace('-', '')[:length]
    return f"{prefix}{random_part}" if prefix else random_part


def canonical_json(value: Any) -> str:
    """
    Serialize a value to a canonical, comparable JSON string.

    Mapping keys are sorted and separators are compact, so two structurally
    equal results always produce the same string. Pydantic models are dumped
    first; anything else json cannot handle falls back to ``str``.
    """
    return json.dumps(_plain(value), sort_keys=True, separators=(',', ':'), default=str)


def _plain(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=repr)
    return value


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds to a human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 1:
        return f"{seconds * 1000:.1f} ms"
    if seconds < 60:
        return f"{seconds:.2f} s"

    minutes = int(seconds // 60)
    remaining = seconds - minutes * 60
    return f"{minutes} min {remaining:.0f} s"
