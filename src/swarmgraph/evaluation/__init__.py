"""Rich reports for graph runs and swarm dispatches."""

from .report import RunReport

__all__ = ["RunReport"]
