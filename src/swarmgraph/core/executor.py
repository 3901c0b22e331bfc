"""
Task executors: the seam through which agents do their work.

The swarm coordinator never performs work itself; it hands each agent's
task payload to an injected :class:`TaskExecutor`. A language-model gateway
or any other tool plugs in by implementing ``execute``.
"""

import inspect
from typing import Any, Callable, List, Mapping, Optional, Protocol, runtime_checkable

from ..exceptions import ValidationError
from ..solvers.toolbox import SolverToolbox
from ..utils.helpers import setup_logging
from .models import Agent

logger = setup_logging(__name__)

CONTROL_TASKS = ("aggregate", "decompose", "synthesize")


@runtime_checkable
class TaskExecutor(Protocol):
    """Runs one task payload on behalf of one agent."""

    async def execute(self, agent: Agent, task: Any) -> Any:
        """Return a JSON-serializable result or raise."""
        ...


def control_type(task: Any) -> Optional[str]:
    """The control-task kind of ``task`` (aggregate/decompose/synthesize), if any."""
    if isinstance(task, Mapping) and task.get("type") in CONTROL_TASKS:
        return task["type"]
    return None


class EchoTaskExecutor:
    """Structural echo: reports which agent processed which task."""

    async def execute(self, agent: Agent, task: Any) -> Any:
        return {"processed": True, "task": task, "agent_id": agent.id}


class CallableTaskExecutor:
    """Adapts a plain or async function ``fn(agent, task)`` to :class:`TaskExecutor`."""

    def __init__(self, fn: Callable[[Agent, Any], Any]):
        self.fn = fn

    async def execute(self, agent: Agent, task: Any) -> Any:
        result = self.fn(agent, task)
        if inspect.isawaitable(result):
            result = await result
        return result


class SolverTaskExecutor:
    """
    Executes solver problems with a :class:`SolverToolbox`.

    Problem payloads return the solver output, so identical agents agree
    and mesh consensus is unanimous. Control tasks are handled
    deterministically:

    * ``aggregate``: ``{"results": [...], "count": n}``
    * ``decompose``: ``{"subtasks": task["task"]["subtasks"]}`` when the
      original task lists subtasks, otherwise ``[task["task"]]``
    * ``synthesize``: ``{"results": [...], "count": n}``
    """

    def __init__(self, toolbox: Optional[SolverToolbox] = None):
        self.toolbox = toolbox or SolverToolbox()

    async def execute(self, agent: Agent, task: Any) -> Any:
        kind = control_type(task)

        if kind in ("aggregate", "synthesize"):
            results: List[Any] = list(task.get("results") or [])
            return {"results": results, "count": len(results)}

        if kind == "decompose":
            original = task.get("task")
            if isinstance(original, Mapping) and isinstance(original.get("subtasks"), list):
                return {"subtasks": list(original["subtasks"])}
            return {"subtasks": [original]}

        if not self.toolbox.can_solve(task):
            raise ValidationError(f"Agent {agent.id} cannot solve task {task!r}")

        logger.debug(f"Agent {agent.id} ({agent.role}) solving {task.get('type')} problem")
        return self.toolbox.solve(task).solution
