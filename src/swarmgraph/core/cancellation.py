"""Cooperative cancellation for graph runs and swarm dispatches."""

import asyncio
from typing import Optional

from ..exceptions import ExecutionCancelledError


class CancellationToken:
    """
    Flag checked by the scheduler and coordinator at every suspension point.

    Cancelling does not interrupt a handler that is already running; the run
    stops at the next check and raises :class:`ExecutionCancelledError`.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            location = f" at {where}" if where else ""
            raise ExecutionCancelledError(f"Execution cancelled{location}: {self.reason}")

    async def wait(self) -> None:
        await self._event.wait()


def check(token: Optional[CancellationToken], where: str = "") -> None:
    """Raise if ``token`` is set; a missing token never cancels."""
    if token is not None:
        token.raise_if_cancelled(where)
