"""Derive user-visible status text and fan it out on every phase transition."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from ..models.pipeline import PipelineState, PipelineStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[PipelineState], None]

_STATUS_TEXT = {
    PipelineStatus.IDLE: "",
    PipelineStatus.UPLOADING: "Uploading image...",
    PipelineStatus.RESOLVED: "Image uploaded! Sending to backend...",
    PipelineStatus.NOTIFYING: "Image uploaded! Sending to backend...",
    PipelineStatus.SUCCEEDED: "Success! AI is generating your avatar.",
}


def status_text(state: PipelineState) -> str:
    """Return the status line shown to the user for ``state``."""

    if state.status is PipelineStatus.FAILED:
        return f"Error occurred: {state.reason}" if state.reason else "Error occurred."
    return _STATUS_TEXT[state.status]


class StatusReporter:
    """Keeps the latest pipeline state and notifies subscribers of each change."""

    def __init__(self) -> None:
        self._state = PipelineState()
        self._listeners: list[StatusListener] = []
        self._queues: set[asyncio.Queue[PipelineState]] = set()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def text(self) -> str:
        return status_text(self._state)

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    @asynccontextmanager
    async def listen(self) -> AsyncIterator[asyncio.Queue[PipelineState]]:
        """Yield a queue receiving every state published while the block is active."""

        queue: asyncio.Queue[PipelineState] = asyncio.Queue()
        self._queues.add(queue)
        try:
            yield queue
        finally:
            self._queues.discard(queue)

    def publish(self, state: PipelineState) -> None:
        self._state = state
        logger.debug("Status -> %s (%s)", state.status.value, status_text(state))
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # pragma: no cover - logging for observability
                logger.exception("Status listener failed")
        for queue in list(self._queues):
            queue.put_nowait(state)
