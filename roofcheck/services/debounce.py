"""Trailing-edge debouncer on top of the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Collapse bursts of ``trigger()`` calls into one call of ``action``.

    Every trigger cancels the pending timer and starts a new one, so ``action``
    runs once, ``window`` seconds after the last trigger of a burst.
    """

    def __init__(self, action: Callable[[], Awaitable[None]], window: float = 0.5):
        self._action = action
        self.window = window
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.window, self._fire)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Drop the pending call, if any. An action already running is left alone."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def shutdown(self) -> None:
        """Drop the pending call and cancel a running action, waiting for it to stop."""
        self.cancel()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._action()
        except Exception:
            logger.exception("Debounced action failed")
