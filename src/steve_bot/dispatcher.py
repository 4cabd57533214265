"""Routes chat lines to the single active task handler."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from steve_bot.adapters.game_client import GameClient
from steve_bot.models import DispatcherState, HandlerFault

TaskHandler = Callable[[str, str], None]


class TaskDispatcher:
    """Owns the agent's one "active task" slot.

    The dispatcher subscribes to the client's chat exactly once. Lines sent by
    the agent itself are dropped before they can reach a handler. ``install``
    replaces the previous handler outright and ``clear`` empties the slot; no
    other code writes to it.
    """

    def __init__(self, client: GameClient, *, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._logger = logger or logging.getLogger("steve_bot.dispatcher")
        self._handler: TaskHandler | None = None
        self._deferred: set[asyncio.TimerHandle] = set()
        self.last_fault: HandlerFault | None = None
        client.on_chat_line(self.dispatch)

    @property
    def state(self) -> DispatcherState:
        return DispatcherState.IDLE if self._handler is None else DispatcherState.ACTIVE

    @property
    def active_handler(self) -> TaskHandler | None:
        return self._handler

    def install(self, handler: TaskHandler) -> None:
        previous = self._handler
        self._handler = handler
        self._logger.debug(
            "task_handler_installed",
            extra={"handler": _describe(handler), "replaced": _describe(previous) if previous else None},
        )

    def clear(self) -> None:
        if self._handler is not None:
            self._logger.debug("task_handler_cleared", extra={"handler": _describe(self._handler)})
        self._handler = None

    def dispatch(self, sender: str, text: str) -> None:
        """Forward one chat line to the active handler, synchronously."""
        if sender == self._client.username:
            return
        handler = self._handler
        if handler is None:
            return

        try:
            handler(sender, text)
        except Exception as exc:  # noqa: BLE001 - a faulty handler must not break chat receipt.
            self.last_fault = HandlerFault(sender=sender, text=text, error=f"{type(exc).__name__}: {exc}")
            self._logger.exception(
                "task_handler_failed",
                extra={"handler": _describe(handler), "sender": sender, "text": text},
            )

    def defer(self, delay_seconds: float, action: Callable[[], None]) -> asyncio.TimerHandle:
        """Run ``action`` on the loop after ``delay_seconds``."""
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _run() -> None:
            self._deferred.discard(handle)
            action()

        handle = loop.call_later(delay_seconds, _run)
        self._deferred.add(handle)
        return handle

    def close(self) -> None:
        """Cancel pending deferred actions and empty the slot."""
        for handle in list(self._deferred):
            handle.cancel()
        self._deferred.clear()
        self.clear()


def _describe(handler: TaskHandler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__
