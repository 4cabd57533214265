"""Best-effort following of a moving player."""

from __future__ import annotations

import asyncio
import logging

from steve_bot.adapters.game_client import GameClient
from steve_bot.models import Goal, NavigationOutcome
from steve_bot.navigation import NavigationAttempt, Navigator


class FollowHandle:
    """Cancellable handle for one running follow loop."""

    def __init__(self, target: str) -> None:
        self.target = target
        self._task: asyncio.Task[None] | None = None
        self._attempt: NavigationAttempt | None = None
        self._cancelled = False
        self.ticks = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Stop ticking and tell any in-flight navigation attempt to stop."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._attempt is not None:
            self._attempt.cancel()
        if self._task is not None:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the loop has fully unwound after ``cancel``."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class FollowController:
    """Re-issues navigation toward a player's live position every interval.

    Per-attempt failures are swallowed; the loop only ends on ``cancel``.
    """

    def __init__(
        self,
        client: GameClient,
        navigator: Navigator,
        *,
        interval_seconds: float = 0.5,
        radius: float = 2.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._navigator = navigator
        self._interval_seconds = interval_seconds
        self._radius = radius
        self._logger = logger or logging.getLogger("steve_bot.follow")

    def start_following(self, target: str) -> FollowHandle:
        handle = FollowHandle(target)
        handle._task = asyncio.create_task(self._follow_loop(handle), name=f"follow-{target}")
        self._logger.info("follow_started", extra={"target": target})
        return handle

    async def _follow_loop(self, handle: FollowHandle) -> None:
        loop = asyncio.get_running_loop()
        try:
            while not handle.cancelled:
                handle.ticks += 1
                position = self._client.players().get(handle.target)
                if position is not None:
                    goal = Goal(position, self._radius)
                    handle._attempt = NavigationAttempt(
                        goal=goal,
                        deadline=loop.time() + self._navigator.timeout_seconds,
                    )
                    outcome = await self._navigator.navigate_to(goal, attempt=handle._attempt)
                    handle._attempt = None
                    if outcome is not NavigationOutcome.ARRIVED:
                        self._logger.debug(
                            "follow_attempt_failed",
                            extra={"target": handle.target, "tick": handle.ticks, "outcome": outcome.value},
                        )
                else:
                    self._logger.debug("follow_target_not_visible", extra={"target": handle.target, "tick": handle.ticks})

                if handle.cancelled:
                    break
                await asyncio.sleep(self._interval_seconds)
        finally:
            handle._attempt = None
            self._logger.info("follow_stopped", extra={"target": handle.target, "ticks": handle.ticks})
