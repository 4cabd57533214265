"""Goal-seeking navigation with timeouts, cancellation and an area-scan fallback."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass, field

from steve_bot.adapters.game_client import BlockPredicate, GameClient
from steve_bot.errors import ConnectionLostError, GoalUnreachableError
from steve_bot.models import Goal, NavigationOutcome, Position

SCAN_YAW_STEPS = 8
SCAN_PITCHES: tuple[float, ...] = (0.0, -math.pi / 4, math.pi / 4)


@dataclass(slots=True)
class NavigationAttempt:
    """One in-flight goal-seek: its goal, its deadline and a cancellation token."""

    goal: Goal
    deadline: float
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    def cancel(self) -> None:
        self.cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()


class Navigator:
    """Wraps the client's goal-seek so that callers never hang on it."""

    def __init__(
        self,
        client: GameClient,
        *,
        timeout_seconds: float = 10.0,
        goal_radius: float = 1.0,
        scan_settle_seconds: float = 0.1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._goal_radius = goal_radius
        self._scan_settle_seconds = scan_settle_seconds
        self._logger = logger or logging.getLogger("steve_bot.navigation")
        self._current: NavigationAttempt | None = None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def current_attempt(self) -> NavigationAttempt | None:
        return self._current

    def cancel_current(self) -> None:
        """Ask the in-flight attempt, if any, to stop."""
        if self._current is not None:
            self._current.cancel()

    async def walk_to(self, position: Position, *, radius: float | None = None) -> NavigationOutcome:
        return await self.navigate_to(Goal(position, self._goal_radius if radius is None else radius))

    async def navigate_to(
        self,
        goal: Goal,
        *,
        timeout_seconds: float | None = None,
        attempt: NavigationAttempt | None = None,
    ) -> NavigationOutcome:
        """Race one goal-seek against a deadline and the attempt's cancellation token.

        Whenever the goal-seek loses, ``stop_goal`` is issued before the outcome
        is returned. Pathing failures are reported as ``UNREACHABLE`` and never
        retried here; ``ConnectionLostError`` propagates.
        """
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        loop = asyncio.get_running_loop()
        if attempt is None:
            attempt = NavigationAttempt(goal=goal, deadline=loop.time() + timeout)
        self._current = attempt
        self._logger.debug("navigation_started", extra={"goal": str(goal.position), "timeout": timeout})

        if attempt.is_cancelled:
            self._release(attempt)
            return NavigationOutcome.CANCELLED

        seek = asyncio.ensure_future(self._client.go_to_goal(goal))
        cancel_wait = asyncio.ensure_future(attempt.cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {seek, cancel_wait},
                timeout=max(0.0, attempt.deadline - loop.time()),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._abort(seek)
            self._logger.debug("navigation_aborted", extra={"goal": str(goal.position)})
            raise
        finally:
            cancel_wait.cancel()
            self._release(attempt)

        if seek in done:
            return self._seek_outcome(seek, goal)

        await self._abort(seek)
        if attempt.is_cancelled:
            self._logger.info("navigation_cancelled", extra={"goal": str(goal.position)})
            return NavigationOutcome.CANCELLED
        self._logger.warning("navigation_timed_out", extra={"goal": str(goal.position), "timeout": timeout})
        return NavigationOutcome.TIMED_OUT

    async def find_nearest(self, predicate: BlockPredicate, max_distance: float) -> Position | None:
        """Direct nearest-match query, falling back to an orientation scan."""
        found = self._client.find_nearest_matching(predicate, max_distance)
        if found is not None:
            return found
        return await self.scan_for_match(predicate, max_distance)

    async def scan_for_match(self, predicate: BlockPredicate, max_distance: float) -> Position | None:
        """Sweep 8 yaw steps at level pitch, then at 45 degrees up and down.

        The client only reports blocks it has perceived, so after each turn we
        wait for the world view to refresh before querying again.
        """
        samples = 0
        for pitch in SCAN_PITCHES:
            for step in range(SCAN_YAW_STEPS):
                yaw = step * (2 * math.pi / SCAN_YAW_STEPS)
                await self._client.set_orientation(yaw, pitch)
                await asyncio.sleep(self._scan_settle_seconds)
                samples += 1

                found = self._client.find_nearest_matching(predicate, max_distance)
                if found is not None:
                    self._logger.debug("scan_match_found", extra={"samples": samples, "position": str(found)})
                    return found

        self._logger.info("scan_no_match", extra={"samples": samples, "max_distance": max_distance})
        return None

    def _seek_outcome(self, seek: asyncio.Future[None], goal: Goal) -> NavigationOutcome:
        error = seek.exception()
        if error is None:
            self._logger.debug("navigation_arrived", extra={"goal": str(goal.position)})
            return NavigationOutcome.ARRIVED
        if isinstance(error, ConnectionLostError):
            raise error
        if not isinstance(error, GoalUnreachableError):
            self._logger.warning(
                "navigation_failed",
                extra={"goal": str(goal.position), "error": f"{type(error).__name__}: {error}"},
            )
        else:
            self._logger.info("navigation_unreachable", extra={"goal": str(goal.position), "error": str(error)})
        return NavigationOutcome.UNREACHABLE

    async def _abort(self, seek: asyncio.Future[None]) -> None:
        self._client.stop_goal()
        seek.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await seek

    def _release(self, attempt: NavigationAttempt) -> None:
        if self._current is attempt:
            self._current = None
