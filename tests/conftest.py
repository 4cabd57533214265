from __future__ import annotations

import asyncio
import io
from typing import Awaitable, Callable

import pytest
from rich.console import Console

from steve_bot.config import Settings
from steve_bot.errors import ConnectionLostError
from steve_bot.models import Goal, InventoryItem, Position


class FakeGameClient:
    """In-memory stand-in for a connected game client."""

    def __init__(self, username: str = "Steve") -> None:
        self._username = username
        self.position = Position(0.0, 64.0, 0.0)
        self.items: list[InventoryItem] = []
        self.player_positions: dict[str, Position | None] = {}
        self.goal_behaviour: Callable[[Goal], Awaitable[None]] | None = None
        self.block_finder: Callable[[Callable[[str], bool], float], Position | None] = lambda predicate, distance: None

        self.events: list[tuple] = []
        self.goals: list[Goal] = []
        self.stop_calls = 0
        self.orientations: list[tuple[float, float]] = []
        self.looked_at: list[Position] = []
        self.dug: list[Position] = []
        self.tossed: list[tuple[int | None, int]] = []
        self.sent: list[str] = []

        self.connect_error: BaseException | None = None
        self._chat_callbacks: list[Callable[[str, str], None]] = []
        self._collect_callbacks: list[Callable[[], None]] = []
        self._closed: asyncio.Future[None] | None = None

    @property
    def username(self) -> str:
        return self._username

    def current_position(self) -> Position:
        return self.position

    async def go_to_goal(self, goal: Goal) -> None:
        self.goals.append(goal)
        self.events.append(("goto", goal))
        if self.goal_behaviour is not None:
            await self.goal_behaviour(goal)
            return
        self.position = goal.position

    def stop_goal(self) -> None:
        self.stop_calls += 1
        self.events.append(("stop",))

    def find_nearest_matching(self, predicate, max_distance: float) -> Position | None:
        return self.block_finder(predicate, max_distance)

    async def look_at(self, position: Position) -> None:
        self.looked_at.append(position)

    async def set_orientation(self, yaw: float, pitch: float) -> None:
        self.orientations.append((yaw, pitch))

    async def dig(self, position: Position) -> None:
        self.dug.append(position)

    def inventory_items(self) -> list[InventoryItem]:
        return list(self.items)

    async def toss_item(self, item_id: int | None, count: int) -> None:
        self.tossed.append((item_id, count))

    def on_chat_line(self, callback: Callable[[str, str], None]) -> None:
        self._chat_callbacks.append(callback)

    def on_item_collected(self, callback: Callable[[], None]) -> None:
        self._collect_callbacks.append(callback)

    def send_chat_line(self, text: str) -> None:
        self.sent.append(text)
        # A real server echoes our own lines back to us.
        self.chat(self._username, text)

    def players(self) -> dict[str, Position | None]:
        return dict(self.player_positions)

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self._closed = asyncio.get_running_loop().create_future()

    async def wait_closed(self) -> None:
        assert self._closed is not None
        await self._closed

    def quit(self, reason: str = "bye") -> None:
        if self._closed is not None and not self._closed.done():
            self._closed.set_result(None)

    def chat(self, sender: str, text: str) -> None:
        for callback in list(self._chat_callbacks):
            callback(sender, text)

    def collect(self) -> None:
        for callback in list(self._collect_callbacks):
            callback()

    def lose_connection(self, reason: str) -> None:
        assert self._closed is not None
        self._closed.set_exception(ConnectionLostError(reason))


@pytest.fixture
def client() -> FakeGameClient:
    return FakeGameClient()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        navigation_timeout_seconds=1.0,
        scan_settle_seconds=0,
        follow_interval_seconds=0,
        menu_return_delay_seconds=0.05,
    )
