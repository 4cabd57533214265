"""Boundary for the external game-protocol client."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Callable, Protocol

from steve_bot.models import Goal, InventoryItem, Position

ChatCallback = Callable[[str, str], None]
CollectCallback = Callable[[], None]
BlockPredicate = Callable[[str], bool]


class GameClient(Protocol):
    """What the bot needs from a connected game client.

    Coroutine methods may be cancelled; ``go_to_goal`` raises
    ``GoalUnreachableError`` when no path exists and ``ConnectionLostError``
    when the transport is gone.
    """

    @property
    def username(self) -> str:
        """Identity of the controlled agent."""

    def current_position(self) -> Position:
        """Live position of the agent."""

    async def go_to_goal(self, goal: Goal) -> None:
        """Walk toward ``goal`` until within its radius."""

    def stop_goal(self) -> None:
        """Abort any in-progress goal-seek and stop issuing movement."""

    def find_nearest_matching(self, predicate: BlockPredicate, max_distance: float) -> Position | None:
        """Return the nearest loaded block whose name satisfies ``predicate``."""

    async def look_at(self, position: Position) -> None:
        """Turn to face ``position``."""

    async def set_orientation(self, yaw: float, pitch: float) -> None:
        """Set absolute yaw and pitch in radians."""

    async def dig(self, position: Position) -> None:
        """Break the block at ``position``."""

    def inventory_items(self) -> Sequence[InventoryItem]:
        """Current inventory stacks."""

    async def toss_item(self, item_id: int | None, count: int) -> None:
        """Drop ``count`` items of type ``item_id``."""

    def on_chat_line(self, callback: ChatCallback) -> None:
        """Subscribe to chat lines, including the agent's own."""

    def on_item_collected(self, callback: CollectCallback) -> None:
        """Subscribe to the agent picking an item up."""

    def send_chat_line(self, text: str) -> None:
        """Say ``text`` in the shared chat channel."""

    def players(self) -> Mapping[str, Position | None]:
        """Known players by name; ``None`` when outside render range."""


class ManagedGameClient(GameClient, Protocol):
    """A ``GameClient`` whose connection lifecycle the agent drives."""

    async def connect(self) -> None:
        """Connect and wait until the agent has spawned."""

    async def wait_closed(self) -> None:
        """Return on a requested quit; raise ``ConnectionLostError`` otherwise."""

    def quit(self, reason: str = "bye") -> None:
        """Leave the server."""
