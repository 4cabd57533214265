"""Live game client backed by mineflayer.

mineflayer and mineflayer-pathfinder are Node.js libraries; they are reached
through the ``javascript`` bridge (JSPyBridge). Bridge event callbacks run on
the bridge's own thread, so every event is marshalled back onto the asyncio
loop with ``call_soon_threadsafe`` which keeps chat lines in receipt order.
Blocking promise calls run in worker threads via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Mapping
from types import ModuleType
from typing import Any

from steve_bot.adapters.game_client import BlockPredicate, ChatCallback, CollectCallback
from steve_bot.errors import (
    ConnectionLostError,
    GameClientError,
    GameClientUnavailableError,
    GoalUnreachableError,
)
from steve_bot.models import Goal, InventoryItem, Position


class MineflayerGameClient:
    """``GameClient`` implementation for a single mineflayer bot."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str | None = None,
        version: str | None = None,
        bridge: ModuleType | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._bridge = bridge or self._resolve_bridge()
        self._logger = logger or logging.getLogger("steve_bot.adapters.mineflayer")
        self._options: dict[str, Any] = {"host": host, "port": port, "username": username}
        if password:
            self._options["password"] = password
        if version:
            self._options["version"] = version
        self._username = username

        self._bot: Any = None
        self._pathfinder: Any = None
        self._vec3: Any = None
        self._block_names: dict[int, str] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._spawned: asyncio.Event | None = None
        self._closed: asyncio.Future[None] | None = None
        self._quitting = False
        self._chat_callbacks: list[ChatCallback] = []
        self._collect_callbacks: list[CollectCallback] = []

    @property
    def username(self) -> str:
        if self._bot is not None and self._bot.username:
            return str(self._bot.username)
        return self._username

    @property
    def closed(self) -> bool:
        return self._closed is not None and self._closed.done()

    async def connect(self) -> None:
        """Create the bot, load the pathfinder plugin and wait for the first spawn."""
        self._loop = asyncio.get_running_loop()
        self._spawned = asyncio.Event()
        self._closed = self._loop.create_future()

        mineflayer = self._bridge.require("mineflayer")
        self._pathfinder = self._bridge.require("mineflayer-pathfinder")
        self._vec3 = self._bridge.require("vec3")

        self._logger.info("client_connecting", extra={"host": self._options["host"], "port": self._options["port"]})
        self._bot = mineflayer.createBot(self._options)
        self._bot.loadPlugin(self._pathfinder.pathfinder)
        self._register_events()

        spawn_wait = asyncio.ensure_future(self._spawned.wait())
        done, _ = await asyncio.wait({spawn_wait, self._closed}, return_when=asyncio.FIRST_COMPLETED)
        if spawn_wait not in done:
            spawn_wait.cancel()
            self._closed.result()
            raise ConnectionLostError("Connection closed before spawn")

    async def wait_closed(self) -> None:
        """Block until the connection ends; raises ``ConnectionLostError`` unless we quit."""
        if self._closed is None:
            raise GameClientError("Client is not connected")
        await self._closed

    def quit(self, reason: str = "bye") -> None:
        self._quitting = True
        if self._bot is not None:
            self._bot.quit(reason)

    def current_position(self) -> Position:
        return self._to_position(self._require_bot().entity.position)

    async def go_to_goal(self, goal: Goal) -> None:
        bot = self._require_bot()
        target = goal.position
        js_goal = self._pathfinder.goals.GoalNear(target.x, target.y, target.z, goal.radius)
        try:
            await asyncio.to_thread(bot.pathfinder.goto, js_goal)
        except Exception as exc:  # noqa: BLE001 - bridge raises JavaScriptError for any rejection.
            if self.closed:
                raise ConnectionLostError(str(exc)) from exc
            raise GoalUnreachableError(str(exc)) from exc

    def stop_goal(self) -> None:
        if self._bot is not None:
            self._bot.pathfinder.stop()

    def find_nearest_matching(self, predicate: BlockPredicate, max_distance: float) -> Position | None:
        bot = self._require_bot()
        block_ids = [block_id for block_id, name in self._block_names.items() if predicate(name)]
        if not block_ids:
            return None
        block = bot.findBlock({"matching": block_ids, "maxDistance": max_distance})
        if not block:
            return None
        return self._to_position(block.position)

    async def look_at(self, position: Position) -> None:
        bot = self._require_bot()
        await self._call("look_at", bot.lookAt, self._vec3.Vec3(position.x, position.y, position.z))

    async def set_orientation(self, yaw: float, pitch: float) -> None:
        await self._call("set_orientation", self._require_bot().look, yaw, pitch)

    async def dig(self, position: Position) -> None:
        bot = self._require_bot()
        block = bot.blockAt(self._vec3.Vec3(position.x, position.y, position.z))
        if not block:
            raise GameClientError(f"No block loaded at {position}")
        await self._call("dig", bot.dig, block)

    def inventory_items(self) -> list[InventoryItem]:
        items = self._require_bot().inventory.items().valueOf() or []
        return [
            InventoryItem(name=str(item["name"]), count=int(item["count"]), item_id=item.get("type"))
            for item in items
        ]

    async def toss_item(self, item_id: int | None, count: int) -> None:
        await self._call("toss_item", self._require_bot().toss, item_id, None, count)

    def on_chat_line(self, callback: ChatCallback) -> None:
        self._chat_callbacks.append(callback)

    def on_item_collected(self, callback: CollectCallback) -> None:
        self._collect_callbacks.append(callback)

    def send_chat_line(self, text: str) -> None:
        self._require_bot().chat(text)

    def players(self) -> Mapping[str, Position | None]:
        bot = self._require_bot()
        result: dict[str, Position | None] = {}
        for name in self._bridge.globalThis.Object.keys(bot.players):
            entity = bot.players[name].entity
            result[str(name)] = self._to_position(entity.position) if entity else None
        return result

    def _register_events(self) -> None:
        on = self._bridge.On
        bot = self._bot

        @on(bot, "spawn")
        def _spawn(this, *args) -> None:
            self._post(self._handle_spawn)

        @on(bot, "chat")
        def _chat(this, username, message, *args) -> None:
            self._post(self._emit_chat, str(username), str(message))

        @on(bot, "playerCollect")
        def _collect(this, collector, collected, *args) -> None:
            if collector and collector.username == bot.username:
                self._post(self._emit_collect)

        @on(bot, "kicked")
        def _kicked(this, reason, *args) -> None:
            self._post(self._handle_closed, f"Kicked: {reason}")

        @on(bot, "error")
        def _error(this, err, *args) -> None:
            message = getattr(err, "message", None) or str(err)
            self._post(self._handle_closed, f"Error: {message}")

        @on(bot, "end")
        def _end(this, reason=None, *args) -> None:
            self._post(self._handle_closed, f"Disconnected: {reason or 'unknown reason'}")

    def _post(self, callback, *args) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)

    def _handle_spawn(self) -> None:
        movements = self._pathfinder.Movements(self._bot)
        movements.canDig = False
        movements.scafoldingBlocks = []
        self._bot.pathfinder.setMovements(movements)
        if not self._block_names:
            blocks = self._bot.registry.blocksArray.valueOf() or []
            self._block_names = {int(block["id"]): str(block["name"]) for block in blocks}
        self._logger.info("client_spawned", extra={"username": self.username})
        if self._spawned is not None:
            self._spawned.set()

    def _handle_closed(self, reason: str) -> None:
        if self._closed is None or self._closed.done():
            return
        if self._quitting:
            self._logger.info("client_quit", extra={"reason": reason})
            self._closed.set_result(None)
            return
        self._logger.error("client_connection_lost", extra={"reason": reason})
        self._closed.set_exception(ConnectionLostError(reason))

    def _emit_chat(self, sender: str, text: str) -> None:
        for callback in list(self._chat_callbacks):
            callback(sender, text)

    def _emit_collect(self) -> None:
        for callback in list(self._collect_callbacks):
            callback()

    async def _call(self, action: str, fn: Any, *args: Any) -> Any:
        """Run one blocking bridge call off the loop and map its failure to a client error."""
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as exc:  # noqa: BLE001 - bridge raises JavaScriptError for any rejection.
            if self.closed:
                raise ConnectionLostError(str(exc)) from exc
            raise GameClientError(f"{action} failed: {exc}") from exc

    def _require_bot(self) -> Any:
        if self._bot is None:
            raise GameClientError("Client is not connected")
        return self._bot

    @staticmethod
    def _to_position(vec: Any) -> Position:
        return Position(float(vec.x), float(vec.y), float(vec.z))

    @staticmethod
    def _resolve_bridge() -> ModuleType:
        try:
            return importlib.import_module("javascript")
        except Exception as exc:  # noqa: BLE001
            raise GameClientUnavailableError(
                "Unable to import the javascript bridge. Install it with: pip install 'steve-bot[live]' "
                "and make sure Node.js is available."
            ) from exc
