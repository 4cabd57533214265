"""Operator-selectable interactive modes.

Each mode is a menu start-handler: it installs its own chat handler on the
dispatcher and hands control back to the menu when told to ``stop``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, Callable

from steve_bot.adapters.game_client import GameClient
from steve_bot.config import Settings
from steve_bot.dispatcher import TaskDispatcher
from steve_bot.errors import ConnectionLostError, GameClientError, InvalidInputError
from steve_bot.follow import FollowController, FollowHandle
from steve_bot.inventory import InventoryTracker
from steve_bot.menu import MenuItem, MenuPresenter
from steve_bot.models import NavigationOutcome, Position
from steve_bot.navigation import Navigator
from steve_bot.telemetry import OperatorReporter

STOP_COMMAND = "stop"
INVENTORY_PREVIEW = 5

_COORD_SPLIT = re.compile(r"[\s,]+")
_BLOCK_NAME = re.compile(r"^[a-z0-9_]+$")
_DROP = re.compile(r"^drop\s+([a-z0-9_]+)(?:\s+(\S+))?$", re.IGNORECASE)


def is_stop(text: str) -> bool:
    return text.strip().lower() == STOP_COMMAND


def parse_coordinates(text: str) -> Position:
    parts = [part for part in _COORD_SPLIT.split(text.strip()) if part]
    if len(parts) != 3:
        raise InvalidInputError("Send coordinates as: x y z")
    try:
        x, y, z = (float(part) for part in parts)
    except ValueError:
        raise InvalidInputError(f"Not a number in {text.strip()!r}. Send coordinates as: x y z") from None
    return Position(x, y, z)


def parse_block_name(text: str) -> str:
    name = text.strip().lower().removeprefix("minecraft:")
    if not _BLOCK_NAME.match(name):
        raise InvalidInputError(f"{text.strip()!r} is not a block name, try something like oak_log")
    return name


def parse_drop(text: str) -> tuple[str, int]:
    match = _DROP.match(text.strip())
    if not match:
        raise InvalidInputError("Use: drop <item> [count]")
    item, raw_count = match.group(1).lower(), match.group(2)
    if raw_count is None:
        return item, 1
    try:
        count = int(raw_count)
    except ValueError:
        raise InvalidInputError(f"Count must be a whole number, got {raw_count!r}") from None
    if count < 1:
        raise InvalidInputError("Count must be at least 1")
    return item, count


def describe_outcome(outcome: NavigationOutcome, target: Position, timeout_seconds: float) -> str:
    if outcome is NavigationOutcome.ARRIVED:
        return f"Arrived at {target}"
    if outcome is NavigationOutcome.TIMED_OUT:
        return f"Gave up walking to {target} after {timeout_seconds:g}s"
    if outcome is NavigationOutcome.UNREACHABLE:
        return f"I can't find a path to {target}"
    return "Stopped walking"


@dataclass(slots=True)
class ModeContext:
    """Everything a mode needs from the agent it runs on."""

    client: GameClient
    dispatcher: TaskDispatcher
    menu: MenuPresenter
    navigator: Navigator
    follow: FollowController
    inventory: InventoryTracker
    reporter: OperatorReporter
    settings: Settings
    on_fatal: Callable[[BaseException], None]
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("steve_bot.modes"))
    items: list[MenuItem] = field(default_factory=list)
    tasks: set[asyncio.Task[Any]] = field(default_factory=set)
    follow_handle: FollowHandle | None = None

    def say(self, text: str) -> None:
        self.client.send_chat_line(text)

    def show_menu(self) -> None:
        self.menu.present(self.items)

    def return_to_menu(self) -> None:
        """Retire the current mode now and bring the menu back after the configured delay."""
        self.dispatcher.clear()
        self.dispatcher.defer(self.settings.menu_return_delay_seconds, self.show_menu)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        return self.track(asyncio.create_task(coro, name=name))

    def track(self, task: asyncio.Task[Any]) -> asyncio.Task[Any]:
        """Keep ``task`` alive until done and surface its failure."""
        self.tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self.tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, ConnectionLostError):
            self.on_fatal(error)
            return
        self.logger.error("mode_task_failed", exc_info=error, extra={"task": task.get_name()})
        self.reporter.error(f"Something went wrong: {error}")


class Mode(ABC):
    name = ""

    def __init__(self, ctx: ModeContext) -> None:
        self._ctx = ctx

    def menu_item(self) -> MenuItem:
        return MenuItem(name=self.name, start=self.start)

    @abstractmethod
    def start(self, sender: str) -> None:
        """Take over chat for the player who picked this mode."""


class EchoMode(Mode):
    name = "Echo messages"

    def start(self, sender: str) -> None:
        self._ctx.say("Echo mode on. Say 'stop' to go back to the menu.")
        self._ctx.dispatcher.install(self._on_chat)

    def _on_chat(self, sender: str, text: str) -> None:
        if is_stop(text):
            self._ctx.say("Leaving echo mode")
            self._ctx.return_to_menu()
            return
        self._ctx.say(f"{sender} said: {text}")


class FollowMode(Mode):
    name = "Follow player"

    def start(self, sender: str) -> None:
        handle = self._ctx.follow.start_following(sender)
        if handle.task is not None:
            self._ctx.track(handle.task)
        self._ctx.follow_handle = handle
        self._ctx.say(f"Following {sender}. Say 'stop' when you want me to stay.")
        self._ctx.dispatcher.install(self._on_chat)

    def _on_chat(self, sender: str, text: str) -> None:
        if not is_stop(text):
            return
        handle = self._ctx.follow_handle
        if handle is not None:
            handle.cancel()
            self._ctx.follow_handle = None
        self._ctx.say("Stopped following")
        self._ctx.return_to_menu()


class _ErrandMode(Mode):
    """A mode that runs one background errand and then goes back to the menu."""

    prompt = ""

    def __init__(self, ctx: ModeContext) -> None:
        super().__init__(ctx)
        self._errand: asyncio.Task[Any] | None = None

    @property
    def busy(self) -> bool:
        return self._errand is not None and not self._errand.done()

    def start(self, sender: str) -> None:
        self._errand = None
        self._ctx.say(self.prompt)
        self._ctx.dispatcher.install(self._on_chat)

    def _on_chat(self, sender: str, text: str) -> None:
        if is_stop(text):
            if self.busy:
                self._ctx.navigator.cancel_current()
                self._errand.cancel()
            else:
                self._ctx.return_to_menu()
            return
        if self.busy:
            self._ctx.say("I'm busy, say 'stop' to interrupt me")
            return
        try:
            errand = self.parse(text)
        except InvalidInputError as exc:
            self._ctx.say(str(exc))
            return
        self._errand = self._ctx.spawn(self._run(errand), name=f"{type(self).__name__}-errand")
        self._errand.add_done_callback(self._errand_done)

    async def _run(self, errand: Any) -> None:
        try:
            await self.perform(errand)
        except ConnectionLostError:
            raise
        except GameClientError as exc:
            self._ctx.reporter.error(str(exc))

    def _errand_done(self, task: asyncio.Task[Any]) -> None:
        # Also runs for an errand cancelled before its first step.
        if task.cancelled():
            self._ctx.reporter.info("Stopped")
        self._ctx.return_to_menu()

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Turn one chat line into an errand or raise ``InvalidInputError``."""

    @abstractmethod
    async def perform(self, errand: Any) -> None:
        ...


class GoToMode(_ErrandMode):
    name = "Go to coordinates"
    prompt = "Where to? Send coordinates as: x y z"

    def parse(self, text: str) -> Position:
        return parse_coordinates(text)

    async def perform(self, errand: Position) -> None:
        ctx = self._ctx
        ctx.reporter.state(f"Walking to {errand}")
        outcome = await ctx.navigator.walk_to(errand)
        self._report(outcome, errand)

    def _report(self, outcome: NavigationOutcome, target: Position) -> None:
        message = describe_outcome(outcome, target, self._ctx.navigator.timeout_seconds)
        if outcome is NavigationOutcome.ARRIVED:
            self._ctx.reporter.success(message)
        elif outcome is NavigationOutcome.CANCELLED:
            self._ctx.reporter.info(message)
        else:
            self._ctx.reporter.warning(message)


class GatherMode(GoToMode):
    name = "Gather block"
    prompt = "Which block should I gather? (e.g. oak_log)"

    def parse(self, text: str) -> str:
        return parse_block_name(text)

    async def perform(self, errand: str) -> None:
        ctx = self._ctx
        if not ctx.inventory.has_mining_tool():
            ctx.reporter.info("No tool on me, digging by hand", to_chat=False)

        before = ctx.inventory.snapshot()
        ctx.reporter.progress(1, 3, f"Looking for {errand}")
        found = await ctx.navigator.find_nearest(lambda block: block == errand, ctx.settings.search_max_distance)
        if found is None:
            ctx.reporter.warning(f"No {errand} within {ctx.settings.search_max_distance} blocks")
            return

        ctx.reporter.progress(2, 3, f"Found {errand} at {found}, walking there")
        outcome = await ctx.navigator.walk_to(found)
        if outcome is not NavigationOutcome.ARRIVED:
            self._report(outcome, found)
            return

        ctx.reporter.progress(3, 3, f"Digging {errand}")
        await ctx.client.look_at(found.offset(0.5, 0.5, 0.5))
        await ctx.client.dig(found)

        gained = [change for change in ctx.inventory.changes_since(before) if change.diff > 0]
        if gained:
            summary = ", ".join(f"{change.diff}x {change.item}" for change in gained)
            ctx.reporter.success(f"Got {summary}")
        else:
            ctx.reporter.success(f"Dug the {errand}")


class InventoryMode(Mode):
    name = "Inventory"

    def start(self, sender: str) -> None:
        self._list()
        self._ctx.say("Commands: list, drop <item> [count], stop")
        self._ctx.dispatcher.install(self._on_chat)

    def _on_chat(self, sender: str, text: str) -> None:
        command = text.strip().lower()
        if is_stop(command):
            self._ctx.return_to_menu()
        elif command == "list":
            self._list()
        elif command.startswith("drop"):
            try:
                item, count = parse_drop(text)
            except InvalidInputError as exc:
                self._ctx.say(str(exc))
                return
            self._ctx.spawn(self._drop(item, count), name="inventory-drop")
        else:
            self._ctx.say("Commands: list, drop <item> [count], stop")

    def _list(self) -> None:
        items = list(self._ctx.client.inventory_items())
        if not items:
            self._ctx.say("Inventory is empty!")
            return
        self._ctx.say(f"I have {len(items)} items:")
        for item in items[:INVENTORY_PREVIEW]:
            self._ctx.say(f"- {item.name} x{item.count}")
        if len(items) > INVENTORY_PREVIEW:
            self._ctx.say(f"... and {len(items) - INVENTORY_PREVIEW} more")

    async def _drop(self, item: str, count: int) -> None:
        dropped = await self._ctx.inventory.drop_item(item, count)
        if dropped:
            self._ctx.say(f"Dropped {dropped}x {item}")
        else:
            self._ctx.say(f"I don't have any {item}")


MODES: tuple[type[Mode], ...] = (EchoMode, FollowMode, GoToMode, GatherMode, InventoryMode)


def build_menu(ctx: ModeContext) -> list[MenuItem]:
    """Create the standard menu and remember it on ``ctx`` for returns."""
    ctx.items = [mode(ctx).menu_item() for mode in MODES]
    return ctx.items
