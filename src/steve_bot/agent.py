"""Composition root for one controlled agent."""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console

from steve_bot.adapters.game_client import ManagedGameClient
from steve_bot.config import Settings
from steve_bot.dispatcher import TaskDispatcher
from steve_bot.errors import ConnectionLostError
from steve_bot.follow import FollowController
from steve_bot.inventory import InventoryTracker
from steve_bot.menu import MenuItem, MenuPresenter
from steve_bot.modes import ModeContext, build_menu
from steve_bot.navigation import Navigator
from steve_bot.telemetry import OperatorReporter


class BotAgent:
    """Wires dispatcher, menu, navigation, following and inventory around one client."""

    def __init__(
        self,
        client: ManagedGameClient,
        settings: Settings,
        *,
        console: Console | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self._console = console or Console()
        self._logger = logger or logging.getLogger("steve_bot.agent")
        self._fatal: asyncio.Future[None] | None = None

        self.dispatcher = TaskDispatcher(client)
        self.menu = MenuPresenter(self.dispatcher, console=self._console)
        self.navigator = Navigator(
            client,
            timeout_seconds=settings.navigation_timeout_seconds,
            goal_radius=settings.goal_radius,
            scan_settle_seconds=settings.scan_settle_seconds,
        )
        self.follow = FollowController(
            client,
            self.navigator,
            interval_seconds=settings.follow_interval_seconds,
            radius=settings.follow_radius,
        )
        self.inventory = InventoryTracker(client)
        self.reporter = OperatorReporter(console=self._console, chat=client.send_chat_line)
        self.context = ModeContext(
            client=client,
            dispatcher=self.dispatcher,
            menu=self.menu,
            navigator=self.navigator,
            follow=self.follow,
            inventory=self.inventory,
            reporter=self.reporter,
            settings=settings,
            on_fatal=self._on_fatal,
        )
        self.menu_items: list[MenuItem] = build_menu(self.context)

    def start(self) -> None:
        """Begin interactive operation on an already-connected client."""
        self._fatal = asyncio.get_running_loop().create_future()
        self.inventory.watch_pickups(self.client.send_chat_line)
        self.reporter.section(self.client.username)
        self.reporter.success(f"{self.client.username} spawned into the world", to_chat=False)
        self.reporter.data("position", str(self.client.current_position()))
        self.reporter.data("inventory", self.inventory.snapshot())
        self.menu.present(self.menu_items)

    async def run(self) -> None:
        """Connect, serve chat until the connection ends, then clean up.

        Transport failures are logged and re-raised as ``ConnectionLostError``.
        """
        await self.client.connect()
        self.start()
        closed = asyncio.ensure_future(self.client.wait_closed())
        try:
            await asyncio.wait({closed, self._fatal}, return_when=asyncio.FIRST_COMPLETED)
            for future in (self._fatal, closed):
                if future.done():
                    future.result()
        except ConnectionLostError as exc:
            self._logger.error("agent_connection_lost", extra={"reason": str(exc)})
            raise
        finally:
            closed.cancel()
            await self.shutdown()
        self._logger.info("agent_stopped")

    async def shutdown(self) -> None:
        handle = self.context.follow_handle
        if handle is not None:
            handle.cancel()
            self.context.follow_handle = None

        tasks = list(self.context.tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.dispatcher.close()

    def stop(self, reason: str = "bye") -> None:
        self.client.quit(reason)

    def _on_fatal(self, error: BaseException) -> None:
        if self._fatal is not None and not self._fatal.done():
            self._fatal.set_exception(error)
