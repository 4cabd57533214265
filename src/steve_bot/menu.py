"""Numbered mode menu shown on the operator console and answered through chat."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable

from rich.console import Console
from rich.markup import escape

from steve_bot.dispatcher import TaskDispatcher
from steve_bot.errors import InvalidInputError


@dataclass(slots=True)
class MenuItem:
    """A selectable mode; ``start`` receives the name of the player who picked it."""

    name: str
    start: Callable[[str], None]


def parse_selection(text: str, item_count: int) -> int:
    """Return the 1-based choice in ``text`` or raise ``InvalidInputError``."""
    try:
        choice = int(text.strip())
    except ValueError:
        raise InvalidInputError(f"Invalid choice: {text.strip()!r}. Please enter a number between 1 and {item_count}") from None
    if not 1 <= choice <= item_count:
        raise InvalidInputError(f"Invalid choice: {choice}. Please enter a number between 1 and {item_count}")
    return choice


class _MenuSelection:
    """One-shot chat handler: the first valid choice wins, later lines are ignored."""

    def __init__(self, items: Sequence[MenuItem], console: Console, logger: logging.Logger) -> None:
        self._items = list(items)
        self._console = console
        self._logger = logger
        self.exhausted = False

    def __call__(self, sender: str, text: str) -> None:
        if self.exhausted:
            return
        try:
            choice = parse_selection(text, len(self._items))
        except InvalidInputError as exc:
            self._console.print(f"[yellow]{escape(str(exc))}[/yellow]")
            self._logger.info("menu_invalid_choice", extra={"sender": sender, "text": text})
            return

        self.exhausted = True
        selected = self._items[choice - 1]
        self._console.print(f"Starting: [bold]{escape(selected.name)}[/bold]")
        self._logger.info("menu_item_selected", extra={"sender": sender, "item": selected.name})
        selected.start(sender)


class MenuPresenter:
    """Renders the menu on the console and arms a selection handler."""

    def __init__(
        self,
        dispatcher: TaskDispatcher,
        *,
        console: Console | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._console = console or Console()
        self._logger = logger or logging.getLogger("steve_bot.menu")

    def present(self, items: Sequence[MenuItem]) -> None:
        self._console.print("What should I do?")
        for index, item in enumerate(items, start=1):
            self._console.print(f"{index}. {escape(item.name)}")
        self._dispatcher.install(_MenuSelection(items, self._console, self._logger))
