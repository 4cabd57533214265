"""Logging setup and the multi-channel operator reporter (console, chat, logger)."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape


class ReportLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    STATE = "state"


_CONSOLE_SYMBOLS = {
    ReportLevel.INFO: "[blue]ℹ[/blue]",
    ReportLevel.SUCCESS: "[green]✓[/green]",
    ReportLevel.WARNING: "[yellow]⚠[/yellow]",
    ReportLevel.ERROR: "[red]✗[/red]",
    ReportLevel.STATE: "[cyan]→[/cyan]",
}

_CHAT_PREFIXES = {
    ReportLevel.INFO: "",
    ReportLevel.SUCCESS: "✓",
    ReportLevel.WARNING: "!",
    ReportLevel.ERROR: "✗",
    ReportLevel.STATE: "",
}

_LOG_LEVELS = {
    ReportLevel.INFO: logging.INFO,
    ReportLevel.SUCCESS: logging.INFO,
    ReportLevel.WARNING: logging.WARNING,
    ReportLevel.ERROR: logging.ERROR,
    ReportLevel.STATE: logging.INFO,
}


_RECORD_ATTRS = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class ExtraFieldsFormatter(logging.Formatter):
    """Appends the record's ``extra=`` fields as ``key=value`` pairs after the message."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = " ".join(f"{key}={value}" for key, value in record.__dict__.items() if key not in _RECORD_ATTRS)
        if not fields:
            return text
        head, sep, tail = text.partition("\n")
        return f"{head} {fields}{sep}{tail}"


def configure_logging(level: str = "INFO", log_file: str | Path | None = None, *, console: Console | None = None) -> None:
    """Install a rich console handler and, optionally, a plain file handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    console_handler.setFormatter(ExtraFieldsFormatter("%(message)s"))
    root.addHandler(console_handler)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(ExtraFieldsFormatter("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(file_handler)


class OperatorReporter:
    """Sends one progress line to the console, to chat and to the logger."""

    def __init__(
        self,
        *,
        console: Console | None = None,
        chat: Callable[[str], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._console = console or Console()
        self._chat = chat
        self._logger = logger or logging.getLogger("steve_bot.report")

    def report(
        self,
        level: ReportLevel,
        message: str,
        *,
        to_console: bool = True,
        to_chat: bool = True,
        to_log: bool = True,
    ) -> None:
        if to_console:
            self._console.print(f"{_CONSOLE_SYMBOLS[level]} {escape(message)}")
        if to_chat and self._chat is not None:
            prefix = _CHAT_PREFIXES[level]
            try:
                self._chat(f"{prefix} {message}" if prefix else message)
            except Exception:  # noqa: BLE001 - reporting must never break the caller.
                self._logger.exception("chat_report_failed", extra={"report": message})
        if to_log:
            self._logger.log(_LOG_LEVELS[level], message, extra={"report_level": level.value})

    def info(self, message: str, **channels: bool) -> None:
        self.report(ReportLevel.INFO, message, **channels)

    def success(self, message: str, **channels: bool) -> None:
        self.report(ReportLevel.SUCCESS, message, **channels)

    def warning(self, message: str, **channels: bool) -> None:
        self.report(ReportLevel.WARNING, message, **channels)

    def error(self, message: str, **channels: bool) -> None:
        self.report(ReportLevel.ERROR, message, **channels)

    def state(self, message: str, **channels: bool) -> None:
        self.report(ReportLevel.STATE, message, **channels)

    def progress(self, step: int, total: int, message: str, **channels: bool) -> None:
        self.report(ReportLevel.STATE, f"[{step}/{total}] {message}", **channels)

    def section(self, title: str) -> None:
        self._console.rule(escape(title))

    def data(self, label: str, value: Any) -> None:
        """Key/value detail; kept out of chat."""
        self.report(ReportLevel.INFO, f"{label}: {json.dumps(value, default=str)}", to_chat=False)
