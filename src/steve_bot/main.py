"""CLI startup entrypoint for Steve bot."""

from __future__ import annotations

import asyncio

import typer
from rich import print

from steve_bot.adapters import ManagedGameClient, MineflayerGameClient
from steve_bot.agent import BotAgent
from steve_bot.config import Settings, settings
from steve_bot.errors import ConnectionLostError, GameClientUnavailableError
from steve_bot.telemetry import configure_logging

app = typer.Typer(help="Steve bot: a chat-driven Minecraft agent")


def _effective_settings(**overrides: object) -> Settings:
    return settings.model_copy(update={key: value for key, value in overrides.items() if value is not None})


def _build_client(config: Settings) -> ManagedGameClient:
    return MineflayerGameClient(
        host=config.host,
        port=config.port,
        username=config.username,
        password=config.password,
        version=config.version,
    )


@app.command()
def run(
    host: str = typer.Argument(None, help="Server host (default from STEVE_BOT_HOST)"),
    port: int = typer.Argument(None, help="Server port (default from STEVE_BOT_PORT)"),
    username: str = typer.Argument(None, help="Bot name (default from STEVE_BOT_USERNAME)"),
    password: str = typer.Argument(None, help="Optional account password"),
    version: str = typer.Option(None, help="Pin the protocol version, e.g. 1.20.4"),
    log_level: str = typer.Option(None, help="DEBUG/INFO/WARNING/ERROR"),
    log_file: str = typer.Option(None, help="Also write logs to this file"),
) -> None:
    """Connect to a server and serve the interactive menu until disconnected."""
    config = _effective_settings(
        host=host,
        port=port,
        username=username,
        password=password,
        version=version,
        log_level=log_level,
        log_file=log_file,
    )
    configure_logging(config.log_level, config.log_file)

    try:
        client = _build_client(config)
    except GameClientUnavailableError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    agent = BotAgent(client, config)
    try:
        asyncio.run(agent.run())
    except ConnectionLostError as exc:
        print({"error": f"Connection lost: {exc}"})
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        print({"steve_bot": "interrupted, shutting down"})
        agent.stop("interrupted")


@app.command("config")
def show_config() -> None:
    """Show the effective runtime configuration."""
    values = settings.model_dump()
    if values.get("password"):
        values["password"] = "***"
    print(values)


if __name__ == "__main__":
    app()
