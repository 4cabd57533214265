from __future__ import annotations

import asyncio
import logging

from steve_bot.dispatcher import TaskDispatcher
from steve_bot.models import DispatcherState


class RecordingHandler:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def __call__(self, sender: str, text: str) -> None:
        self.lines.append((sender, text))


def test_idle_dispatcher_ignores_lines(client) -> None:
    dispatcher = TaskDispatcher(client)

    client.chat("Alex", "hello")

    assert dispatcher.state == DispatcherState.IDLE
    assert dispatcher.active_handler is None


def test_self_lines_never_reach_a_handler(client) -> None:
    dispatcher = TaskDispatcher(client)
    handler = RecordingHandler()
    dispatcher.install(handler)

    for sender, text in [("Alex", "one"), ("Steve", "me"), ("Alex", "two"), ("Steve", "again")]:
        client.chat(sender, text)

    assert handler.lines == [("Alex", "one"), ("Alex", "two")]


def test_handler_echo_does_not_feed_back(client) -> None:
    dispatcher = TaskDispatcher(client)
    seen: list[str] = []

    def echo(sender: str, text: str) -> None:
        seen.append(text)
        client.send_chat_line(f"{sender} said: {text}")

    dispatcher.install(echo)
    client.chat("Alex", "ping")

    assert seen == ["ping"]
    assert client.sent == ["Alex said: ping"]


def test_install_replaces_previous_handler(client) -> None:
    dispatcher = TaskDispatcher(client)
    first, second = RecordingHandler(), RecordingHandler()

    dispatcher.install(first)
    client.chat("Alex", "a")
    dispatcher.install(second)
    client.chat("Alex", "b")
    client.chat("Alex", "c")

    assert first.lines == [("Alex", "a")]
    assert second.lines == [("Alex", "b"), ("Alex", "c")]
    assert dispatcher.state == DispatcherState.ACTIVE


def test_handler_can_swap_itself_mid_line(client) -> None:
    dispatcher = TaskDispatcher(client)
    after = RecordingHandler()

    def before(sender: str, text: str) -> None:
        dispatcher.install(after)

    dispatcher.install(before)
    client.chat("Alex", "switch")
    client.chat("Alex", "next")

    assert after.lines == [("Alex", "next")]


def test_clear_returns_to_idle(client) -> None:
    dispatcher = TaskDispatcher(client)
    handler = RecordingHandler()
    dispatcher.install(handler)

    dispatcher.clear()
    client.chat("Alex", "anyone?")

    assert dispatcher.state == DispatcherState.IDLE
    assert handler.lines == []


def test_faulty_handler_is_logged_and_kept(client, caplog) -> None:
    dispatcher = TaskDispatcher(client)
    calls: list[str] = []

    def flaky(sender: str, text: str) -> None:
        calls.append(text)
        if text == "bad":
            raise RuntimeError("boom")

    dispatcher.install(flaky)
    with caplog.at_level(logging.ERROR, logger="steve_bot.dispatcher"):
        client.chat("Alex", "bad")
    client.chat("Alex", "good")

    assert calls == ["bad", "good"]
    assert dispatcher.active_handler is flaky
    assert dispatcher.last_fault is not None
    assert dispatcher.last_fault.text == "bad"
    assert "RuntimeError" in dispatcher.last_fault.error
    assert any(record.message == "task_handler_failed" for record in caplog.records)


def test_deferred_action_runs_after_delay_and_close_cancels(client) -> None:
    async def _run() -> tuple[list[str], list[str]]:
        dispatcher = TaskDispatcher(client)
        fired: list[str] = []
        dispatcher.defer(0.01, lambda: fired.append("first"))
        await asyncio.sleep(0.05)

        cancelled: list[str] = []
        dispatcher.defer(0.01, lambda: cancelled.append("second"))
        dispatcher.close()
        await asyncio.sleep(0.05)
        return fired, cancelled

    fired, cancelled = asyncio.run(_run())
    assert fired == ["first"]
    assert cancelled == []
