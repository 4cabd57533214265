from __future__ import annotations

import asyncio
import math

import pytest

from steve_bot import navigation
from steve_bot.errors import ConnectionLostError, GoalUnreachableError
from steve_bot.models import Goal, NavigationOutcome, Position
from steve_bot.navigation import NavigationAttempt, Navigator

TARGET = Goal(Position(10.0, 64.0, 10.0), radius=1.0)


async def _hang(goal: Goal) -> None:
    await asyncio.Event().wait()


def test_navigate_to_arrives(client) -> None:
    navigator = Navigator(client, timeout_seconds=1.0)

    outcome = asyncio.run(navigator.navigate_to(TARGET))

    assert outcome == NavigationOutcome.ARRIVED
    assert client.goals == [TARGET]
    assert client.stop_calls == 0
    assert TARGET.reached_from(client.current_position())


def test_navigate_to_times_out_and_stops_movement(client) -> None:
    client.goal_behaviour = _hang
    navigator = Navigator(client, timeout_seconds=0.05)

    async def _run() -> tuple[NavigationOutcome, float, int]:
        loop = asyncio.get_running_loop()
        started = loop.time()
        outcome = await navigator.navigate_to(TARGET)
        return outcome, loop.time() - started, client.stop_calls

    outcome, elapsed, stops_when_observed = asyncio.run(_run())

    assert outcome == NavigationOutcome.TIMED_OUT
    assert elapsed < 0.05 + 0.5
    assert stops_when_observed == 1
    assert client.events[-1] == ("stop",)
    assert navigator.current_attempt is None


def test_navigate_to_reports_unreachable_without_retry(client) -> None:
    async def no_path(goal: Goal) -> None:
        raise GoalUnreachableError("No path to the goal!")

    client.goal_behaviour = no_path
    navigator = Navigator(client, timeout_seconds=1.0)

    outcome = asyncio.run(navigator.navigate_to(TARGET))

    assert outcome == NavigationOutcome.UNREACHABLE
    assert len(client.goals) == 1
    assert client.stop_calls == 0


def test_navigate_to_propagates_connection_loss(client) -> None:
    async def gone(goal: Goal) -> None:
        raise ConnectionLostError("socket closed")

    client.goal_behaviour = gone
    navigator = Navigator(client, timeout_seconds=1.0)

    with pytest.raises(ConnectionLostError):
        asyncio.run(navigator.navigate_to(TARGET))


def test_cancel_current_stops_in_flight_attempt(client) -> None:
    client.goal_behaviour = _hang
    navigator = Navigator(client, timeout_seconds=5.0)

    async def _run() -> NavigationOutcome:
        pending = asyncio.create_task(navigator.navigate_to(TARGET))
        await asyncio.sleep(0.01)
        assert navigator.current_attempt is not None
        navigator.cancel_current()
        return await asyncio.wait_for(pending, timeout=1)

    outcome = asyncio.run(_run())

    assert outcome == NavigationOutcome.CANCELLED
    assert client.stop_calls == 1


def test_pre_cancelled_attempt_never_moves(client) -> None:
    navigator = Navigator(client)

    async def _run() -> NavigationOutcome:
        attempt = NavigationAttempt(goal=TARGET, deadline=asyncio.get_running_loop().time() + 5)
        attempt.cancel()
        return await navigator.navigate_to(TARGET, attempt=attempt)

    assert asyncio.run(_run()) == NavigationOutcome.CANCELLED
    assert client.goals == []


def test_cancelling_the_caller_stops_movement(client) -> None:
    client.goal_behaviour = _hang
    navigator = Navigator(client, timeout_seconds=5.0)

    async def _run() -> None:
        pending = asyncio.create_task(navigator.navigate_to(TARGET))
        await asyncio.sleep(0.01)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

    asyncio.run(_run())
    assert client.stop_calls == 1


def test_scan_returns_match_after_fifth_sample(client, monkeypatch) -> None:
    match = Position(3.0, 60.0, -7.0)
    client.block_finder = lambda predicate, distance: match if len(client.orientations) >= 5 else None

    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def recording_sleep(delay: float, *args, **kwargs) -> None:
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(navigation.asyncio, "sleep", recording_sleep)
    navigator = Navigator(client, scan_settle_seconds=0.1)

    found = asyncio.run(navigator.scan_for_match(lambda name: name == "oak_log", 32))

    assert found == match
    assert len(client.orientations) == 5
    assert delays == [0.1] * 5
    assert client.orientations[4] == pytest.approx((math.pi, 0.0))


def test_scan_covers_three_pitches_then_gives_up(client) -> None:
    navigator = Navigator(client, scan_settle_seconds=0)

    found = asyncio.run(navigator.scan_for_match(lambda name: True, 16))

    assert found is None
    assert len(client.orientations) == 24
    pitches = [pitch for _, pitch in client.orientations]
    assert pitches[:8] == [0.0] * 8
    assert pitches[8:16] == pytest.approx([-math.pi / 4] * 8)
    assert pitches[16:] == pytest.approx([math.pi / 4] * 8)
    yaws = [yaw for yaw, _ in client.orientations[:8]]
    assert yaws == pytest.approx([step * math.pi / 4 for step in range(8)])


def test_find_nearest_prefers_direct_query(client) -> None:
    direct = Position(1.0, 64.0, 1.0)
    client.block_finder = lambda predicate, distance: direct
    navigator = Navigator(client, scan_settle_seconds=0)

    found = asyncio.run(navigator.find_nearest(lambda name: name == "stone", 32))

    assert found == direct
    assert client.orientations == []


def test_find_nearest_falls_back_to_scan(client) -> None:
    hidden = Position(-4.0, 70.0, 2.0)
    client.block_finder = lambda predicate, distance: hidden if client.orientations else None
    navigator = Navigator(client, scan_settle_seconds=0)

    found = asyncio.run(navigator.find_nearest(lambda name: name == "stone", 32))

    assert found == hidden
    assert len(client.orientations) == 1
