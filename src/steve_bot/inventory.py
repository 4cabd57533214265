"""Inventory snapshots, change detection and simple item helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Callable

from steve_bot.adapters.game_client import GameClient
from steve_bot.models import InventoryChange

InventorySnapshot = dict[str, int]

MINING_TOOL_SUFFIXES = ("_pickaxe", "_axe", "_shovel")


def diff_snapshots(old: Mapping[str, int], new: Mapping[str, int]) -> list[InventoryChange]:
    """Signed per-item differences between two snapshots.

    Items are reported in the new snapshot's key order, followed by items that
    disappeared entirely. Unchanged items are omitted.
    """
    changes: list[InventoryChange] = []
    for item, count in new.items():
        diff = count - old.get(item, 0)
        if diff:
            changes.append(InventoryChange(item=item, diff=diff))
    for item, count in old.items():
        if item not in new and count:
            changes.append(InventoryChange(item=item, diff=-count))
    return changes


def apply_changes(snapshot: Mapping[str, int], changes: Iterable[InventoryChange]) -> InventorySnapshot:
    """Return a copy of ``snapshot`` with each change added; empty items are dropped."""
    result = dict(snapshot)
    for change in changes:
        count = result.get(change.item, 0) + change.diff
        if count:
            result[change.item] = count
        else:
            result.pop(change.item, None)
    return result


def invert_changes(changes: Iterable[InventoryChange]) -> list[InventoryChange]:
    return [InventoryChange(item=change.item, diff=-change.diff) for change in changes]


class InventoryTracker:
    """Reads holdings from the client and reports what changed between reads."""

    def __init__(self, client: GameClient, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._logger = logger or logging.getLogger("steve_bot.inventory")
        self._pickup_baseline: InventorySnapshot | None = None

    def snapshot(self) -> InventorySnapshot:
        holdings: InventorySnapshot = {}
        for item in self._client.inventory_items():
            holdings[item.name] = holdings.get(item.name, 0) + item.count
        return holdings

    def update(self, snapshot: InventorySnapshot) -> None:
        """Refresh ``snapshot`` in place with current holdings."""
        snapshot.clear()
        snapshot.update(self.snapshot())

    @staticmethod
    def diff(old: Mapping[str, int], new: Mapping[str, int]) -> list[InventoryChange]:
        return diff_snapshots(old, new)

    def changes_since(self, snapshot: Mapping[str, int]) -> list[InventoryChange]:
        return diff_snapshots(snapshot, self.snapshot())

    def has_item(self, name: str) -> bool:
        return any(item.name == name for item in self._client.inventory_items())

    def count_item(self, name: str) -> int:
        return sum(item.count for item in self._client.inventory_items() if item.name == name)

    def has_mining_tool(self) -> bool:
        return any(item.name.endswith(MINING_TOOL_SUFFIXES) for item in self._client.inventory_items())

    async def drop_item(self, name: str, amount: int = 1) -> int:
        """Toss up to ``amount`` of ``name`` across all its stacks; returns how many were tossed."""
        stacks = [item for item in self._client.inventory_items() if item.name == name]
        if not stacks:
            return 0
        tossed = min(amount, sum(stack.count for stack in stacks))
        await self._client.toss_item(stacks[0].item_id, tossed)
        self._logger.info("item_dropped", extra={"item": name, "amount": tossed})
        return tossed

    def watch_pickups(self, notify: Callable[[str], None]) -> None:
        """Report every gained item through ``notify`` whenever the agent collects something."""
        self._pickup_baseline = self.snapshot()

        def _on_collect() -> None:
            baseline = self._pickup_baseline if self._pickup_baseline is not None else {}
            changes = self.changes_since(baseline)
            if not changes:
                return
            for change in changes:
                if change.diff > 0:
                    notify(f"I just picked up {change.diff}x {change.item}")
            self._pickup_baseline = self.snapshot()

        self._client.on_item_collected(_on_collect)
