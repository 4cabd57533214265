from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class Position:
    x: float
    y: float
    z: float

    def distance_to(self, other: Position) -> float:
        return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))

    def offset(self, dx: float, dy: float, dz: float) -> Position:
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f}, {self.z:.2f})"


@dataclass(frozen=True, slots=True)
class Goal:
    """Target position plus the radius inside which the agent counts as arrived."""

    position: Position
    radius: float = 1.0

    def reached_from(self, position: Position) -> bool:
        return self.position.distance_to(position) <= self.radius


class NavigationOutcome(str, Enum):
    """Result of a single navigation attempt."""

    ARRIVED = "arrived"
    TIMED_OUT = "timed_out"
    UNREACHABLE = "unreachable"
    CANCELLED = "cancelled"


class DispatcherState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(slots=True)
class InventoryItem:
    name: str
    count: int
    item_id: int | None = None


@dataclass(frozen=True, slots=True)
class InventoryChange:
    item: str
    diff: int


@dataclass(slots=True)
class HandlerFault:
    """A chat line whose handler raised; the line is dropped."""

    sender: str
    text: str
    error: str
