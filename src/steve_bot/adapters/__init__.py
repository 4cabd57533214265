"""Game client adapters (e.g., mineflayer through the JavaScript bridge)."""

from .game_client import BlockPredicate, ChatCallback, GameClient, ManagedGameClient
from .mineflayer import MineflayerGameClient

__all__ = [
    "BlockPredicate",
    "ChatCallback",
    "GameClient",
    "ManagedGameClient",
    "MineflayerGameClient",
]
