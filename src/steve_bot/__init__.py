"""Chat-driven Minecraft bot: task dispatch, navigation and inventory tracking."""

__version__ = "0.1.0"
