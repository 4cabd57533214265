"""Error taxonomy shared by the adapters, navigation layer and modes."""


class GameClientError(RuntimeError):
    """Base class for failures reported by the game-protocol client."""


class GameClientUnavailableError(GameClientError):
    """Raised when the JavaScript bridge or mineflayer cannot be loaded."""


class GoalUnreachableError(GameClientError):
    """Raised by ``go_to_goal`` when the pathfinder finds no path."""


class ConnectionLostError(GameClientError):
    """Transport-level failure: disconnect, kick or socket error. Always fatal."""


class InvalidInputError(ValueError):
    """Operator input that could not be parsed or is out of range."""
