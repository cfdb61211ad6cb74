"""Error types raised by the game core."""


class ArcadeError(Exception):
    """Base class for all game errors."""


class InvalidMoveError(ArcadeError, ValueError):
    """A value that is not rock, paper or scissors crossed a boundary."""


class InvalidStateError(ArcadeError):
    """A persisted snapshot could not be turned back into game state."""


class ConfigError(ArcadeError, ValueError):
    """Unknown game mode, AI mode or setting."""
