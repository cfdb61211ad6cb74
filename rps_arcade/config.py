"""Game modes, persisted settings and timing constants."""

import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path

from .errors import ConfigError


# Capacities
HISTORY_LIMIT = 10          # RoundRecords kept in MatchState.history
MOVE_HISTORY_LIMIT = 10     # human moves kept by the predictor
PREDICTOR_WINDOW = 5        # most recent moves the smart predictor counts
PREDICTOR_MIN_HISTORY = 3   # below this the smart predictor plays random

# Timing (seconds)
RESET_DELAY = 2.0
TIMER_SECONDS = 3
TIMER_TICK = 1.0
TIMER_ABORT = 3.0

# Scoring
COMBO_EVERY = 5
LEVEL_THRESHOLDS = (
    (50, 3),
    (25, 2),
    (10, 1),
)

STORAGE_KEY = "rpsGameState"
STATE_PATH_ENV = "RPS_ARCADE_STATE"

DEFAULT_PLAYER1_NAME = "Player 1"
DEFAULT_PLAYER2_NAME = "Player 2"


_TEXT_DEFAULTS = {
    "theme": "light",
    "player1_name": DEFAULT_PLAYER1_NAME,
    "player2_name": DEFAULT_PLAYER2_NAME,
}


class GameMode(Enum):
    AI = "ai"
    MULTIPLAYER = "multiplayer"
    TIMED = "timed"


class AiMode(Enum):
    SMART = "smart"
    RANDOM = "random"


def parse_game_mode(value) -> GameMode:
    if isinstance(value, GameMode):
        return value
    try:
        return GameMode(str(value).strip().lower())
    except ValueError:
        options = ", ".join(m.value for m in GameMode)
        raise ConfigError(f"Unknown game mode: {value!r}. Available: {options}") from None


def parse_ai_mode(value) -> AiMode:
    if isinstance(value, AiMode):
        return value
    try:
        return AiMode(str(value).strip().lower())
    except ValueError:
        options = ", ".join(m.value for m in AiMode)
        raise ConfigError(f"Unknown AI mode: {value!r}. Available: {options}") from None


@dataclass
class Settings:
    """Presentation and mode settings saved next to the match state."""
    sound_enabled: bool = True
    vibration_enabled: bool = True
    theme: str = "light"
    game_mode: GameMode = GameMode.AI
    ai_mode: AiMode = AiMode.SMART
    player1_name: str = DEFAULT_PLAYER1_NAME
    player2_name: str = DEFAULT_PLAYER2_NAME

    def update(self, **changes) -> None:
        """Apply validated changes in place.

        Raises ConfigError for unknown fields or bad mode values. Blank
        player names fall back to the defaults.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        validated = {}
        for key, value in changes.items():
            if key == "game_mode":
                value = parse_game_mode(value)
            elif key == "ai_mode":
                value = parse_ai_mode(value)
            elif key in ("sound_enabled", "vibration_enabled"):
                if not isinstance(value, bool):
                    raise ConfigError(f"{key} must be true or false")
            else:
                if value is None:
                    value = ""
                if not isinstance(value, str):
                    raise ConfigError(f"{key} must be a string")
                value = value.strip() or _TEXT_DEFAULTS[key]
            validated[key] = value

        for key, value in validated.items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return {
            "sound_enabled": self.sound_enabled,
            "vibration_enabled": self.vibration_enabled,
            "theme": self.theme,
            "game_mode": self.game_mode.value,
            "ai_mode": self.ai_mode.value,
            "player1_name": self.player1_name,
            "player2_name": self.player2_name,
        }


def default_state_path() -> Path:
    """Where the CLI and web server keep the saved game."""
    override = os.environ.get(STATE_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".rps_arcade" / "state.json"
