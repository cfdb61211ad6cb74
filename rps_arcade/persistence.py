"""Saving and loading the game through a key-value store.

The whole game (match state plus settings) is one flat snapshot stored
under STORAGE_KEY. Loading merges the snapshot onto defaults, so fields a
snapshot lacks keep their default and fields it has that we don't know are
ignored. Saving always overwrites the full snapshot.
"""

from abc import ABC, abstractmethod
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Optional

from .config import HISTORY_LIMIT, STORAGE_KEY, Settings, parse_ai_mode, parse_game_mode
from .engine import RoundRecord
from .errors import ConfigError, InvalidStateError
from .state import Achievement, MatchState

logger = logging.getLogger(__name__)

_COUNTERS = (
    "player_score", "opponent_score",
    "wins", "losses", "draws",
    "player_streak", "opponent_streak",
)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class KeyValueStore(ABC):
    """Minimal storage the game needs: JSON-compatible values by key."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...


class MemoryStore(KeyValueStore):
    """In-process store. Values are copied through JSON like a real store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object file, replaced atomically on write."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        try:
            data = self._read()
        except ValueError:
            # Unreadable file: the new snapshot replaces it
            data = {}
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except Exception:
            try:
                os.remove(tmp_name)
            except OSError:
                pass
            raise


# ---------------------------------------------------------------------------
# Snapshot codec
# ---------------------------------------------------------------------------

def serialize(state: MatchState, settings: Settings) -> dict:
    """Flatten match state and settings into one JSON-ready dict."""
    data = state.to_dict()
    data.update(settings.to_dict())
    return data


def deserialize(data: dict) -> tuple[MatchState, Settings]:
    """Rebuild match state and settings from a snapshot.

    Raises InvalidStateError if any field holds a value the game could
    never have produced.
    """
    if not isinstance(data, dict):
        raise InvalidStateError(f"Snapshot must be an object, got {type(data).__name__}")

    merged = serialize(MatchState(), Settings())
    merged.update({k: v for k, v in data.items() if k in merged})

    state = MatchState()
    for name in _COUNTERS + ("round", "player_level"):
        value = merged[name]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise InvalidStateError(f"{name} must be a non-negative integer, got {value!r}")
        setattr(state, name, value)
    if state.round < 1:
        raise InvalidStateError(f"round must be at least 1, got {state.round}")

    history = merged["history"]
    if not isinstance(history, list):
        raise InvalidStateError("history must be a list")
    try:
        state.history = [RoundRecord.from_dict(item) for item in history[:HISTORY_LIMIT]]
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidStateError(f"Bad history entry: {exc}") from exc

    achievements = merged["achievements"]
    if not isinstance(achievements, dict):
        raise InvalidStateError("achievements must be an object")
    for name, earned in achievements.items():
        if not isinstance(earned, bool):
            raise InvalidStateError(f"achievement {name} must be true or false, got {earned!r}")
    state.achievements = {a for a in Achievement if achievements.get(a.value)}

    settings = Settings()
    try:
        settings.update(
            sound_enabled=merged["sound_enabled"],
            vibration_enabled=merged["vibration_enabled"],
            theme=merged["theme"],
            game_mode=parse_game_mode(merged["game_mode"]),
            ai_mode=parse_ai_mode(merged["ai_mode"]),
            player1_name=merged["player1_name"],
            player2_name=merged["player2_name"],
        )
    except ConfigError as exc:
        raise InvalidStateError(str(exc)) from exc

    return state, settings


# ---------------------------------------------------------------------------
# Load / save with fallback
# ---------------------------------------------------------------------------

class GamePersistence:
    """Loads and saves the game, degrading to memory-only on store failure.

    A missing or corrupted snapshot loads as a fresh game. If the store
    itself fails (OSError) persistence switches off for the session and
    the game carries on without it.
    """

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key
        self.available = True

    def _disable(self, exc: OSError) -> None:
        self.available = False
        logger.warning("Game storage unavailable, continuing without saving: %s", exc)

    def load(self) -> tuple[MatchState, Settings]:
        if not self.available:
            return MatchState(), Settings()
        try:
            data = self.store.get(self.key)
        except OSError as exc:
            self._disable(exc)
            return MatchState(), Settings()
        except ValueError as exc:
            logger.warning("Saved game is not valid JSON, starting fresh: %s", exc)
            return MatchState(), Settings()

        if data is None:
            return MatchState(), Settings()
        try:
            return deserialize(data)
        except InvalidStateError as exc:
            logger.warning("Saved game is corrupted, starting fresh: %s", exc)
            return MatchState(), Settings()

    def save(self, state: MatchState, settings: Settings) -> None:
        if not self.available:
            return
        try:
            self.store.set(self.key, serialize(state, settings))
        except OSError as exc:
            self._disable(exc)
