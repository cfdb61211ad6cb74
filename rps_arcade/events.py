"""Events the game core emits for the presentation layer."""

from dataclasses import dataclass
import logging
from typing import Callable, Optional

from .engine import Move, Outcome

logger = logging.getLogger(__name__)


def _move_value(move: Optional[Move]) -> str:
    return move.value if move is not None else "none"


@dataclass(frozen=True)
class RoundResult:
    outcome: Outcome
    player_move: Optional[Move]
    opponent_move: Optional[Move]
    is_multiplayer: bool = False
    name = "round_result"

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "player_move": _move_value(self.player_move),
            "opponent_move": _move_value(self.opponent_move),
            "is_multiplayer": self.is_multiplayer,
        }


@dataclass(frozen=True)
class ComboBonus:
    streak: int
    name = "combo_bonus"

    def to_dict(self) -> dict:
        return {"streak": self.streak}


@dataclass(frozen=True)
class AchievementUnlocked:
    achievement: str
    name = "achievement_unlocked"

    def to_dict(self) -> dict:
        return {"achievement": self.achievement}


@dataclass(frozen=True)
class TimerTick:
    seconds_remaining: int
    name = "timer_tick"

    def to_dict(self) -> dict:
        return {"seconds_remaining": self.seconds_remaining}


@dataclass(frozen=True)
class TimerExpired:
    name = "timer_expired"

    def to_dict(self) -> dict:
        return {}


Handler = Callable[[object], None]


class EventBus:
    """Synchronous publish/subscribe for core events.

    Handlers run in subscription order. A failing handler is logged and
    skipped so rendering problems never break a round.
    """

    def __init__(self):
        self._handlers: list[tuple[Optional[type], Handler]] = []

    def subscribe(self, event_type: Optional[type], handler: Handler) -> Callable[[], None]:
        """Call `handler` for every event of `event_type` (None for all).

        Returns a function that removes the subscription.
        """
        entry = (event_type, handler)
        self._handlers.append(entry)

        def unsubscribe():
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    def emit(self, event) -> None:
        for event_type, handler in list(self._handlers):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed on %s", handler, event.name)
