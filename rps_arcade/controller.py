"""Round orchestration for AI, same-device multiplayer and timed games.

The controller owns the match state, settings and the computer opponent.
It never touches rendering, audio or storage formats directly: results go
out through the EventBus and the optional GamePersistence.

Round lifecycle:

    AWAITING --(moves in, round resolved)--> RESOLVED
    RESOLVED --(RESET_DELAY later)--> AWAITING

Calls that arrive without the moves they need, in the wrong phase or in
the wrong game mode are ignored.
"""

from datetime import datetime
from enum import Enum
import logging
import random
from typing import Callable, Optional

from .config import (
    RESET_DELAY,
    TIMER_ABORT,
    TIMER_SECONDS,
    TIMER_TICK,
    AiMode,
    GameMode,
    Settings,
    parse_ai_mode,
    parse_game_mode,
)
from .engine import Move, Outcome, RoundRecord, parse_move, resolve
from .events import AchievementUnlocked, ComboBonus, EventBus, RoundResult, TimerExpired, TimerTick
from .persistence import GamePersistence
from .predictor import Predictor, get_predictor_by_name
from .state import MatchState
from .timers import ManualScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class Side(Enum):
    PLAYER = "player"
    PLAYER2 = "player2"


class Phase(Enum):
    AWAITING = "awaiting"
    RESOLVED = "resolved"


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


class GameController:
    """Runs rounds and keeps MatchState up to date.

    Args:
        state, settings: Starting state; ``None`` for a fresh game.
        scheduler: Timer capability. Defaults to a ManualScheduler, which
                   only fires when advanced.
        events: Bus the presentation layer listens on.
        persistence: Saved after every change when given.
        rng: Random source for the computer opponent.
        clock: Returns the timestamp string stored with each round.

    ``input_enabled`` is the state of the Play button for the presentation
    layer. It is False while a timed countdown runs. The controller does not
    gate on it: moves can still be picked during the countdown and are
    played when it expires.
    """

    def __init__(
        self,
        state: Optional[MatchState] = None,
        settings: Optional[Settings] = None,
        scheduler: Optional[Scheduler] = None,
        events: Optional[EventBus] = None,
        persistence: Optional[GamePersistence] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], str] = _timestamp,
    ):
        self.state = state if state is not None else MatchState()
        self.settings = settings if settings is not None else Settings()
        self.scheduler = scheduler if scheduler is not None else ManualScheduler()
        self.events = events if events is not None else EventBus()
        self.persistence = persistence
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock
        self.predictor: Predictor = get_predictor_by_name(self.settings.ai_mode, rng=self.rng)

        self.phase = Phase.AWAITING
        self.player_choice: Optional[Move] = None
        self.player2_choice: Optional[Move] = None
        self.opponent_choice: Optional[Move] = None

        self.input_enabled = True
        self.timer_active = False
        self.seconds_remaining = TIMER_SECONDS
        self._tick_handle: Optional[TimerHandle] = None
        self._abort_handle: Optional[TimerHandle] = None
        self._reset_handle: Optional[TimerHandle] = None

    @classmethod
    def from_persistence(cls, persistence: GamePersistence, **kwargs) -> "GameController":
        """Build a controller from whatever the store holds."""
        state, settings = persistence.load()
        return cls(state=state, settings=settings, persistence=persistence, **kwargs)

    @property
    def game_mode(self) -> GameMode:
        return self.settings.game_mode

    @property
    def ai_mode(self) -> AiMode:
        return self.settings.ai_mode

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit_choice(self, side: Side, move) -> bool:
        """Record a move for one side. Returns False if it was ignored.

        In multiplayer mode the round plays itself once both sides are in.
        Raises InvalidMoveError for anything that isn't a move.
        """
        move = parse_move(move)
        side = Side(side)

        if self.phase is not Phase.AWAITING:
            logger.debug("Ignoring %s choice until the next round", side.value)
            return False
        if side is Side.PLAYER2 and self.game_mode is not GameMode.MULTIPLAYER:
            logger.debug("Ignoring player2 choice outside multiplayer mode")
            return False

        if side is Side.PLAYER:
            self.player_choice = move
        else:
            self.player2_choice = move

        both_in = self.player_choice is not None and self.player2_choice is not None
        if self.game_mode is GameMode.MULTIPLAYER and both_in:
            self.play_multiplayer_round()
        return True

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def play_round(self) -> Optional[RoundRecord]:
        """Play the player's move against the computer (AI and timed modes)."""
        if self.game_mode is GameMode.MULTIPLAYER:
            logger.debug("play_round ignored in multiplayer mode")
            return None
        if self.phase is not Phase.AWAITING or self.player_choice is None:
            logger.debug("play_round ignored: no player move or round already resolved")
            return None

        self._stop_countdown()
        player_move = self.player_choice
        opponent_move = self.predictor.predict()
        if self.ai_mode is AiMode.SMART:
            self.predictor.record_move(player_move)
        self.opponent_choice = opponent_move

        return self._finish_round(player_move, opponent_move, is_multiplayer=False)

    def play_multiplayer_round(self) -> Optional[RoundRecord]:
        """Resolve a same-device round from player 1's side."""
        if self.game_mode is not GameMode.MULTIPLAYER:
            logger.debug("play_multiplayer_round ignored outside multiplayer mode")
            return None
        if self.phase is not Phase.AWAITING or self.player_choice is None or self.player2_choice is None:
            logger.debug("play_multiplayer_round ignored: both moves are needed")
            return None

        return self._finish_round(self.player_choice, self.player2_choice, is_multiplayer=True)

    def _finish_round(self, player_move: Move, opponent_move: Move, is_multiplayer: bool) -> RoundRecord:
        outcome = resolve(player_move, opponent_move)
        record = RoundRecord(
            round=self.state.round,
            player_move=player_move,
            opponent_move=opponent_move,
            outcome=outcome,
            is_multiplayer=is_multiplayer,
            timestamp=self.clock(),
        )
        update = self.state.apply_outcome(record)
        logger.debug("Round %d: %s vs %s -> %s", record.round,
                     player_move.value, opponent_move.value, outcome.value)

        self.events.emit(RoundResult(outcome, player_move, opponent_move, is_multiplayer))
        if update.combo_streak is not None:
            self.events.emit(ComboBonus(update.combo_streak))
        for achievement in update.unlocked:
            logger.info("Achievement unlocked: %s", achievement.value)
            self.events.emit(AchievementUnlocked(achievement.value))

        self._resolved()
        return record

    def _resolved(self) -> None:
        self.phase = Phase.RESOLVED
        self._cancel(self._reset_handle)
        self._reset_handle = self.scheduler.call_later(RESET_DELAY, self.reset_choices)
        self.save()

    def reset_choices(self) -> None:
        """Clear the selected moves and wait for the next round."""
        self._cancel(self._reset_handle)
        self._reset_handle = None
        self.player_choice = None
        if self.game_mode is GameMode.MULTIPLAYER:
            self.player2_choice = None
        else:
            self.opponent_choice = None
        self.phase = Phase.AWAITING

    # ------------------------------------------------------------------
    # Timed mode
    # ------------------------------------------------------------------

    def start_timer(self) -> bool:
        """Start the countdown for a timed round. Returns False if ignored."""
        if self.game_mode is not GameMode.TIMED:
            logger.debug("start_timer ignored outside timed mode")
            return False
        if self.timer_active or self.phase is not Phase.AWAITING:
            logger.debug("start_timer ignored: timer already running or round resolved")
            return False

        self.timer_active = True
        self.input_enabled = False
        self.seconds_remaining = TIMER_SECONDS
        self._tick_handle = self.scheduler.call_every(TIMER_TICK, self._on_tick)
        self._abort_handle = self.scheduler.call_later(TIMER_ABORT, self._on_abort)
        self.events.emit(TimerTick(self.seconds_remaining))
        return True

    def _on_tick(self) -> None:
        if not self.timer_active:
            return
        self.seconds_remaining -= 1
        self.events.emit(TimerTick(self.seconds_remaining))
        if self.seconds_remaining <= 0:
            self._expire()

    def _on_abort(self) -> None:
        # The abort can fire before the final tick on a real clock
        if self.timer_active:
            self._expire()
        self._stop_countdown()

    def _expire(self) -> None:
        self._cancel(self._tick_handle)
        self._tick_handle = None
        self.timer_active = False
        self.events.emit(TimerExpired())

        if self.player_choice is not None:
            self.play_round()
        elif self.phase is Phase.AWAITING:
            self._timeout_draw()

    def _timeout_draw(self) -> None:
        record = RoundRecord(
            round=self.state.round,
            player_move=None,
            opponent_move=None,
            outcome=Outcome.DRAW,
            is_multiplayer=False,
            timestamp=self.clock(),
        )
        self.state.record_timeout_draw(record)
        logger.debug("Round %d: time ran out, automatic draw", record.round)
        self.events.emit(RoundResult(Outcome.DRAW, None, None, False))
        self._resolved()

    def _stop_countdown(self) -> None:
        self._cancel(self._tick_handle)
        self._cancel(self._abort_handle)
        self._tick_handle = None
        self._abort_handle = None
        self.timer_active = False
        self.input_enabled = True
        self.seconds_remaining = TIMER_SECONDS

    @staticmethod
    def _cancel(handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Game management
    # ------------------------------------------------------------------

    def reset_game(self) -> None:
        """Start a new match. Lifetime wins, history and badges are kept."""
        self._stop_countdown()
        self.state.reset_scores()
        self.predictor.reset()
        self.player2_choice = None
        self.opponent_choice = None
        self.reset_choices()
        logger.info("Game reset")
        self.save()

    def set_game_mode(self, mode) -> None:
        mode = parse_game_mode(mode)
        self._stop_countdown()
        self.settings.game_mode = mode
        self.player2_choice = None
        self.opponent_choice = None
        self.reset_choices()
        logger.info("Game mode set to %s", mode.value)
        self.save()

    def set_ai_mode(self, mode) -> None:
        mode = parse_ai_mode(mode)
        if mode is not self.settings.ai_mode:
            # Same recorded moves, different strategy
            self.predictor = get_predictor_by_name(mode, rng=self.rng, history=self.predictor.history)
        self.settings.ai_mode = mode
        logger.info("AI mode set to %s", mode.value)
        self.save()

    def update_settings(self, **changes) -> None:
        """Change any settings; mode changes go through their setters."""
        game_mode = changes.pop("game_mode", None)
        ai_mode = changes.pop("ai_mode", None)
        if game_mode is not None:
            parse_game_mode(game_mode)
        if ai_mode is not None:
            parse_ai_mode(ai_mode)

        self.settings.update(**changes)
        if game_mode is not None:
            self.set_game_mode(game_mode)
        if ai_mode is not None:
            self.set_ai_mode(ai_mode)
        self.save()

    def save(self) -> None:
        if self.persistence is not None:
            self.persistence.save(self.state, self.settings)

    def snapshot(self) -> dict:
        """Everything the presentation layer needs to draw the game."""
        data = self.state.to_dict()
        data.update(self.settings.to_dict())
        data.update({
            "phase": self.phase.value,
            "player_choice": self.player_choice.value if self.player_choice else None,
            "player2_choice": self.player2_choice.value if self.player2_choice else None,
            "opponent_choice": self.opponent_choice.value if self.opponent_choice else None,
            "timer_active": self.timer_active,
            "seconds_remaining": self.seconds_remaining,
            "input_enabled": self.input_enabled,
        })
        return data

    def shutdown(self) -> None:
        """Cancel pending timers and save."""
        self._stop_countdown()
        self._cancel(self._reset_handle)
        self.scheduler.shutdown()
        self.save()
