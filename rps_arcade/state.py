"""Match state: scores, streaks, history and achievements."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .config import COMBO_EVERY, HISTORY_LIMIT, LEVEL_THRESHOLDS
from .engine import Outcome, RoundRecord


class Achievement(Enum):
    BEGINNER_WARRIOR = "beginner_warrior"
    MASTER_PLAYER = "master_player"
    LEGEND_MODE = "legend_mode"

    @property
    def wins_required(self) -> int:
        return ACHIEVEMENT_THRESHOLDS[self]


ACHIEVEMENT_THRESHOLDS = {
    Achievement.BEGINNER_WARRIOR: 10,
    Achievement.MASTER_PLAYER: 25,
    Achievement.LEGEND_MODE: 50,
}


@dataclass
class RoundUpdate:
    """What a single round changed beyond the plain tallies."""
    combo_streak: Optional[int] = None
    unlocked: list = field(default_factory=list)


@dataclass
class MatchState:
    """All mutable game data for one player's session.

    Draws leave both streaks alone. The combo bonus adds to player_score
    without touching wins, so the two can drift apart.
    """
    player_score: int = 0
    opponent_score: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    player_streak: int = 0
    opponent_streak: int = 0
    round: int = 1
    player_level: int = 1
    history: list = field(default_factory=list)
    achievements: set = field(default_factory=set)

    @property
    def rounds_played(self) -> int:
        return self.wins + self.losses + self.draws

    def apply_outcome(self, record: RoundRecord) -> RoundUpdate:
        """Score a resolved round and log it.

        Returns the combo bonus (if this round earned one) and any
        achievements unlocked by it.
        """
        update = RoundUpdate()
        outcome = record.outcome

        if outcome is Outcome.WIN:
            self.player_score += 1
            self.wins += 1
            self.player_streak += 1
            self.opponent_streak = 0
            if self.player_streak % COMBO_EVERY == 0:
                self.player_score += 1
                update.combo_streak = self.player_streak
        elif outcome is Outcome.LOSE:
            self.opponent_score += 1
            self.losses += 1
            self.opponent_streak += 1
            self.player_streak = 0
        else:
            self.draws += 1

        self.round += 1
        self._log(record)
        update.unlocked = self.check_achievements()
        return update

    def record_timeout_draw(self, record: RoundRecord) -> None:
        """A timed round that expired with no move: tallies and log only."""
        self.draws += 1
        self.round += 1
        self._log(record)

    def check_achievements(self) -> list:
        """Recompute level from wins and grant every badge it has earned.

        Badges are never taken away. Returns the newly granted ones.
        """
        level = 1
        for threshold, lvl in LEVEL_THRESHOLDS:
            if self.wins >= threshold:
                level = lvl
                break
        self.player_level = level

        unlocked = []
        for achievement, required in ACHIEVEMENT_THRESHOLDS.items():
            if self.wins >= required and achievement not in self.achievements:
                self.achievements.add(achievement)
                unlocked.append(achievement)
        return unlocked

    def reset_scores(self) -> None:
        """Start a fresh match; lifetime tallies, history and badges stay."""
        self.player_score = 0
        self.opponent_score = 0
        self.player_streak = 0
        self.opponent_streak = 0
        self.round = 1

    def _log(self, record: RoundRecord) -> None:
        self.history.insert(0, record)
        del self.history[HISTORY_LIMIT:]

    def to_dict(self) -> dict:
        return {
            "player_score": self.player_score,
            "opponent_score": self.opponent_score,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "player_streak": self.player_streak,
            "opponent_streak": self.opponent_streak,
            "round": self.round,
            "player_level": self.player_level,
            "history": [r.to_dict() for r in self.history],
            "achievements": {a.value: a in self.achievements for a in Achievement},
        }
