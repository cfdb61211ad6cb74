"""Moves, outcomes and round resolution for Rock-Paper-Scissors."""

from enum import Enum
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidMoveError


class Move(Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class Outcome(Enum):
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"

    @property
    def inverse(self) -> "Outcome":
        """The same round seen from the other side."""
        return _INVERSE[self]


_INVERSE = {
    Outcome.WIN: Outcome.LOSE,
    Outcome.LOSE: Outcome.WIN,
    Outcome.DRAW: Outcome.DRAW,
}

# Declaration order, also the predictor's tie-break order
MOVES = [Move.ROCK, Move.PAPER, Move.SCISSORS]

# What each move beats
BEATS = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}

# What beats each move
BEATEN_BY = {v: k for k, v in BEATS.items()}

# Pre-computed outcome table: (move_a, move_b) → outcome for A
_OUTCOME_TABLE = {
    (Move.ROCK, Move.ROCK): Outcome.DRAW,
    (Move.ROCK, Move.PAPER): Outcome.LOSE,
    (Move.ROCK, Move.SCISSORS): Outcome.WIN,
    (Move.PAPER, Move.ROCK): Outcome.WIN,
    (Move.PAPER, Move.PAPER): Outcome.DRAW,
    (Move.PAPER, Move.SCISSORS): Outcome.LOSE,
    (Move.SCISSORS, Move.ROCK): Outcome.LOSE,
    (Move.SCISSORS, Move.PAPER): Outcome.WIN,
    (Move.SCISSORS, Move.SCISSORS): Outcome.DRAW,
}


def resolve(move_a: Move, move_b: Move) -> Outcome:
    """Return the outcome of a round from A's perspective."""
    for move in (move_a, move_b):
        if not isinstance(move, Move):
            raise InvalidMoveError(f"Not a move: {move!r}")
    return _OUTCOME_TABLE[move_a, move_b]


def counter_move(move: Move) -> Move:
    """Return the move that beats `move`."""
    return BEATEN_BY[move]


def parse_move(value) -> Move:
    """Turn user or stored input into a Move (case-insensitive)."""
    if isinstance(value, Move):
        return value
    if isinstance(value, str):
        try:
            return Move(value.strip().lower())
        except ValueError:
            pass
    options = ", ".join(m.value for m in MOVES)
    raise InvalidMoveError(f"Invalid move: {value!r}. Valid moves are: {options}")


def parse_optional_move(value) -> Optional[Move]:
    """Like parse_move, but "none"/None stand for a round with no move."""
    if value is None or value == "none":
        return None
    return parse_move(value)


def _move_value(move: Optional[Move]) -> str:
    return move.value if move is not None else "none"


@dataclass(frozen=True)
class RoundRecord:
    """One completed round, newest-first in MatchState.history.

    `player_move` and `opponent_move` are None for a timed round that ran
    out before the player picked anything.
    """
    round: int
    player_move: Optional[Move]
    opponent_move: Optional[Move]
    outcome: Outcome
    is_multiplayer: bool = False
    timestamp: str = ""

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "player_move": _move_value(self.player_move),
            "opponent_move": _move_value(self.opponent_move),
            "outcome": self.outcome.value,
            "is_multiplayer": self.is_multiplayer,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoundRecord":
        """Rebuild a record, raising TypeError for wrongly typed fields."""
        number = data["round"]
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise TypeError(f"round must be a positive integer, got {number!r}")
        is_multiplayer = data.get("is_multiplayer", False)
        if not isinstance(is_multiplayer, bool):
            raise TypeError(f"is_multiplayer must be true or false, got {is_multiplayer!r}")
        timestamp = data.get("timestamp", "")
        if not isinstance(timestamp, str):
            raise TypeError(f"timestamp must be a string, got {timestamp!r}")
        return cls(
            round=number,
            player_move=parse_optional_move(data.get("player_move")),
            opponent_move=parse_optional_move(data.get("opponent_move")),
            outcome=Outcome(data["outcome"]),
            is_multiplayer=is_multiplayer,
            timestamp=timestamp,
        )
