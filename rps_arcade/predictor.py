"""Computer opponents: a uniform random picker and a frequency counter."""

from abc import ABC, abstractmethod
from collections import Counter, deque
import logging
import random
from typing import Optional

from .config import MOVE_HISTORY_LIMIT, PREDICTOR_MIN_HISTORY, PREDICTOR_WINDOW, AiMode, parse_ai_mode
from .engine import Move, MOVES, counter_move
from .errors import InvalidMoveError

logger = logging.getLogger(__name__)


class MoveHistory:
    """Bounded FIFO of the human player's moves, oldest first.

    Appending past capacity drops the oldest move. Supports the read
    operations predictors use (len, iteration, indexing, ``in``, bool).
    """
    __slots__ = ('_data',)

    def __init__(self, capacity: int = MOVE_HISTORY_LIMIT, moves=()):
        self._data: deque = deque(maxlen=capacity)
        for move in moves:
            self.append(move)

    @property
    def capacity(self) -> int:
        return self._data.maxlen

    def append(self, move: Move) -> None:
        if not isinstance(move, Move):
            raise InvalidMoveError(f"Not a move: {move!r}")
        self._data.append(move)

    def recent(self, n: int) -> list[Move]:
        """The last `n` moves (fewer if the history is shorter)."""
        if n <= 0:
            return []
        return list(self._data)[-n:]

    def clear(self) -> None:
        self._data.clear()

    def to_list(self) -> list[Move]:
        return list(self._data)

    def __getitem__(self, key):
        return self.to_list()[key]

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self._data)

    def __contains__(self, item):
        return item in self._data

    def __bool__(self):
        return bool(self._data)

    def __repr__(self):
        return f"MoveHistory({[m.value for m in self._data]!r})"


class Predictor(ABC):
    """Base class for computer opponents.

    A predictor owns the human's move history. The controller keeps one
    predictor alive for the whole session and only resets it on an explicit
    game reset.
    """

    def __init__(self, rng: Optional[random.Random] = None, history: Optional[MoveHistory] = None):
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.history = history if history is not None else MoveHistory()

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def predict(self) -> Move:
        ...

    def record_move(self, move: Move) -> None:
        """Remember the human's move for later predictions."""
        self.history.append(move)

    def reset(self):
        """Forget every recorded move."""
        self.history.clear()

    def random_move(self) -> Move:
        return self.rng.choice(MOVES)

    def __repr__(self):
        return f"<{self.name}>"


class RandomPredictor(Predictor):
    """Chooses a move completely at random, ignoring the history."""
    name = AiMode.RANDOM.value

    def predict(self) -> Move:
        return self.random_move()


class SmartPredictor(Predictor):
    """Counters the human's most frequent recent move.

    Plays random until three moves are known. After that it counts the last
    five moves and plays the counter to the most common one. Ties go to the
    earlier move in rock, paper, scissors order, so identical histories
    always give the same answer.

    **Logic**: `Counter(history[-5:])`, counter of the top entry
    """
    name = AiMode.SMART.value

    def predict(self) -> Move:
        if len(self.history) < PREDICTOR_MIN_HISTORY:
            return self.random_move()

        counts = Counter(self.history.recent(PREDICTOR_WINDOW))
        most_frequent = MOVES[0]
        max_count = 0
        for move in MOVES:
            if counts[move] > max_count:
                max_count = counts[move]
                most_frequent = move

        prediction = counter_move(most_frequent)
        logger.debug("smart predictor: %s most frequent, playing %s",
                     most_frequent.value, prediction.value)
        return prediction


PREDICTOR_CLASSES = {
    AiMode.SMART: SmartPredictor,
    AiMode.RANDOM: RandomPredictor,
}


def get_predictor_by_name(
    name,
    rng: Optional[random.Random] = None,
    history: Optional[MoveHistory] = None,
) -> Predictor:
    """Get a predictor instance for an AI mode name (case-insensitive).

    Raises ConfigError for an unknown name.
    """
    mode = parse_ai_mode(name)
    return PREDICTOR_CLASSES[mode](rng=rng, history=history)
