"""Derived figures, labels and console printing for a match."""

from collections import Counter
from typing import Optional

from .config import COMBO_EVERY, GameMode, Settings
from .engine import Move, Outcome, RoundRecord
from .state import Achievement, MatchState

STREAK_LABEL_FROM = 3

_OUTCOME_TEXT = {
    Outcome.WIN: "You Won",
    Outcome.LOSE: "You Lost",
    Outcome.DRAW: "Draw",
}


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

def win_rate(state: MatchState) -> int:
    """Wins as a rounded percentage of all rounds played (0 with none)."""
    total = state.rounds_played
    # Halves round up
    return int(state.wins * 100 / total + 0.5) if total else 0


def outcome_split(state: MatchState) -> dict[str, float]:
    """Win/loss/draw percentages for the results chart.

    With no rounds played the chart shows a full draw bar.
    """
    total = state.rounds_played
    if not total:
        return {"win": 0.0, "lose": 0.0, "draw": 100.0}
    return {
        "win": state.wins / total * 100,
        "lose": state.losses / total * 100,
        "draw": state.draws / total * 100,
    }


def move_distribution(state: MatchState) -> dict[str, int]:
    """How often the player picked each move in the logged rounds."""
    counts = Counter(r.player_move for r in state.history if r.player_move is not None)
    return {m.value: counts.get(m, 0) for m in Move}


def streak_label(streak: int) -> str:
    if streak >= STREAK_LABEL_FROM:
        return f"{streak} Win Streak!"
    return "No Streak"


def combo_label(streak: int) -> Optional[str]:
    if streak >= COMBO_EVERY:
        return f"COMBO x{streak} - BONUS!"
    return None


def describe_round(record: RoundRecord, settings: Optional[Settings] = None) -> str:
    """One history line, e.g. ``Round 3: You rock vs Computer scissors - You Won``."""
    if record.is_multiplayer:
        settings = settings or Settings()
        player, opponent = settings.player1_name, settings.player2_name
    else:
        player, opponent = "You", "Computer"
    player_move = record.player_move.value if record.player_move else "none"
    opponent_move = record.opponent_move.value if record.opponent_move else "none"
    return (f"Round {record.round}: {player} {player_move} vs "
            f"{opponent} {opponent_move} - {_OUTCOME_TEXT[record.outcome]}")


def result_description(record: RoundRecord) -> str:
    """The line under the result banner, e.g. ``Rock beats scissors``."""
    if record.player_move is None or record.opponent_move is None:
        return "Time's up! Automatic draw."
    if record.outcome is Outcome.WIN:
        return f"{record.player_move.value.capitalize()} beats {record.opponent_move.value}"
    if record.outcome is Outcome.LOSE:
        return f"{record.opponent_move.value.capitalize()} beats {record.player_move.value}"
    return "Both chose the same"


def share_text(state: MatchState) -> str:
    """Score summary for sharing or copying to the clipboard."""
    return (
        "🎮 Rock Paper Scissors Score 🎮\n"
        f"Wins: {state.wins}\n"
        f"Losses: {state.losses}\n"
        f"Draws: {state.draws}\n"
        f"Win Rate: {win_rate(state)}%\n"
        f"Current Streak: {state.player_streak}\n"
        f"Level: {state.player_level}\n"
        "\n"
        "Play the ultimate Rock Paper Scissors game!"
    )


# ---------------------------------------------------------------------------
# Pretty-printing
# ---------------------------------------------------------------------------

def print_scoreboard(state: MatchState, settings: Optional[Settings] = None):
    """Print scores, streaks, tallies and badges."""
    settings = settings or Settings()
    opponent = settings.player2_name if settings.game_mode is GameMode.MULTIPLAYER else "Computer"

    print("=" * 60)
    print(f"  Round {state.round}  |  Level {state.player_level}")
    print("=" * 60)
    print(f"  {'':20s} {settings.player1_name:>16s} {opponent:>16s}")
    print(f"  {'Score':20s} {state.player_score:>16d} {state.opponent_score:>16d}")
    print(f"  {'Streak':20s} {streak_label(state.player_streak):>16s} "
          f"{streak_label(state.opponent_streak):>16s}")
    combo = combo_label(state.player_streak)
    if combo:
        print(f"\n  ★ {combo}")
    print()
    print(f"  Wins: {state.wins}  Losses: {state.losses}  Draws: {state.draws}  "
          f"Win Rate: {win_rate(state)}%")

    badges = [a.value.replace("_", " ").title() for a in Achievement if a in state.achievements]
    print(f"  Achievements: {', '.join(badges) if badges else 'none yet'}")
    print("=" * 60)


def print_history(state: MatchState, settings: Optional[Settings] = None):
    """Print the logged rounds, newest first."""
    print()
    if not state.history:
        print("  No game history yet. Play some rounds!")
        print()
        return
    for record in state.history:
        stamp = f"  [{record.timestamp}]" if record.timestamp else ""
        print(f"  {describe_round(record, settings)}{stamp}")
    print()
