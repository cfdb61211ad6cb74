"""Export the match totals and round history to JSON or CSV."""

import json
import csv
from pathlib import Path
from .state import MatchState
from .stats import win_rate, outcome_split, move_distribution


def export_json(state: MatchState, path: str):
    """Export totals and the round history to a JSON file."""
    data = {
        "totals": {
            "wins": state.wins,
            "losses": state.losses,
            "draws": state.draws,
            "win_rate": win_rate(state),
            "player_level": state.player_level,
            "outcome_split": {k: round(v, 2) for k, v in outcome_split(state).items()},
            "move_distribution": move_distribution(state),
        },
        "state": state.to_dict(),
    }

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        json.dump(data, f, indent=2)
    print(f"  ✓ Game exported to {out}")


def export_csv(state: MatchState, path: str):
    """Export the round history to a CSV file, newest round first."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "round", "player_move", "opponent_move",
        "outcome", "is_multiplayer", "timestamp",
    ]

    with open(out, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for record in state.history:
            writer.writerow(record.to_dict())
    print(f"  ✓ History exported to {out}")
