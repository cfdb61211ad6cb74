"""CLI entry point for RPS Arcade."""

import argparse
from getpass import getpass
import logging
import random

from .config import RESET_DELAY, GameMode, default_state_path
from .controller import GameController, Side
from .engine import MOVES, parse_move
from .errors import InvalidMoveError
from .events import AchievementUnlocked, ComboBonus
from .export import export_json, export_csv
from .persistence import GamePersistence, JsonFileStore
from .stats import print_history, print_scoreboard, result_description, share_text
from .timers import ManualScheduler

SHORTCUTS = {m.value[0]: m.value for m in MOVES}
QUIT = {"q", "quit", "exit"}


def _load_controller(args, rng=None) -> GameController:
    persistence = GamePersistence(JsonFileStore(args.state))
    return GameController.from_persistence(persistence, scheduler=ManualScheduler(), rng=rng)


def _ask_move(prompt: str, hidden: bool = False):
    """Read a move from the terminal. Returns None when the player quits."""
    read = getpass if hidden else input
    while True:
        raw = read(prompt).strip().lower()
        if raw in QUIT:
            return None
        try:
            return parse_move(SHORTCUTS.get(raw, raw))
        except InvalidMoveError as exc:
            print(f"  ✗ {exc}")


def _print_round(controller: GameController):
    record = controller.state.history[0]
    opponent = controller.settings.player2_name if record.is_multiplayer else "Computer"
    banner = {"win": "You Win!", "lose": "You Lose!", "draw": "It's a Draw!"}[record.outcome.value]
    if record.is_multiplayer and record.outcome.value != "draw":
        winner = controller.settings.player1_name if record.outcome.value == "win" else opponent
        banner = f"{winner} Wins!"
    print(f"\n  {opponent} chose {record.opponent_move.value}.")
    print(f"  ⚔️  {banner}  {result_description(record)}")


def cmd_play(args):
    """Play rounds in the terminal until the player quits."""
    rng = random.Random(args.seed) if args.seed is not None else None
    controller = _load_controller(args, rng=rng)
    controller.set_game_mode(args.mode)
    if args.ai:
        controller.set_ai_mode(args.ai)

    controller.events.subscribe(ComboBonus, lambda e: print(f"  🔥 Combo Bonus! +1 Point (x{e.streak})"))
    controller.events.subscribe(
        AchievementUnlocked,
        lambda e: print(f"  🏆 Achievement unlocked: {e.achievement.replace('_', ' ').title()}"),
    )

    multiplayer = controller.game_mode is GameMode.MULTIPLAYER
    print(f"\n✊ RPS Arcade  |  mode: {controller.game_mode.value}"
          + ("" if multiplayer else f"  |  AI: {controller.ai_mode.value}")
          + (f"  |  seed={args.seed}" if args.seed is not None else ""))
    print("  Moves: rock/paper/scissors (r/p/s), q to quit\n")

    while True:
        if multiplayer:
            p1 = _ask_move(f"  {controller.settings.player1_name}: ", hidden=True)
            if p1 is None:
                break
            p2 = _ask_move(f"  {controller.settings.player2_name}: ", hidden=True)
            if p2 is None:
                break
            controller.submit_choice(Side.PLAYER, p1)
            controller.submit_choice(Side.PLAYER2, p2)
        else:
            move = _ask_move("  Your move: ")
            if move is None:
                break
            controller.submit_choice(Side.PLAYER, move)
            controller.play_round()

        _print_round(controller)
        print(f"  Score {controller.state.player_score} - {controller.state.opponent_score}\n")
        controller.scheduler.advance(RESET_DELAY)

    controller.shutdown()
    print_scoreboard(controller.state, controller.settings)


def cmd_stats(args):
    controller = _load_controller(args)
    print_scoreboard(controller.state, controller.settings)


def cmd_history(args):
    controller = _load_controller(args)
    print_history(controller.state, controller.settings)


def cmd_share(args):
    controller = _load_controller(args)
    print()
    print(share_text(controller.state))
    print()


def cmd_reset(args):
    controller = _load_controller(args)
    controller.reset_game()
    print("  ✓ Scores, streaks and round counter reset (wins and badges kept).")


def cmd_export(args):
    controller = _load_controller(args)
    fmt = args.format.lower()
    if fmt == "json":
        export_json(controller.state, args.output)
    elif fmt == "csv":
        export_csv(controller.state, args.output)
    else:
        print(f"  ✗ Unknown export format: {fmt}. Use 'json' or 'csv'.")


def cmd_web(args):
    from .web import main as web_main
    web_main(state_path=args.state, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rps_arcade",
        description="🎮 Rock-Paper-Scissors Arcade",
    )
    parser.add_argument("--state", default=str(default_state_path()),
                        help="Saved game file (default: $RPS_ARCADE_STATE or ~/.rps_arcade/state.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command")

    play = subparsers.add_parser("play", help="Play in the terminal")
    play.add_argument("--mode", choices=[GameMode.AI.value, GameMode.MULTIPLAYER.value],
                      default=GameMode.AI.value, help="Opponent (default: ai)")
    play.add_argument("--ai", choices=["smart", "random"], help="Computer strategy (default: saved setting)")
    play.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility")
    play.set_defaults(func=cmd_play)

    subparsers.add_parser("stats", help="Show scores, streaks and badges").set_defaults(func=cmd_stats)
    subparsers.add_parser("history", help="Show the last rounds").set_defaults(func=cmd_history)
    subparsers.add_parser("share", help="Print the shareable score summary").set_defaults(func=cmd_share)
    subparsers.add_parser("reset", help="Start a new match").set_defaults(func=cmd_reset)

    exp = subparsers.add_parser("export", help="Export totals and history")
    exp.add_argument("--format", choices=["json", "csv"], default="json", help="Export format")
    exp.add_argument("--output", required=True, help="Export file path")
    exp.set_defaults(func=cmd_export)

    web = subparsers.add_parser("web", help="Serve the JSON API for a browser front end")
    web.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    web.set_defaults(func=cmd_web)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if getattr(args, "func", None) is None:
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
