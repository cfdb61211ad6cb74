import pytest

from conftest import Recorder

from rps_arcade.config import RESET_DELAY, AiMode, GameMode
from rps_arcade.controller import Phase, Side
from rps_arcade.engine import Move, Outcome
from rps_arcade.errors import ConfigError, InvalidMoveError
from rps_arcade.events import AchievementUnlocked, ComboBonus, RoundResult, TimerExpired, TimerTick
from rps_arcade.persistence import GamePersistence, MemoryStore
from rps_arcade.predictor import RandomPredictor, SmartPredictor
from rps_arcade.state import Achievement
from rps_arcade.timers import ThreadScheduler

R, P, S = Move.ROCK, Move.PAPER, Move.SCISSORS


def test_first_round_against_seeded_random_computer(make_controller):
    controller = make_controller(S)
    controller.set_ai_mode("random")
    events = Recorder(controller.events)

    assert controller.submit_choice(Side.PLAYER, R)
    record = controller.play_round()

    assert record.outcome is Outcome.WIN
    assert record.round == 1
    state = controller.state
    assert (state.player_score, state.wins, state.player_streak, state.round) == (1, 1, 1, 2)
    assert len(state.history) == 1
    assert events.of(RoundResult) == [RoundResult(Outcome.WIN, R, S, False)]


def test_play_round_without_a_move_is_ignored(make_controller):
    controller = make_controller()
    assert controller.play_round() is None
    assert controller.state.round == 1


def test_choices_reset_after_delay(make_controller, scheduler):
    controller = make_controller(P)
    controller.submit_choice(Side.PLAYER, "rock")
    controller.play_round()
    assert controller.phase is Phase.RESOLVED
    assert controller.opponent_choice is P

    # Input is ignored while the result is on screen
    assert not controller.submit_choice(Side.PLAYER, "paper")
    assert controller.play_round() is None

    scheduler.advance(RESET_DELAY)
    assert controller.phase is Phase.AWAITING
    assert controller.player_choice is None
    assert controller.opponent_choice is None


def test_smart_mode_feeds_the_predictor(make_controller, scheduler):
    controller = make_controller(S, S, S)
    for _ in range(3):
        controller.submit_choice(Side.PLAYER, R)
        controller.play_round()
        scheduler.advance(RESET_DELAY)
    assert controller.predictor.history.to_list() == [R, R, R]

    controller.submit_choice(Side.PLAYER, R)
    record = controller.play_round()
    assert record.opponent_move is P
    assert record.outcome is Outcome.LOSE


def test_random_mode_does_not_record_moves(make_controller):
    controller = make_controller(S)
    controller.set_ai_mode(AiMode.RANDOM)
    controller.submit_choice(Side.PLAYER, R)
    controller.play_round()
    assert len(controller.predictor.history) == 0


def test_switching_ai_mode_keeps_history(make_controller, scheduler):
    controller = make_controller()
    for _ in range(2):
        controller.submit_choice(Side.PLAYER, P)
        controller.play_round()
        scheduler.advance(RESET_DELAY)
    controller.set_ai_mode("random")
    assert isinstance(controller.predictor, RandomPredictor)
    controller.set_ai_mode("smart")
    assert isinstance(controller.predictor, SmartPredictor)
    assert controller.predictor.history.to_list() == [P, P]


def test_combo_and_achievement_events(make_controller, scheduler):
    controller = make_controller(*([S] * 10))
    controller.set_ai_mode("random")
    events = Recorder(controller.events)
    for _ in range(10):
        controller.submit_choice(Side.PLAYER, R)
        controller.play_round()
        scheduler.advance(RESET_DELAY)

    assert events.of(ComboBonus) == [ComboBonus(5), ComboBonus(10)]
    assert events.of(AchievementUnlocked) == [AchievementUnlocked("beginner_warrior")]
    assert controller.state.achievements == {Achievement.BEGINNER_WARRIOR}
    assert controller.state.player_score == 12


def test_invalid_move_raises(make_controller):
    controller = make_controller()
    with pytest.raises(InvalidMoveError):
        controller.submit_choice(Side.PLAYER, "lizard")


# ---------------------------------------------------------------------------
# Multiplayer
# ---------------------------------------------------------------------------

def test_multiplayer_resolves_when_both_players_chose(make_controller, scheduler):
    controller = make_controller()
    controller.set_game_mode("multiplayer")
    events = Recorder(controller.events)

    controller.submit_choice(Side.PLAYER2, P)
    assert controller.state.round == 1
    controller.submit_choice(Side.PLAYER, R)

    [result] = events.of(RoundResult)
    assert result == RoundResult(Outcome.LOSE, R, P, True)
    state = controller.state
    assert (state.opponent_score, state.losses, state.opponent_streak) == (1, 1, 1)
    assert state.history[0].is_multiplayer

    scheduler.advance(RESET_DELAY)
    assert controller.player_choice is None
    assert controller.player2_choice is None


def test_player2_ignored_outside_multiplayer(make_controller):
    controller = make_controller()
    assert not controller.submit_choice(Side.PLAYER2, R)
    assert controller.player2_choice is None


def test_play_round_ignored_in_multiplayer(make_controller):
    controller = make_controller()
    controller.set_game_mode(GameMode.MULTIPLAYER)
    controller.submit_choice(Side.PLAYER, R)
    assert controller.play_round() is None
    assert controller.play_multiplayer_round() is None


# ---------------------------------------------------------------------------
# Timed mode
# ---------------------------------------------------------------------------

def test_timer_expiry_without_move_is_an_automatic_draw(make_controller, scheduler):
    controller = make_controller()
    controller.set_game_mode("timed")
    controller.state.player_streak = 2
    events = Recorder(controller.events)

    assert controller.start_timer()
    assert not controller.input_enabled
    scheduler.advance(2)
    assert [t.seconds_remaining for t in events.of(TimerTick)] == [3, 2, 1]
    assert controller.state.draws == 0

    scheduler.advance(1)
    assert events.of(TimerExpired) == [TimerExpired()]
    assert events.of(RoundResult) == [RoundResult(Outcome.DRAW, None, None, False)]
    state = controller.state
    assert (state.draws, state.round, state.player_streak) == (1, 2, 2)
    assert state.history[0].player_move is None
    assert controller.input_enabled
    assert not controller.timer_active


def test_timer_expiry_with_move_plays_the_round(make_controller, scheduler):
    controller = make_controller(S)
    controller.set_game_mode("timed")
    controller.start_timer()
    controller.submit_choice(Side.PLAYER, R)
    scheduler.advance(3)
    assert controller.state.wins == 1
    assert controller.state.draws == 0
    assert controller.state.rounds_played == 1


def test_playing_early_stops_the_countdown(make_controller, scheduler):
    controller = make_controller(R)
    controller.set_game_mode("timed")
    controller.start_timer()
    controller.submit_choice(Side.PLAYER, P)
    controller.play_round()
    assert not controller.timer_active
    scheduler.advance(10)
    assert controller.state.rounds_played == 1


def test_second_timer_is_rejected(make_controller, scheduler):
    controller = make_controller()
    controller.set_game_mode("timed")
    events = Recorder(controller.events)
    assert controller.start_timer()
    scheduler.advance(1)
    assert not controller.start_timer()
    scheduler.advance(5)
    assert controller.state.draws == 1
    assert len(events.of(TimerExpired)) == 1


def test_abort_resolves_once_if_it_beats_the_last_tick(make_controller):
    controller = make_controller()
    controller.set_game_mode("timed")
    controller.start_timer()
    # Simulate a real clock firing the abort before the final tick
    controller._on_abort()
    controller._on_tick()
    assert controller.state.draws == 1
    assert controller.input_enabled


def test_start_timer_ignored_outside_timed_mode(make_controller):
    controller = make_controller()
    assert not controller.start_timer()


def test_choices_are_accepted_while_play_is_disabled(make_controller, scheduler):
    controller = make_controller()
    controller.set_game_mode("timed")
    controller.start_timer()
    assert controller.snapshot()["input_enabled"] is False
    assert controller.submit_choice(Side.PLAYER, R)
    assert controller.player_choice is R
    scheduler.advance(3)
    assert controller.state.rounds_played == 1
    assert controller.snapshot()["input_enabled"] is True


def test_early_timed_rounds_leave_no_timers_behind(make_controller):
    scheduler = ThreadScheduler()
    controller = make_controller(scheduler=scheduler)
    controller.set_game_mode("timed")
    with scheduler.lock:
        for _ in range(20):
            assert controller.start_timer()
            controller.submit_choice(Side.PLAYER, R)
            assert controller.play_round() is not None
            controller.reset_choices()
        assert scheduler.pending == 0
    controller.shutdown()


# ---------------------------------------------------------------------------
# Reset, settings, persistence
# ---------------------------------------------------------------------------

def test_reset_game_keeps_lifetime_tallies(make_controller, scheduler):
    controller = make_controller(*([S] * 12))
    controller.set_ai_mode("random")
    for _ in range(12):
        controller.submit_choice(Side.PLAYER, R)
        controller.play_round()
        scheduler.advance(RESET_DELAY)
    controller.set_ai_mode("smart")
    controller.predictor.record_move(R)

    controller.reset_game()

    state = controller.state
    assert (state.player_score, state.opponent_score, state.round) == (0, 0, 1)
    assert (state.player_streak, state.opponent_streak) == (0, 0)
    assert state.wins == 12
    assert len(state.history) == 10
    assert Achievement.BEGINNER_WARRIOR in state.achievements
    assert len(controller.predictor.history) == 0


def test_reset_game_cancels_countdown(make_controller, scheduler):
    controller = make_controller()
    controller.set_game_mode("timed")
    controller.start_timer()
    controller.reset_game()
    scheduler.advance(5)
    assert controller.state.draws == 0
    assert controller.input_enabled


def test_update_settings_validates_before_applying(make_controller):
    controller = make_controller()
    with pytest.raises(ConfigError):
        controller.update_settings(theme="dark", ai_mode="psychic")
    assert controller.settings.theme == "light"

    controller.update_settings(theme="dark", player1_name="  ", game_mode="timed")
    assert controller.settings.theme == "dark"
    assert controller.settings.player1_name == "Player 1"
    assert controller.game_mode is GameMode.TIMED


def test_every_round_is_saved(make_controller):
    persistence = GamePersistence(MemoryStore())
    controller = make_controller(S, persistence=persistence)
    controller.set_ai_mode("random")
    controller.submit_choice(Side.PLAYER, R)
    controller.play_round()

    state, settings = persistence.load()
    assert state == controller.state
    assert settings.ai_mode is AiMode.RANDOM


def test_failing_listener_does_not_break_the_round(make_controller):
    controller = make_controller(S)

    def broken(event):
        raise RuntimeError("renderer crashed")

    controller.events.subscribe(RoundResult, broken)
    controller.submit_choice(Side.PLAYER, R)
    assert controller.play_round() is not None
    assert controller.state.rounds_played == 1


def test_snapshot_includes_phase_and_choices(make_controller):
    controller = make_controller()
    controller.submit_choice(Side.PLAYER, R)
    snap = controller.snapshot()
    assert snap["phase"] == "awaiting"
    assert snap["player_choice"] == "rock"
    assert snap["game_mode"] == "ai"
    assert snap["achievements"] == {
        "beginner_warrior": False, "master_player": False, "legend_mode": False,
    }
