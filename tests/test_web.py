import pytest

from conftest import ScriptedRandom

from rps_arcade.config import RESET_DELAY
from rps_arcade.controller import GameController
from rps_arcade.engine import Move
from rps_arcade.timers import ManualScheduler
from rps_arcade.web import _sse_event, create_app


@pytest.fixture
def controller():
    return GameController(
        scheduler=ManualScheduler(),
        rng=ScriptedRandom(*([Move.SCISSORS] * 20)),
        clock=lambda: "2024-01-01T12:00:00",
    )


@pytest.fixture
def client(controller):
    app = create_app(controller)
    app.config["TESTING"] = True
    return app.test_client()


def test_state_endpoint(client):
    data = client.get("/api/state").get_json()
    assert data["state"]["round"] == 1
    assert data["state"]["phase"] == "awaiting"


def test_choose_and_play(client, controller):
    resp = client.post("/api/choice", json={"move": "rock"})
    assert resp.get_json()["accepted"] is True

    data = client.post("/api/play").get_json()
    assert data["played"] is True
    assert data["round"]["outcome"] == "win"
    assert data["description"] == "Rock beats scissors"
    assert data["state"]["wins"] == 1

    # Nothing selected for the next round yet
    controller.scheduler.advance(RESET_DELAY)
    assert client.post("/api/play").get_json()["played"] is False


def test_bad_move_is_a_400(client):
    resp = client.post("/api/choice", json={"move": "lizard"})
    assert resp.status_code == 400
    assert "Invalid move" in resp.get_json()["error"]

    resp = client.post("/api/choice", json={"side": "spectator", "move": "rock"})
    assert resp.status_code == 400


def test_non_object_bodies_are_a_400(client):
    resp = client.post("/api/settings", json=["theme"])
    assert resp.status_code == 400
    assert "JSON object" in resp.get_json()["error"]

    resp = client.post("/api/choice", json="rock")
    assert resp.status_code == 400


def test_settings(client):
    resp = client.post("/api/settings", json={"game_mode": "multiplayer", "player2_name": "Kim"})
    state = resp.get_json()["state"]
    assert state["game_mode"] == "multiplayer"
    assert state["player2_name"] == "Kim"

    assert client.post("/api/settings", json={"ai_mode": "genius"}).status_code == 400
    assert client.post("/api/settings", json={"volume": 11}).status_code == 400


def test_multiplayer_over_http(client):
    client.post("/api/settings", json={"game_mode": "multiplayer"})
    client.post("/api/choice", json={"side": "player2", "move": "paper"})
    data = client.post("/api/choice", json={"side": "player", "move": "scissors"}).get_json()
    assert data["state"]["wins"] == 1
    assert data["state"]["history"][0]["is_multiplayer"] is True


def test_timer_start(client, controller):
    client.post("/api/settings", json={"game_mode": "timed"})
    assert client.post("/api/timer/start").get_json()["started"] is True
    assert client.post("/api/timer/start").get_json()["started"] is False
    controller.scheduler.advance(3)
    assert client.get("/api/state").get_json()["state"]["draws"] == 1


def test_history_stats_share_reset(client):
    client.post("/api/choice", json={"move": "rock"})
    client.post("/api/play")

    history = client.get("/api/history").get_json()["history"]
    assert history[0]["description"] == "Round 1: You rock vs Computer scissors - You Won"

    stats = client.get("/api/stats").get_json()
    assert stats["win_rate"] == 100
    assert stats["player_streak_label"] == "No Streak"
    assert stats["combo"] is None

    assert "Wins: 1" in client.get("/api/share").get_json()["text"]

    state = client.post("/api/reset").get_json()["state"]
    assert state["player_score"] == 0
    assert state["wins"] == 1


def test_sse_event_format():
    assert _sse_event({"a": 1}, event="round_result") == 'event: round_result\ndata: {"a": 1}\n\n'
