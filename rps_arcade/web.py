"""Flask JSON API and event stream for a browser front end.

The browser renders; this module only forwards clicks to one
GameController and streams the events it emits.
"""

import json
import queue
import threading
from typing import Optional

from flask import Flask, request, jsonify, Response

from .config import default_state_path
from .controller import GameController, Side
from .errors import ConfigError, InvalidMoveError
from .events import EventBus
from .persistence import GamePersistence, JsonFileStore
from .stats import combo_label, describe_round, outcome_split, result_description, share_text, streak_label, win_rate
from .timers import ThreadScheduler


def _sse_event(data: dict, event: str = "message") -> str:
    """Format a Server-Sent Event string."""
    payload = json.dumps(data)
    return f"event: {event}\ndata: {payload}\n\n"


def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _json_object() -> Optional[dict]:
    """The request body as a dict, None if it is some other JSON value."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def build_controller(state_path=None, lock: Optional[threading.RLock] = None) -> GameController:
    """A controller saving to a JSON file and running real-time timers."""
    persistence = GamePersistence(JsonFileStore(state_path or default_state_path()))
    return GameController.from_persistence(
        persistence,
        scheduler=ThreadScheduler(lock=lock),
        events=EventBus(),
    )


def create_app(controller: Optional[GameController] = None, state_path=None) -> Flask:
    """Build the Flask app around one controller.

    Requests and timer callbacks share one lock; pass a controller whose
    scheduler uses ``app.config["GAME_LOCK"]`` or let the app build one.
    """
    app = Flask(__name__)
    lock = threading.RLock()
    if controller is None:
        controller = build_controller(state_path, lock=lock)
    elif isinstance(controller.scheduler, ThreadScheduler):
        lock = controller.scheduler.lock
    app.config["GAME_LOCK"] = lock
    app.config["GAME_CONTROLLER"] = controller

    def state_payload() -> dict:
        return {"state": controller.snapshot()}

    @app.route("/api/state")
    def api_state():
        with lock:
            return jsonify(state_payload())

    @app.route("/api/choice", methods=["POST"])
    def api_choice():
        data = _json_object()
        if data is None:
            return _error("Request body must be a JSON object")
        side = data.get("side", Side.PLAYER.value)
        try:
            side = Side(side)
        except ValueError:
            return _error(f"Unknown side: {side!r}")
        with lock:
            try:
                accepted = controller.submit_choice(side, data.get("move"))
            except InvalidMoveError as exc:
                return _error(str(exc))
            return jsonify({"accepted": accepted, **state_payload()})

    @app.route("/api/play", methods=["POST"])
    def api_play():
        with lock:
            record = controller.play_round()
            payload = {"played": record is not None, **state_payload()}
            if record is not None:
                payload["round"] = record.to_dict()
                payload["description"] = result_description(record)
            return jsonify(payload)

    @app.route("/api/timer/start", methods=["POST"])
    def api_timer_start():
        with lock:
            started = controller.start_timer()
            return jsonify({"started": started, **state_payload()})

    @app.route("/api/reset", methods=["POST"])
    def api_reset():
        with lock:
            controller.reset_game()
            return jsonify(state_payload())

    @app.route("/api/settings", methods=["POST"])
    def api_settings():
        data = _json_object()
        if data is None:
            return _error("Request body must be a JSON object")
        with lock:
            try:
                controller.update_settings(**data)
            except ConfigError as exc:
                return _error(str(exc))
            return jsonify(state_payload())

    @app.route("/api/history")
    def api_history():
        with lock:
            history = [
                {**r.to_dict(), "description": describe_round(r, controller.settings)}
                for r in controller.state.history
            ]
            return jsonify({"history": history})

    @app.route("/api/stats")
    def api_stats():
        with lock:
            state = controller.state
            return jsonify({
                "win_rate": win_rate(state),
                "outcome_split": outcome_split(state),
                "player_streak_label": streak_label(state.player_streak),
                "opponent_streak_label": streak_label(state.opponent_streak),
                "combo": combo_label(state.player_streak),
            })

    @app.route("/api/share")
    def api_share():
        with lock:
            return jsonify({"text": share_text(controller.state)})

    # -----------------------------------------------------------------------
    # SSE streaming endpoint for live game events
    # -----------------------------------------------------------------------

    @app.route("/api/events/stream")
    def api_events_stream():
        """SSE endpoint that streams core events as they happen."""

        def generate():
            event_queue = queue.Queue()
            with lock:
                unsubscribe = controller.events.subscribe(None, event_queue.put)
                initial = state_payload()
            try:
                yield _sse_event(initial, event="state")
                while True:
                    try:
                        item = event_queue.get(timeout=30)
                    except queue.Empty:
                        # Send a keepalive
                        yield ": keepalive\n\n"
                        continue
                    yield _sse_event(item.to_dict(), event=item.name)
            finally:
                with lock:
                    unsubscribe()

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
                "Connection": "keep-alive",
            },
        )

    return app


def main(state_path=None, port: int = 5000, debug: bool = False):
    app = create_app(state_path=state_path)
    print("\n🎮 RPS Arcade Web API")
    print(f"  → http://localhost:{port}/api/state\n")
    try:
        app.run(debug=debug, port=port, threaded=True)
    finally:
        app.config["GAME_CONTROLLER"].shutdown()


if __name__ == "__main__":
    main()
