from __future__ import annotations

import os
import random
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request

from game import (
    CommandError,
    FrameRenderer,
    GameConfig,
    GameSession,
    Move,
    command_from_json,
    direction_from_swipe,
    open_storage,
)

SESSIONS_KEY = "tilemerge.sessions"

Entry = Tuple[GameSession, FrameRenderer]


class SessionRegistry:
    """
    Running games keyed by id, least recently used first.
    Games past capacity are evicted and their saved state is cleared.
    Callers hold `lock` while they touch a session.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.lock = threading.RLock()
        # In-memory games share this dict so the best score carries across games.
        self.memory: Dict[Tuple[str, str], str] = {}
        self._games: OrderedDict[str, Entry] = OrderedDict()

    def __len__(self) -> int:
        with self.lock:
            return len(self._games)

    def __getitem__(self, game_id: str) -> Entry:
        with self.lock:
            return self._games[game_id]

    def add(self, game_id: str, entry: Entry) -> None:
        with self.lock:
            self._games[game_id] = entry
            self._games.move_to_end(game_id)
            while len(self._games) > self.capacity:
                old_id, (old_session, _) = self._games.popitem(last=False)
                old_session.storage.clear_game_state()
                current_app.logger.info("evicted game %s", old_id)

    def get(self, game_id: str) -> Optional[Entry]:
        with self.lock:
            entry = self._games.get(game_id)
            if entry is not None:
                self._games.move_to_end(game_id)
            return entry

    def end(self, game_id: str) -> bool:
        with self.lock:
            entry = self._games.pop(game_id, None)
            if entry is None:
                return False
            entry[0].storage.clear_game_state()
            return True


def create_app(config: Optional[GameConfig] = None) -> Flask:
    """Builds the JSON API. Each app owns its own registry of running games."""
    app = Flask(__name__)
    app.config["TILEMERGE"] = config or GameConfig.from_env()
    app.extensions[SESSIONS_KEY] = SessionRegistry(app.config["TILEMERGE"].max_games)
    _register_routes(app)
    return app


def _sessions() -> SessionRegistry:
    return current_app.extensions[SESSIONS_KEY]


def _frame(renderer: FrameRenderer, session: GameSession) -> Dict[str, Any]:
    if renderer.frame is None:
        session.actuate()
    frame = renderer.frame
    if frame is None:
        raise RuntimeError("renderer produced no frame")
    return frame


def _lookup(body: Dict[str, Any]) -> Tuple[Optional[Entry], Any]:
    game_id = body.get("game")
    if not isinstance(game_id, str) or not game_id:
        return None, (jsonify({"ok": False, "error": "game required"}), 400)
    entry = _sessions().get(game_id)
    if entry is None:
        return None, (jsonify({"ok": False, "error": f"unknown game {game_id}"}), 404)
    return entry, None


def _register_routes(app: Flask) -> None:

    @app.get("/api/health")
    def api_health() -> Any:
        return jsonify({"ok": True, "games": len(_sessions())})

    @app.post("/api/new")
    def api_new() -> Any:
        body = request.get_json(force=True, silent=True) or {}
        seed = body.get("seed", None)
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            return jsonify({"ok": False, "error": "seed must be an integer"}), 400
        config: GameConfig = current_app.config["TILEMERGE"]
        registry = _sessions()
        game_id = uuid.uuid4().hex
        renderer = FrameRenderer()
        with registry.lock:
            session = GameSession(
                config=config,
                storage=open_storage(config.db_path, slot=game_id, memory=registry.memory),
                renderer=renderer,
                rng=random.Random(seed),
            )
            registry.add(game_id, (session, renderer))
            frame = _frame(renderer, session)
        current_app.logger.info("new game %s (seed=%s)", game_id, seed)
        return jsonify({"ok": True, "game": game_id, "frame": frame})

    @app.post("/api/state")
    def api_state() -> Any:
        body = request.get_json(force=True, silent=True) or {}
        entry, error = _lookup(body)
        if entry is None:
            return error
        session, renderer = entry
        with _sessions().lock:
            return jsonify({"ok": True, "frame": _frame(renderer, session)})

    @app.post("/api/command")
    def api_command() -> Any:
        body = request.get_json(force=True, silent=True) or {}
        entry, error = _lookup(body)
        if entry is None:
            return error
        session, renderer = entry
        raw = body.get("command")
        try:
            if isinstance(raw, dict) and raw.get("type") == "swipe":
                direction = direction_from_swipe(float(raw.get("dx", 0)), float(raw.get("dy", 0)))
                command = Move(direction) if direction is not None else None
            else:
                command = command_from_json(raw)
        except (CommandError, TypeError, ValueError) as e:
            return jsonify({"ok": False, "error": f"bad command: {e}"}), 400
        with _sessions().lock:
            changed = session.dispatch(command) if command is not None else False
            return jsonify({"ok": True, "changed": changed, "frame": _frame(renderer, session)})

    @app.post("/api/tick")
    def api_tick() -> Any:
        body = request.get_json(force=True, silent=True) or {}
        entry, error = _lookup(body)
        if entry is None:
            return error
        session, renderer = entry
        try:
            seconds = float(body.get("seconds", 0.0))
        except (TypeError, ValueError):
            return jsonify({"ok": False, "error": "seconds must be a number"}), 400
        with _sessions().lock:
            changed = session.advance(seconds)
            return jsonify({"ok": True, "changed": changed, "frame": _frame(renderer, session)})

    @app.post("/api/end")
    def api_end() -> Any:
        body = request.get_json(force=True, silent=True) or {}
        entry, error = _lookup(body)
        if entry is None:
            return error
        _sessions().end(body["game"])
        return jsonify({"ok": True})


app = create_app()


# Entrypoint for "python app.py"
if __name__ == "__main__":
    debug = os.getenv("FLASK_DEBUG", os.getenv("DEBUG", "0")).lower() in ("1", "true", "yes", "on")
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")), debug=debug)
