from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

BEST_SCORE_KEY = "bestScore"
GAME_STATE_KEY = "gameState"
DEFAULT_SLOT = "default"


class Storage(Protocol):
    def get_best_score(self) -> int: ...
    def set_best_score(self, score: int) -> None: ...
    def get_game_state(self) -> Optional[Dict[str, Any]]: ...
    def set_game_state(self, state: Dict[str, Any]) -> None: ...
    def clear_game_state(self) -> None: ...


class MemoryStorage:
    """
    In-process store; also the fallback when the real store is unusable.
    Stores handed the same data dict share it the way SqliteStorage slots share a file.
    """

    def __init__(
        self,
        slot: str = DEFAULT_SLOT,
        best_slot: str = DEFAULT_SLOT,
        data: Optional[Dict[Tuple[str, str], str]] = None,
    ) -> None:
        self.slot = slot
        self.best_slot = best_slot
        self._data: Dict[Tuple[str, str], str] = {} if data is None else data

    def get_best_score(self) -> int:
        return _parse_score(self._data.get((self.best_slot, BEST_SCORE_KEY)))

    def set_best_score(self, score: int) -> None:
        self._data[(self.best_slot, BEST_SCORE_KEY)] = str(int(score))

    def get_game_state(self) -> Optional[Dict[str, Any]]:
        raw = self._data.get((self.slot, GAME_STATE_KEY))
        return json.loads(raw) if raw else None

    def set_game_state(self, state: Dict[str, Any]) -> None:
        self._data[(self.slot, GAME_STATE_KEY)] = json.dumps(state)

    def clear_game_state(self) -> None:
        self._data.pop((self.slot, GAME_STATE_KEY), None)


def _parse_score(raw: Optional[str]) -> int:
    if not raw:
        return 0
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


def _ensure_db_dir(db_path: str) -> None:
    """Ensures the directory for the SQLite DB exists before connecting."""
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def _resolve_db_path(db_path: str) -> str:
    """Resolves a potentially unwritable DB path to a writable one, creating the directory if needed."""
    try:
        _ensure_db_dir(db_path)
        return db_path
    except PermissionError:
        pass
    candidates = [
        os.getenv('TILEMERGE_DB_DIR'),
        os.path.join(os.getcwd(), 'data'),
        '/tmp',
    ]
    base = os.path.basename(db_path) or 'tilemerge.db'
    for d in candidates:
        if not d:
            continue
        try:
            os.makedirs(d, exist_ok=True)
            resolved = os.path.join(d, base)
            logger.warning("db path %s not writable, using %s", db_path, resolved)
            return resolved
        except OSError:
            continue
    return base


def _ensure_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            slot TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (slot, key)
        )
        """
    )
    conn.commit()


class SqliteStorage:
    """
    Key/value persistence in a single SQLite table.
    Several games can share one file by using different slots; the best score
    lives in best_slot so every game sees the same record.
    """

    def __init__(self, db_path: str, slot: str = DEFAULT_SLOT, best_slot: str = DEFAULT_SLOT):
        self.db_path = _resolve_db_path(db_path)
        self.slot = slot
        self.best_slot = best_slot

    def _connect(self) -> sqlite3.Connection:
        _ensure_db_dir(self.db_path)
        conn = sqlite3.connect(self.db_path)
        _ensure_db(conn)
        return conn

    def _get(self, slot: str, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE slot = ? AND key = ?", (slot, key)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def _set(self, slot: str, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv (slot, key, value, updated_at) VALUES (?, ?, ?, ?)",
                (slot, key, value, datetime.now(timezone.utc).isoformat(timespec='seconds')),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE slot = ? AND key = ?", (self.slot, key))
            conn.commit()
        finally:
            conn.close()

    def get_best_score(self) -> int:
        return _parse_score(self._get(self.best_slot, BEST_SCORE_KEY))

    def set_best_score(self, score: int) -> None:
        self._set(self.best_slot, BEST_SCORE_KEY, str(int(score)))

    def get_game_state(self) -> Optional[Dict[str, Any]]:
        raw = self._get(self.slot, GAME_STATE_KEY)
        return json.loads(raw) if raw else None

    def set_game_state(self, state: Dict[str, Any]) -> None:
        self._set(self.slot, GAME_STATE_KEY, json.dumps(state))

    def clear_game_state(self) -> None:
        self._delete(GAME_STATE_KEY)


class FallbackStorage:
    """
    Wraps a primary store and switches to memory on the first failure,
    so a broken disk or database never takes the game down with it.
    """

    _ERRORS = (sqlite3.Error, OSError)

    def __init__(self, primary: Storage):
        self.primary: Storage = primary
        self.fallback: Optional[MemoryStorage] = None

    @property
    def degraded(self) -> bool:
        return self.fallback is not None

    def _store(self) -> Storage:
        return self.fallback if self.fallback is not None else self.primary

    def _fail(self, op: str, err: Exception) -> MemoryStorage:
        logger.warning("storage %s failed (%s); continuing with in-memory storage", op, err)
        self.fallback = MemoryStorage()
        return self.fallback

    def get_best_score(self) -> int:
        try:
            return self._store().get_best_score()
        except self._ERRORS as e:
            return self._fail("get_best_score", e).get_best_score()

    def set_best_score(self, score: int) -> None:
        try:
            self._store().set_best_score(score)
        except self._ERRORS as e:
            self._fail("set_best_score", e).set_best_score(score)

    def get_game_state(self) -> Optional[Dict[str, Any]]:
        try:
            return self._store().get_game_state()
        except self._ERRORS as e:
            return self._fail("get_game_state", e).get_game_state()

    def set_game_state(self, state: Dict[str, Any]) -> None:
        try:
            self._store().set_game_state(state)
        except self._ERRORS as e:
            self._fail("set_game_state", e).set_game_state(state)

    def clear_game_state(self) -> None:
        try:
            self._store().clear_game_state()
        except self._ERRORS as e:
            self._fail("clear_game_state", e).clear_game_state()


def open_storage(
    db_path: Optional[str],
    slot: str = DEFAULT_SLOT,
    best_slot: str = DEFAULT_SLOT,
    memory: Optional[Dict[Tuple[str, str], str]] = None,
) -> Storage:
    """
    SQLite store guarded by a memory fallback, or plain memory when no path is given.
    Pass the same memory dict to let in-memory games share a best score.
    """
    if not db_path:
        return MemoryStorage(slot=slot, best_slot=best_slot, data=memory)
    try:
        return FallbackStorage(SqliteStorage(db_path, slot=slot, best_slot=best_slot))
    except OSError as e:
        logger.warning("cannot open %s (%s); using in-memory storage", db_path, e)
        return MemoryStorage(slot=slot, best_slot=best_slot, data=memory)
