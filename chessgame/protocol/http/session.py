from __future__ import annotations

import threading
import uuid
from typing import Dict, Optional

from ...engine.game import Game
from ...engine.puzzle import PuzzleSession


class GameSessionStore:
    """Thread-safe in-memory map of game id to ``Game``.

    Ids are UUID4 strings. Each id also owns a lock that callers hold while
    they read or mutate that game's board, so a move played from a worker
    thread never interleaves with one played from a request handler.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self._game_locks: Dict[str, threading.RLock] = {}

    def create(self, game: Optional[Game] = None) -> str:
        game_id = str(uuid.uuid4())
        with self._lock:
            self._games[game_id] = game if game is not None else Game.new()
            self._game_locks[game_id] = threading.RLock()
        return game_id

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def lock(self, game_id: str) -> threading.RLock:
        """Per-game lock; it survives ``replace``.

        Raises:
            KeyError: If ``game_id`` is unknown.
        """
        with self._lock:
            return self._game_locks[game_id]

    def replace(self, game_id: str, game: Game) -> None:
        """Swap the game behind an existing id.

        Raises:
            KeyError: If ``game_id`` is unknown.
        """
        with self._lock:
            if game_id not in self._games:
                raise KeyError(game_id)
            self._games[game_id] = game

    def delete(self, game_id: str) -> bool:
        with self._lock:
            self._game_locks.pop(game_id, None)
            return self._games.pop(game_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)


class PuzzleSessionStore:
    """In-memory map of session id to ``PuzzleSession``."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, PuzzleSession] = {}

    def create(self, session: PuzzleSession) -> str:
        session_id = str(uuid.uuid4())
        with self._lock:
            self._sessions[session_id] = session
        return session_id

    def get(self, session_id: str) -> Optional[PuzzleSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
