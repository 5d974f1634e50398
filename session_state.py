# session_state.py — the one "which game are we playing" cell
import threading
import time
from typing import Callable, Optional


class SessionState:
    """
    Holds at most one active game id for the whole process.

    The event consumer claims and releases; everybody else only reads or
    asks for a release of the id they saw. Nothing is persisted, so a
    restart always begins with no active game.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._active: Optional[str] = None
        self._idle_since: Optional[float] = clock()

    def active(self) -> Optional[str]:
        with self._lock:
            return self._active

    def is_active(self, game_id: str) -> bool:
        with self._lock:
            return self._active is not None and self._active == game_id

    def claim(self, game_id: str) -> bool:
        """Mark game_id as active if nothing is; return True if we claimed it."""
        if not game_id:
            return False
        with self._lock:
            if self._active is not None:
                return False
            self._active = game_id
            self._idle_since = None
            return True

    def release(self, game_id: str) -> bool:
        """Clear the active game, but only if it is game_id."""
        with self._lock:
            if self._active is None or self._active != game_id:
                return False
            self._active = None
            self._idle_since = self._clock()
            return True

    def idle_for(self, now: Optional[float] = None) -> float:
        """Seconds since the last game ended (or since start); 0 while playing."""
        with self._lock:
            if self._idle_since is None:
                return 0.0
            now = self._clock() if now is None else now
            return max(0.0, now - self._idle_since)
