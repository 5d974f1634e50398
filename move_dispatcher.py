# move_dispatcher.py — choose a move, submit it, retry when lichess refuses it
import random
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from bot_log import log, log_exc
from feed_frames import Clocks
from opening_repertoire import book_candidates
from uci_engine import Evaluation, NO_EVALUATION

ACK_ERROR = re.compile(r"error", re.IGNORECASE)


class MoveOrigin(Enum):
    BOOK = "opening-book"
    ENGINE = "engine"


@dataclass(frozen=True)
class MoveDecision:
    move: str
    origin: MoveOrigin
    ponder: Optional[str] = None
    evaluation: Evaluation = NO_EVALUATION


class MoveDispatcher:
    """
    Turns a position into a submitted move.

    The first one or two plies come from the opening repertoire, everything
    else from the engine. A move the server refuses is decided and submitted
    again, at most `max_retries` more times and only while the game is still
    the one we are playing.
    """

    def __init__(
        self,
        api,
        engine,
        still_playing: Callable[[str], bool] = lambda _gid: True,
        max_retries: int = 10,
        retry_delay: float = 0.5,
        ponder: bool = True,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api = api
        self.engine = engine
        self.still_playing = still_playing
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.ponder_enabled = ponder
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.ponder_thread: Optional[threading.Thread] = None

    def decide(self, game_id: str, clocks: Clocks, moves: Sequence[str]) -> MoveDecision:
        book = book_candidates(moves)
        if book:
            return MoveDecision(move=self.rng.choice(book), origin=MoveOrigin.BOOK)

        log(f"Engine thinking on {len(moves)} plies", "🤔", gid=game_id)
        res = self.engine.search(list(moves), clocks)
        return MoveDecision(
            move=res.best,
            origin=MoveOrigin.ENGINE,
            ponder=res.ponder,
            evaluation=res.evaluation or NO_EVALUATION,
        )

    def submit(self, game_id: str, decision: MoveDecision) -> bool:
        ack = self.api.make_move(game_id, decision.move) or ""
        if ACK_ERROR.search(ack):
            log(f"Move {decision.move} refused: {ack.strip()[:200]}", "❌", gid=game_id)
            return False
        ev = decision.evaluation
        log(
            f"Played {decision.move} ({decision.origin.value}) "
            f"[eval {ev.unit} {ev.value if ev.value is not None else 'none'} | ponder {decision.ponder or '-'}]",
            "♟️", gid=game_id,
        )
        return True

    def play(self, game_id: str, clocks: Clocks, moves: Sequence[str]) -> Optional[MoveDecision]:
        """Decide and submit; returns the accepted decision, or None if we gave up."""
        attempts = 1 + max(0, self.max_retries)
        for attempt in range(1, attempts + 1):
            decision = self.decide(game_id, clocks, moves)
            if self.submit(game_id, decision):
                self._maybe_ponder(game_id, moves, decision)
                return decision
            if attempt == attempts:
                break
            if not self.still_playing(game_id):
                log("Game no longer active; not retrying the move.", "🛑", gid=game_id)
                return None
            log(f"Re-deciding move (retry {attempt}/{self.max_retries})", "🔁", gid=game_id)
            if self.retry_delay > 0:
                self._sleep(self.retry_delay)
        log(f"Giving up on this turn after {attempts} refused submissions.", "🧯", gid=game_id)
        return None

    # ---------- pondering ----------

    def _maybe_ponder(self, game_id: str, moves: Sequence[str], decision: MoveDecision):
        if not self.ponder_enabled or decision.origin is not MoveOrigin.ENGINE or not decision.ponder:
            return
        line = list(moves) + [decision.move, decision.ponder]
        t = threading.Thread(target=self._ponder, args=(game_id, line), name=f"ponder-{game_id}", daemon=True)
        self.ponder_thread = t
        t.start()

    def _ponder(self, game_id: str, line):
        try:
            self.engine.ponder(line)
        except Exception as e:
            log_exc("ponder", e, gid=game_id)
