# uci_engine.py — the search engine behind the bot, driven through python-chess
import os
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

import chess
import chess.engine

from bot_log import log
from feed_frames import Clocks

FALLBACK_MOVETIME = 1.0  # seconds


@dataclass(frozen=True)
class Evaluation:
    unit: str = "none"          # cp | mate | none
    value: Optional[int] = None


NO_EVALUATION = Evaluation()


@dataclass(frozen=True)
class SearchResult:
    best: str
    ponder: Optional[str] = None
    evaluation: Evaluation = NO_EVALUATION


def board_from_moves(moves: Sequence[str]) -> chess.Board:
    """Replay UCI moves from the start position; ValueError on an illegal one."""
    board = chess.Board()
    for mv in moves:
        board.push_uci(mv)
    return board


def _seconds(ms: Optional[int]) -> Optional[float]:
    return None if ms is None else max(0.0, ms / 1000.0)


def evaluation_from_info(info: dict) -> Evaluation:
    score = info.get("score")
    if score is None:
        return NO_EVALUATION
    rel = score.relative
    if rel.is_mate():
        return Evaluation("mate", rel.mate())
    return Evaluation("cp", rel.score())


class UciEngine:
    """
    One UCI engine process, one search at a time.

    `search` blocks until a best move is known. `ponder` starts a time-limited
    analysis and returns at once; the next `search` cancels it.
    """

    def __init__(self, path: str, threads: int = 1, hash_mb: int = 256,
                 move_overhead_ms: int = 60, ponder_time: float = 2.0):
        self.path = path
        self.threads = threads
        self.hash_mb = hash_mb
        self.move_overhead_ms = move_overhead_ms
        self.ponder_time = ponder_time
        self._engine: Optional[chess.engine.SimpleEngine] = None
        self._pondering = None
        self._lock = threading.Lock()

    # --------- process ---------

    def _spawn(self) -> chess.engine.SimpleEngine:
        eng = chess.engine.SimpleEngine.popen_uci(self.path)
        self._engine = eng
        self._apply_options()
        print(
            "[UCI] engine="
            f"{os.path.basename(self.path)} | Threads={self.threads} | "
            f"Hash={self.hash_mb} MB | Overhead={self.move_overhead_ms} ms"
        )
        return eng

    def _ensure(self) -> chess.engine.SimpleEngine:
        return self._engine if self._engine is not None else self._spawn()

    def _set_opt(self, name: str, val) -> bool:
        """Set a UCI option if the engine advertises it."""
        if name not in self._engine.options:
            return False
        self._engine.configure({name: val})
        return True

    def _apply_options(self):
        hash_mb = self.hash_mb
        opt = self._engine.options.get("Hash")
        if opt is not None and opt.max is not None:
            hash_mb = min(hash_mb, int(opt.max))
        self._set_opt("Threads", self.threads)
        self._set_opt("Hash", hash_mb)
        self._set_opt("Move Overhead", self.move_overhead_ms)

    def _stop_pondering(self):
        if self._pondering is None:
            return
        try:
            self._pondering.stop()
        finally:
            self._pondering = None

    def _drop_dead_engine(self):
        eng, self._engine = self._engine, None
        self._pondering = None
        if eng is not None:
            try:
                eng.close()
            except chess.engine.EngineError:
                pass

    # --------- searches ---------

    def search(self, moves: Sequence[str], clocks: Clocks) -> SearchResult:
        board = board_from_moves(moves)
        if clocks.wtime is None and clocks.btime is None:
            # untimed position: without a clock the engine would search forever
            limit = chess.engine.Limit(time=FALLBACK_MOVETIME)
        else:
            limit = chess.engine.Limit(
                white_clock=_seconds(clocks.wtime),
                black_clock=_seconds(clocks.btime),
                white_inc=_seconds(clocks.winc),
                black_inc=_seconds(clocks.binc),
            )
        with self._lock:
            try:
                self._ensure()
                self._stop_pondering()
                self._apply_options()
                result = self._engine.play(board, limit, info=chess.engine.INFO_SCORE)
            except chess.engine.EngineTerminatedError:
                # respawned on the next search
                self._drop_dead_engine()
                raise
        if result.move is None:
            raise chess.engine.EngineError(f"engine returned no move for {board.fen()}")
        return SearchResult(
            best=result.move.uci(),
            ponder=result.ponder.uci() if result.ponder else None,
            evaluation=evaluation_from_info(result.info or {}),
        )

    def ponder(self, moves: Sequence[str]) -> None:
        board = board_from_moves(moves)
        if board.is_game_over():
            return
        with self._lock:
            try:
                self._ensure()
                self._stop_pondering()
                self._pondering = self._engine.analysis(board, chess.engine.Limit(time=self.ponder_time))
            except chess.engine.EngineTerminatedError:
                self._drop_dead_engine()
                raise
        log(f"Pondering on {' '.join(moves[-2:])}", "💭")

    def quit(self):
        with self._lock:
            if self._engine is None:
                return
            try:
                self._stop_pondering()
                self._engine.quit()
            except chess.engine.EngineError:
                pass
            finally:
                self._engine = None
