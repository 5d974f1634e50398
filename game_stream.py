# game_stream.py — follow one game's feed and move when it is our turn
from typing import Callable, Optional

from bot_log import log, log_exc
from feed_frames import ChatLine, GameFull, GameState, decode_game_frame
from ndjson_stream import NdjsonStream


def is_bot_turn(move_count: int, bot_white: bool) -> bool:
    """Even number of plies played means white to move."""
    white_to_move = (move_count % 2) == 0
    return white_to_move == bot_white


class GameStreamConsumer:
    """
    Reads /api/bot/game/stream/{id}.

    The first frame (gameFull) tells us our color, kept for the life of this
    consumer. Every non-chat frame carries the whole move list, so the turn
    is recomputed from scratch each time. When the feed stalls we come back
    with a fresh consumer, but only if this game is still the active one.
    """

    def __init__(self, game_id: str, config, api, state, dispatcher,
                 relaunch: Callable[[str], None], chatter=None,
                 stream_factory=NdjsonStream):
        self.game_id = game_id
        self.config = config
        self.api = api
        self.state = state
        self.dispatcher = dispatcher
        self.relaunch = relaunch
        self.chatter = chatter
        self.stream_factory = stream_factory
        self.bot_white: Optional[bool] = None
        self.stream = None

    def start(self) -> "GameStreamConsumer":
        self.stream = self.stream_factory(
            session=self.api.session,
            url=self.api.game_stream_url(self.game_id),
            inactivity_timeout=self.config.game_stream_timeout,
            decode=decode_game_frame,
            on_frame=self.on_frame,
            on_timeout=self.on_timeout,
            name=f"game-{self.game_id}",
            gid=self.game_id,
            reconnect_delay=self.config.reconnect_delay,
        )
        self.stream.start()
        return self

    # ----------------
    # Frames
    # ----------------

    def on_frame(self, frame):
        try:
            self._handle(frame)
        except Exception as e:
            log_exc("game_stream/frame", e, gid=self.game_id)

    def _handle(self, frame):
        if isinstance(frame, ChatLine):
            log(f"chat [{frame.room}] {frame.username}: {frame.text}", "💬", gid=self.game_id)
            return

        if isinstance(frame, GameFull):
            self.bot_white = frame.white.is_me(self.config.bot_id)
            opponent = frame.black if self.bot_white else frame.white
            coltxt = "White" if self.bot_white else "Black"
            log(f"Game {self.game_id} vs {opponent.name or opponent.id or 'AI'} | {coltxt}", "♟️", gid=self.game_id)
            self._play_if_our_turn(frame.state)
            # greet only after the turn is played
            if self.chatter is not None and not frame.state.moves:
                self.chatter.greet(self.game_id, opponent.name or opponent.id)
        elif isinstance(frame, GameState):
            self._play_if_our_turn(frame)

    def _play_if_our_turn(self, game: GameState):
        if self.bot_white is None:
            log("State before gameFull; color unknown, waiting.", "🧐", gid=self.game_id)
            return
        if game.is_terminal:
            log(f"Terminal update: {game.status}", "🔚", gid=self.game_id)
            return
        if not is_bot_turn(len(game.moves), self.bot_white):
            return
        if not self.state.is_active(self.game_id):
            log("Not the active game any more; not moving.", "🚫", gid=self.game_id)
            return

        try:
            self.dispatcher.play(self.game_id, game.clocks, game.moves)
        except Exception as e:
            # no move this frame; the next clock/state frame gives another chance
            log_exc("move dispatch", e, gid=self.game_id)

    # ----------------
    # Stalls
    # ----------------

    def on_timeout(self):
        playing = self.state.active()
        log(f"Game stream timed out (playing: {playing or 'none'})", "⏰", gid=self.game_id)
        if self.state.is_active(self.game_id):
            self.relaunch(self.game_id)
