# event_stream.py — the platform-wide feed: challenges, game starts and finishes
from typing import Callable

from bot_log import log, log_exc
from feed_frames import (
    ChallengeEvent, GameFinishEvent, GameStartEvent, OtherEvent, decode_event_frame,
)
from ndjson_stream import NdjsonStream


class EventStreamConsumer:
    """
    Top-level loop of the bot. Accepts playable challenges while idle,
    claims the single game slot on gameStart and frees it on gameFinish.
    A stalled feed is replaced by a fresh one, forever.
    """

    def __init__(self, config, api, state, launch_game: Callable[[str], None],
                 chatter=None, stream_factory=NdjsonStream):
        self.config = config
        self.api = api
        self.state = state
        self.launch_game = launch_game
        self.chatter = chatter
        self.stream_factory = stream_factory
        self.stream = None

    def start(self) -> "EventStreamConsumer":
        log("Listening for events…", "🛰️")
        self.stream = self.stream_factory(
            session=self.api.session,
            url=self.api.event_stream_url(),
            inactivity_timeout=self.config.event_stream_timeout,
            decode=decode_event_frame,
            on_frame=self.on_frame,
            on_timeout=self.on_timeout,
            name="events",
            reconnect_delay=self.config.reconnect_delay,
        )
        self.stream.start()
        return self

    def on_timeout(self):
        log("Event stream timed out; reconnecting.", "🔌")
        self.start()

    def on_frame(self, frame):
        try:
            if isinstance(frame, ChallengeEvent):
                self.on_challenge(frame)
            elif isinstance(frame, GameStartEvent):
                self.on_game_start(frame)
            elif isinstance(frame, GameFinishEvent):
                self.on_game_finish(frame)
            elif isinstance(frame, OtherEvent):
                log(f"Ignoring event {frame.kind or '?'}", "ℹ️")
        except Exception as e:
            log_exc("event_stream/frame", e)

    # -----------------
    # CHALLENGE events
    # -----------------

    def decline_reason(self, ch: ChallengeEvent) -> str:
        """Why we will not take this challenge, or '' if we will."""
        playing = self.state.active()
        if playing:
            return f"already playing {playing}"
        if ch.challenger_id and ch.challenger_id == self.config.bot_id:
            return "our own challenge"
        if ch.time_control != "clock":
            return f"time control {ch.time_control or 'n/a'}"
        if ch.speed not in self.config.accept_speeds:
            return f"speed {ch.speed or 'n/a'}"
        if ch.variant != "standard":
            return f"variant {ch.variant or 'n/a'}"
        return ""

    def on_challenge(self, ch: ChallengeEvent):
        reason = self.decline_reason(ch)
        if reason:
            log(f"Not accepting challenge {ch.challenge_id}: {reason}", "⛔")
            return
        try:
            self.api.accept_challenge(ch.challenge_id)
            log(f"Accepted challenge {ch.challenge_id} from {ch.challenger_id or '?'} ({ch.speed})", "💪")
        except Exception as e:
            log_exc("accept_challenge", e)

    # ---------------
    # game events
    # ---------------

    def on_game_start(self, ev: GameStartEvent):
        if not self.state.claim(ev.game_id):
            log(f"Can't start {ev.game_id}: already playing {self.state.active()}", "🔁")
            return
        log(f"Playing game {ev.game_id} vs {ev.opponent or '?'}", "🎮", gid=ev.game_id)
        self.launch_game(ev.game_id)

    def on_game_finish(self, ev: GameFinishEvent):
        if not self.state.release(ev.game_id):
            log(f"Finish for {ev.game_id} (not the active game)", "ℹ️")
            return
        log(f"Game {ev.game_id} terminated", "🏁", gid=ev.game_id)
        if self.chatter is not None:
            self.chatter.goodbye(ev.game_id, ev.opponent)
