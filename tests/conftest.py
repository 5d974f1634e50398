"""
Shared fakes for the bot tests. Nothing here touches the network or starts
an engine process.
"""
import pytest

from bot_config import BotConfig
from session_state import SessionState
from uci_engine import NO_EVALUATION, SearchResult


class ManualClock:
    """A monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeApi:
    """Records every call the bot makes to lichess."""

    def __init__(self, move_acks=None, online=None, playing=1):
        self.session = object()
        self.move_acks = list(move_acks or [])
        self.online = list(online or [])
        self.playing = playing
        self.accepted = []
        self.moves = []
        self.chats = []
        self.challenges = []
        self.status_calls = 0

    def event_stream_url(self):
        return "https://lichess.test/api/stream/event"

    def game_stream_url(self, game_id):
        return f"https://lichess.test/api/bot/game/stream/{game_id}"

    def accept_challenge(self, challenge_id):
        self.accepted.append(challenge_id)

    def make_move(self, game_id, move):
        self.moves.append((game_id, move))
        if self.move_acks:
            return self.move_acks.pop(0)
        return '{"ok":true}'

    def send_chat(self, game_id, room, text):
        self.chats.append((game_id, room, text))

    def playing_count(self, username):
        self.status_calls += 1
        return self.playing

    def online_bots(self, exclude=None):
        return list(self.online)

    def create_challenge(self, username, rated, clock_limit, clock_increment):
        self.challenges.append((username, rated, clock_limit, clock_increment))
        return '{"challenge":{"id":"c1"}}'


class FakeEngine:
    """Engine stand-in: scripted best moves, records searches and ponders."""

    def __init__(self, best="g1f3", ponder=None, evaluation=NO_EVALUATION, error=None):
        self.best = best
        self.ponder_move = ponder
        self.evaluation = evaluation
        self.error = error
        self.searches = []
        self.pondered = []

    def search(self, moves, clocks):
        self.searches.append((list(moves), clocks))
        if self.error is not None:
            raise self.error
        return SearchResult(best=self.best, ponder=self.ponder_move, evaluation=self.evaluation)

    def ponder(self, moves):
        self.pondered.append(list(moves))


class FakeStream:
    """Stands in for NdjsonStream; `push` delivers a decoded frame."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = 0
        self.stopped = False

    def start(self):
        self.started += 1

    def stop(self):
        self.stopped = True

    def push(self, obj):
        self.kwargs["on_frame"](self.kwargs["decode"](obj))

    def time_out(self):
        self.kwargs["on_timeout"]()


class FakeStreamFactory:
    def __init__(self):
        self.streams = []

    def __call__(self, **kwargs):
        s = FakeStream(**kwargs)
        self.streams.append(s)
        return s

    @property
    def last(self) -> FakeStream:
        return self.streams[-1]


@pytest.fixture
def config():
    return BotConfig(
        token="lip_test",
        bot_name="HyperBot",
        engine_path="/usr/games/stockfish",
        reconnect_delay=0.0,
        move_retry_delay=0.0,
        move_retries=3,
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def state(clock):
    return SessionState(clock=clock)


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def streams():
    return FakeStreamFactory()
