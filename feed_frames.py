# feed_frames.py — typed frames for the lichess event feed and game feeds
"""
Every line of the two NDJSON feeds is decoded once, here, into one of a few
frozen dataclasses. Consumers dispatch on the class, never on the raw
``type`` string.

Event feed:  ChallengeEvent | GameStartEvent | GameFinishEvent | OtherEvent
Game feed:   GameFull | GameState | ChatLine
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union


class FrameError(ValueError):
    """A feed line that is valid JSON but not a frame we understand."""


TERMINAL_STATUSES = {
    "aborted", "mate", "resign", "stalemate", "timeout", "outoftime",
    "draw", "nostart", "cheat", "variantend", "unknownfinish",
}


def _obj(value: Any, what: str) -> Dict[str, Any]:
    """A nested JSON object, {} when absent; FrameError for any other shape."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise FrameError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise FrameError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _to_ms(value) -> Optional[int]:
    """Convert a lichess clock field to milliseconds int, or None if invalid."""
    if value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            return int(value)
        return int(float(str(value)))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Clocks:
    """Remaining time and increment for both sides, in milliseconds."""
    wtime: Optional[int] = None
    btime: Optional[int] = None
    winc: Optional[int] = None
    binc: Optional[int] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Clocks":
        return cls(
            wtime=_to_ms(data.get("wtime")),
            btime=_to_ms(data.get("btime")),
            winc=_to_ms(data.get("winc")),
            binc=_to_ms(data.get("binc")),
        )


# =====================
# GAME FEED
# =====================

@dataclass(frozen=True)
class GameState:
    moves: Tuple[str, ...] = ()
    clocks: Clocks = field(default_factory=Clocks)
    status: str = "started"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "GameState":
        moves = _str(data.get("moves"), "moves")
        return cls(
            moves=tuple(moves.split()),
            clocks=Clocks.from_json(data),
            status=(_str(data.get("status"), "status") or "started").lower(),
        )


@dataclass(frozen=True)
class Player:
    id: str = ""
    name: str = ""

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "Player":
        data = _obj(data, "player")
        return cls(id=_str(data.get("id"), "player id").lower(), name=_str(data.get("name"), "player name"))

    def is_me(self, bot_id: str) -> bool:
        me = (bot_id or "").lower()
        return bool(me) and me in (self.id, self.name.lower())


@dataclass(frozen=True)
class GameFull:
    game_id: str
    white: Player
    black: Player
    state: GameState


@dataclass(frozen=True)
class ChatLine:
    room: str
    username: str
    text: str


GameFrame = Union[GameFull, GameState, ChatLine]


def decode_game_frame(data: Any) -> GameFrame:
    if not isinstance(data, dict):
        raise FrameError(f"expected an object, got {type(data).__name__}")
    et = _str(data.get("type"), "type").strip()
    if et == "gameFull":
        return GameFull(
            game_id=_str(data.get("id"), "game id"),
            white=Player.from_json(data.get("white")),
            black=Player.from_json(data.get("black")),
            state=GameState.from_json(_obj(data.get("state"), "state")),
        )
    if et == "gameState":
        return GameState.from_json(data)
    if et == "chatLine":
        return ChatLine(
            room=_str(data.get("room"), "room"),
            username=_str(data.get("username"), "username"),
            text=_str(data.get("text"), "text"),
        )
    raise FrameError(f"unknown game frame type {et!r}")


# =====================
# EVENT FEED
# =====================

@dataclass(frozen=True)
class ChallengeEvent:
    challenge_id: str
    challenger_id: str = ""
    speed: str = ""
    time_control: str = ""   # clock | correspondence | unlimited
    variant: str = ""
    rated: bool = False


@dataclass(frozen=True)
class GameStartEvent:
    game_id: str
    opponent: str = ""


@dataclass(frozen=True)
class GameFinishEvent:
    game_id: str
    opponent: str = ""


@dataclass(frozen=True)
class OtherEvent:
    kind: str


EventFrame = Union[ChallengeEvent, GameStartEvent, GameFinishEvent, OtherEvent]


def _game_event_fields(data: Dict[str, Any]) -> Tuple[str, str]:
    g = _obj(data.get("game"), "game")
    gid = _str(g.get("gameId"), "gameId") or _str(g.get("id"), "game id")
    if not gid:
        raise FrameError(f"{data.get('type')} without a game id")
    opp = _obj(g.get("opponent"), "opponent")
    return gid, (_str(opp.get("username"), "opponent username") or _str(opp.get("id"), "opponent id"))


def decode_event_frame(data: Any) -> EventFrame:
    if not isinstance(data, dict):
        raise FrameError(f"expected an object, got {type(data).__name__}")
    et = _str(data.get("type"), "type").strip()

    if et == "challenge":
        ch = _obj(data.get("challenge"), "challenge")
        cid = _str(ch.get("id"), "challenge id")
        if not cid:
            raise FrameError("challenge without an id")
        return ChallengeEvent(
            challenge_id=cid,
            challenger_id=_str(_obj(ch.get("challenger"), "challenger").get("id"), "challenger id").lower(),
            speed=_str(ch.get("speed"), "speed"),
            time_control=_str(_obj(ch.get("timeControl"), "timeControl").get("type"), "time control"),
            variant=_str(_obj(ch.get("variant"), "variant").get("key"), "variant"),
            rated=bool(ch.get("rated", False)),
        )
    if et == "gameStart":
        gid, opp = _game_event_fields(data)
        return GameStartEvent(game_id=gid, opponent=opp)
    if et == "gameFinish":
        gid, opp = _game_event_fields(data)
        return GameFinishEvent(game_id=gid, opponent=opp)
    return OtherEvent(kind=et)
