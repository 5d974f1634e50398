import pytest

from feed_frames import (
    ChallengeEvent, ChatLine, Clocks, FrameError, GameFinishEvent, GameFull,
    GameStartEvent, GameState, OtherEvent, Player, decode_event_frame, decode_game_frame,
)

GAME_FULL = {
    "type": "gameFull",
    "id": "g1",
    "white": {"id": "someone", "name": "Someone", "rating": 2000},
    "black": {"id": "hyperbot", "name": "HyperBot", "title": "BOT"},
    "initialFen": "startpos",
    "state": {
        "type": "gameState", "moves": "e2e4 e7e5",
        "wtime": 180000, "btime": 179000, "winc": 2000, "binc": 2000,
        "status": "started",
    },
}


class TestGameFrames:

    def test_game_full(self):
        frame = decode_game_frame(GAME_FULL)
        assert isinstance(frame, GameFull)
        assert frame.game_id == "g1"
        assert frame.black.is_me("hyperbot")
        assert not frame.white.is_me("hyperbot")
        assert frame.state.moves == ("e2e4", "e7e5")
        assert frame.state.clocks == Clocks(wtime=180000, btime=179000, winc=2000, binc=2000)

    def test_game_state_with_no_moves(self):
        frame = decode_game_frame({"type": "gameState", "moves": "", "wtime": 60000, "btime": 60000,
                                   "winc": 0, "binc": 0, "status": "started"})
        assert isinstance(frame, GameState)
        assert frame.moves == ()
        assert not frame.is_terminal

    def test_terminal_status(self):
        frame = decode_game_frame({"type": "gameState", "moves": "f2f3 e7e5 g2g4 d8h4", "status": "mate"})
        assert frame.is_terminal

    def test_chat_line(self):
        frame = decode_game_frame({"type": "chatLine", "room": "player", "username": "x", "text": "hi"})
        assert frame == ChatLine(room="player", username="x", text="hi")

    def test_unknown_type_is_an_error(self):
        with pytest.raises(FrameError):
            decode_game_frame({"type": "opponentGone", "gone": True})

    def test_non_object_is_an_error(self):
        with pytest.raises(FrameError):
            decode_game_frame(["gameFull"])

    def test_non_string_moves_is_an_error(self):
        with pytest.raises(FrameError):
            decode_game_frame({"type": "gameState", "moves": ["e2e4"]})

    @pytest.mark.parametrize("data", [
        {"type": "gameState", "moves": "", "status": 3},
        {"type": "gameFull", "id": "g1", "white": "someone", "state": {}},
        {"type": "gameFull", "id": "g1", "state": ["e2e4"]},
        {"type": "chatLine", "room": "player", "username": "x", "text": {"t": "hi"}},
        {"type": 7},
    ])
    def test_wrong_shapes_are_frame_errors(self, data):
        with pytest.raises(FrameError):
            decode_game_frame(data)

    def test_ai_opponent_has_no_id(self):
        frame = decode_game_frame(dict(GAME_FULL, white={"aiLevel": 3}))
        assert frame.white == Player()
        assert not frame.white.is_me("hyperbot")

    def test_player_matches_by_name_case_insensitive(self):
        assert Player(id="", name="HyperBot").is_me("hyperbot")
        assert not Player(id="x", name="y").is_me("")

    def test_bad_clock_values_become_none(self):
        assert Clocks.from_json({"wtime": "oops", "btime": "1500"}) == Clocks(wtime=None, btime=1500)


class TestEventFrames:

    def test_challenge(self):
        frame = decode_event_frame({
            "type": "challenge",
            "challenge": {
                "id": "c1", "status": "created", "rated": True, "speed": "blitz",
                "challenger": {"id": "SomeOne"}, "variant": {"key": "standard"},
                "timeControl": {"type": "clock", "limit": 180, "increment": 2},
            },
        })
        assert frame == ChallengeEvent(challenge_id="c1", challenger_id="someone", speed="blitz",
                                       time_control="clock", variant="standard", rated=True)

    def test_challenge_without_id(self):
        with pytest.raises(FrameError):
            decode_event_frame({"type": "challenge", "challenge": {}})

    def test_game_start_prefers_game_id(self):
        frame = decode_event_frame({"type": "gameStart",
                                    "game": {"gameId": "g1", "id": "g1", "opponent": {"username": "Foe"}}})
        assert frame == GameStartEvent(game_id="g1", opponent="Foe")

    def test_game_finish(self):
        frame = decode_event_frame({"type": "gameFinish", "game": {"id": "g1"}})
        assert frame == GameFinishEvent(game_id="g1")

    def test_game_event_without_id(self):
        with pytest.raises(FrameError):
            decode_event_frame({"type": "gameStart", "game": {}})

    @pytest.mark.parametrize("data", [
        {"type": "challenge", "challenge": "oops"},
        {"type": "challenge", "challenge": {"id": "c1", "variant": "standard"}},
        {"type": "challenge", "challenge": {"id": 12}},
        {"type": "gameStart", "game": "g1"},
        {"type": "gameFinish", "game": {"id": "g1", "opponent": "Foe"}},
    ])
    def test_wrong_shapes_are_frame_errors(self, data):
        with pytest.raises(FrameError):
            decode_event_frame(data)

    def test_other_events_are_kept_as_other(self):
        assert decode_event_frame({"type": "challengeCanceled"}) == OtherEvent(kind="challengeCanceled")
