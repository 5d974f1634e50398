import pytest

from bot_config import DEFAULT_SPEEDS, BotConfig, ConfigError, detect_stockfish


@pytest.fixture
def engine_file(tmp_path):
    p = tmp_path / "stockfish"
    p.write_text("")
    return str(p)


def test_defaults(engine_file):
    cfg = BotConfig.from_env({"LICHESS_API_TOKEN": "lip_x", "STOCKFISH_PATH": engine_file,
                              "ENGINE_THREADS": "2"})
    assert cfg.token == "lip_x"
    assert cfg.engine_path == engine_file
    assert cfg.engine_threads == 2
    assert cfg.base_url == "https://lichess.org"
    assert cfg.event_stream_timeout == 30.0
    assert cfg.game_stream_timeout == 30.0
    assert cfg.move_retries == 10
    assert cfg.accept_speeds == DEFAULT_SPEEDS
    assert cfg.challenge_limits == (60, 120, 180)
    assert cfg.challenge_increments == (0, 1, 2)
    assert cfg.ponder is True
    assert cfg.keep_alive_url == ""
    assert cfg.validate() is cfg


def test_env_values_are_parsed(engine_file):
    cfg = BotConfig.from_env({
        "TOKEN": "lip_y",
        "BOT_NAME": "HyperBot",
        "LICHESS_URL": "https://lichess.dev/",
        "STOCKFISH_PATH": engine_file,
        "ENGINE_THREADS": "auto",
        "ENGINE_PONDER": "off",
        "EVENT_STREAM_TIMEOUT": "45",
        "ACCEPT_SPEEDS": "blitz, rapid,",
        "MOVE_MAX_RETRIES": "3",
        "PROACTIVE_CHALLENGES": "yes",
        "CHALLENGE_LIMITS": "300,600",
        "KEEP_ALIVE_INTERVAL": "2.5",
    })
    assert cfg.token == "lip_y"
    assert cfg.bot_id == "hyperbot"
    assert cfg.base_url == "https://lichess.dev"
    assert cfg.engine_threads >= 1
    assert cfg.ponder is False
    assert cfg.event_stream_timeout == 45.0
    assert cfg.accept_speeds == ("blitz", "rapid")
    assert cfg.move_retries == 3
    assert cfg.idle_challenges is True
    assert cfg.challenge_limits == (300, 600)
    assert cfg.keep_alive_interval == 2.5


def test_bad_number_names_the_variable():
    with pytest.raises(ConfigError, match="GAME_STREAM_TIMEOUT"):
        BotConfig.from_env({"GAME_STREAM_TIMEOUT": "soon"})


def test_bad_integer_list():
    with pytest.raises(ConfigError, match="CHALLENGE_INCREMENTS"):
        BotConfig.from_env({"CHALLENGE_INCREMENTS": "0,one"})


def test_validate_collects_every_problem():
    cfg = BotConfig(token="", engine_path="", event_stream_timeout=0, move_retries=-1)
    with pytest.raises(ConfigError) as err:
        cfg.validate()
    msg = str(err.value)
    assert "LICHESS_API_TOKEN" in msg
    assert "STOCKFISH_PATH" in msg
    assert "event_stream_timeout" in msg
    assert "move_retries" in msg


def test_validate_rejects_empty_challenge_clocks():
    cfg = BotConfig(token="t", engine_path="/x", challenge_limits=())
    with pytest.raises(ConfigError, match="challenge_limits"):
        cfg.validate()


def test_detect_stockfish_prefers_the_configured_path(engine_file):
    assert detect_stockfish(engine_file) == engine_file


def test_detect_stockfish_ignores_a_missing_path(tmp_path, monkeypatch):
    monkeypatch.setattr("bot_config.STOCKFISH_CANDIDATES", ())
    assert detect_stockfish(str(tmp_path / "nope")) == ""
