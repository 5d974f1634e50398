# bot_config.py — typed settings for the bot, read once from the environment
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


class ConfigError(Exception):
    """Raised at startup when the settings cannot run a bot."""


TRUTHY = ("1", "true", "yes", "y", "on")

DEFAULT_SPEEDS = ("ultraBullet", "bullet", "blitz", "rapid", "classical")

STOCKFISH_CANDIDATES = (
    "./stockfish",
    "./stockfish.exe",
    "/usr/games/stockfish",
    "/usr/bin/stockfish",
    "/usr/local/bin/stockfish",
)


def detect_stockfish(configured: str = "") -> str:
    for p in (configured,) + STOCKFISH_CANDIDATES:
        if p and os.path.exists(p):
            return p
    return ""


# ---------- env parsing ----------

def _env_str(env: Mapping[str, str], key: str, default: str = "") -> str:
    return (env.get(key) or default).strip()

def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = (env.get(key) or "").strip().lower()
    if not raw:
        return default
    return raw in TRUTHY

def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(float(raw))
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")

def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")

def _env_list(env: Mapping[str, str], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    return tuple(p.strip() for p in raw.split(",") if p.strip())

def _env_ints(env: Mapping[str, str], key: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    parts = _env_list(env, key, tuple(str(v) for v in default))
    try:
        return tuple(int(p) for p in parts)
    except ValueError:
        raise ConfigError(f"{key} must be a comma separated list of integers, got {parts!r}")


@dataclass
class BotConfig:
    """
    Everything the bot reads from its environment.

    Durations are in seconds unless the name says otherwise; the keep-alive
    interval is in minutes, as the hosting dashboards express it.
    """
    token: str
    bot_name: str = ""
    base_url: str = "https://lichess.org"

    # engine
    engine_path: str = ""
    engine_threads: int = 1
    engine_hash_mb: int = 256
    move_overhead_ms: int = 60
    ponder: bool = True
    ponder_time: float = 2.0

    # streams / network
    event_stream_timeout: float = 30.0
    game_stream_timeout: float = 30.0
    reconnect_delay: float = 5.0
    max_net_retries: int = 6

    # challenges and moves
    accept_speeds: Tuple[str, ...] = DEFAULT_SPEEDS
    move_retries: int = 10
    move_retry_delay: float = 0.5

    # watchdogs
    status_poll_interval: float = 60.0
    idle_challenges: bool = True
    idle_check_interval: float = 1800.0
    idle_threshold: float = 3600.0
    challenge_limits: Tuple[int, ...] = (60, 120, 180)
    challenge_increments: Tuple[int, ...] = (0, 1, 2)
    keep_alive_url: str = ""
    keep_alive_interval: float = 5.0

    @property
    def bot_id(self) -> str:
        return self.bot_name.lower()

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BotConfig":
        env = os.environ if env is None else env

        threads_raw = _env_str(env, "ENGINE_THREADS", "auto").lower()
        if threads_raw == "auto":
            threads = max(1, os.cpu_count() or 1)
        else:
            threads = max(1, _env_int(env, "ENGINE_THREADS", 1))

        return cls(
            token=_env_str(env, "LICHESS_API_TOKEN") or _env_str(env, "TOKEN"),
            bot_name=_env_str(env, "BOT_NAME"),
            base_url=_env_str(env, "LICHESS_URL", "https://lichess.org").rstrip("/"),
            engine_path=detect_stockfish(_env_str(env, "STOCKFISH_PATH")),
            engine_threads=threads,
            engine_hash_mb=_env_int(env, "ENGINE_HASH_MB", 256),
            move_overhead_ms=_env_int(env, "MOVE_OVERHEAD_MS", 60),
            ponder=_env_bool(env, "ENGINE_PONDER", True),
            ponder_time=_env_float(env, "PONDER_TIME_SEC", 2.0),
            event_stream_timeout=_env_float(env, "EVENT_STREAM_TIMEOUT", 30.0),
            game_stream_timeout=_env_float(env, "GAME_STREAM_TIMEOUT", 30.0),
            reconnect_delay=_env_float(env, "RECONNECT_DELAY_SEC", 5.0),
            max_net_retries=_env_int(env, "MAX_NET_RETRIES", 6),
            accept_speeds=_env_list(env, "ACCEPT_SPEEDS", DEFAULT_SPEEDS),
            move_retries=_env_int(env, "MOVE_MAX_RETRIES", 10),
            move_retry_delay=_env_float(env, "MOVE_RETRY_DELAY_SEC", 0.5),
            status_poll_interval=_env_float(env, "PLAYING_POLL_SEC", 60.0),
            idle_challenges=_env_bool(env, "PROACTIVE_CHALLENGES", True),
            idle_check_interval=_env_float(env, "IDLE_CHECK_SEC", 1800.0),
            idle_threshold=_env_float(env, "IDLE_THRESHOLD_SEC", 3600.0),
            challenge_limits=_env_ints(env, "CHALLENGE_LIMITS", (60, 120, 180)),
            challenge_increments=_env_ints(env, "CHALLENGE_INCREMENTS", (0, 1, 2)),
            keep_alive_url=_env_str(env, "KEEP_ALIVE_URL"),
            keep_alive_interval=_env_float(env, "KEEP_ALIVE_INTERVAL", 5.0),
        )

    def validate(self) -> "BotConfig":
        problems = []
        if not self.token:
            problems.append("Missing LICHESS_API_TOKEN env var.")
        if not self.engine_path:
            problems.append("Missing/invalid STOCKFISH_PATH. Put Stockfish somewhere simple and set the env var.")
        for name in ("event_stream_timeout", "game_stream_timeout", "status_poll_interval",
                     "idle_check_interval", "keep_alive_interval", "ponder_time"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive.")
        for name in ("idle_threshold", "reconnect_delay", "move_retry_delay"):
            if getattr(self, name) < 0:
                problems.append(f"{name} must not be negative.")
        if self.move_retries < 0:
            problems.append("move_retries must not be negative.")
        if not self.challenge_limits or any(v <= 0 for v in self.challenge_limits):
            problems.append("challenge_limits needs at least one positive clock limit.")
        if not self.challenge_increments or any(v < 0 for v in self.challenge_increments):
            problems.append("challenge_increments needs at least one increment >= 0.")
        if problems:
            raise ConfigError(" ".join(problems))
        return self
