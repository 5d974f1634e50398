#!/usr/bin/env python3
# run_bot.py — launcher: maps config.yml onto the env vars hyper_bot.py reads
import argparse
import os
import platform
import sys

import yaml

import hyper_bot


def setenv(k, v, override: bool = True):
    if v is None:
        return
    if not override and os.getenv(k):
        return
    if isinstance(v, bool):
        v = "true" if v else "false"
    if isinstance(v, (list, tuple)):
        v = ",".join(str(x) for x in v)
    os.environ[k] = str(v)


def pick_engine(eng: dict) -> str:
    # engine.path wins; otherwise engine.dir + engine.name, with .exe on Windows if that is what exists
    if eng.get("path"):
        return os.path.expandvars(eng["path"])
    name = eng.get("name") or ""
    if not name:
        return ""
    path = os.path.join(eng.get("dir", "."), name)
    if platform.system() == "Windows" and not path.lower().endswith(".exe") and os.path.exists(path + ".exe"):
        path += ".exe"
    return path


def apply_config_to_env(cfg: dict):
    # --- identity ---
    tok = (cfg.get("token") or "").strip()
    if tok:
        setenv("LICHESS_API_TOKEN", tok, override=False)
    setenv("BOT_NAME", cfg.get("bot_name"))
    setenv("LICHESS_URL", cfg.get("url"))

    # --- engine ---
    eng = cfg.get("engine") or {}
    engine_path = pick_engine(eng)
    if engine_path:
        setenv("STOCKFISH_PATH", engine_path)
    uci = eng.get("uci_options") or {}
    setenv("ENGINE_THREADS", uci.get("Threads"))
    setenv("ENGINE_HASH_MB", uci.get("Hash"))
    setenv("MOVE_OVERHEAD_MS", uci.get("Move Overhead"))
    setenv("ENGINE_PONDER", eng.get("ponder"))
    setenv("PONDER_TIME_SEC", eng.get("ponder_time"))

    # --- streams ---
    streams = cfg.get("streams") or {}
    setenv("EVENT_STREAM_TIMEOUT", streams.get("event_timeout"))
    setenv("GAME_STREAM_TIMEOUT", streams.get("game_timeout"))
    setenv("RECONNECT_DELAY_SEC", streams.get("reconnect_delay"))
    setenv("MAX_NET_RETRIES", streams.get("max_net_retries"))

    # --- challenges & moves ---
    setenv("ACCEPT_SPEEDS", (cfg.get("challenge") or {}).get("speeds"))
    moves = cfg.get("moves") or {}
    setenv("MOVE_MAX_RETRIES", moves.get("max_retries"))
    setenv("MOVE_RETRY_DELAY_SEC", moves.get("retry_delay"))

    # --- watchdogs ---
    setenv("PLAYING_POLL_SEC", cfg.get("status_poll_interval"))
    mm = cfg.get("matchmaking") or {}
    setenv("PROACTIVE_CHALLENGES", mm.get("enabled"))
    setenv("IDLE_CHECK_SEC", mm.get("check_interval"))
    setenv("IDLE_THRESHOLD_SEC", mm.get("idle_threshold"))
    setenv("CHALLENGE_LIMITS", mm.get("limits"))
    setenv("CHALLENGE_INCREMENTS", mm.get("increments"))
    ka = cfg.get("keep_alive") or {}
    setenv("KEEP_ALIVE_URL", ka.get("url"))
    setenv("KEEP_ALIVE_INTERVAL", ka.get("interval"))


def main(argv=None):
    ap = argparse.ArgumentParser(description="Run the lichess bot.")
    ap.add_argument("--config", default=None, help="YAML config (default: config.yml if present)")
    args = ap.parse_args(argv)

    path = args.config or "config.yml"
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if args.config:
            print(f"[run_bot] Could not open {path}.")
            sys.exit(2)
        cfg = {}

    apply_config_to_env(cfg)
    hyper_bot.start(config_path=path, commit_hash=os.getenv("GIT_COMMIT"))


if __name__ == "__main__":
    main()
