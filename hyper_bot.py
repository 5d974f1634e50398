#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
hyper_bot.py — lichess bot, one game at a time

- Event feed: accepts standard, timed challenges while idle; claims the single
  game slot on gameStart and frees it on gameFinish.
- Game feed: works out our color and whose turn it is from the move count,
  then plays a book move or an engine move.
- Both feeds reconnect on their own after an inactivity timeout.
- Watchdogs: clear a stale "playing" flag, challenge a random online bot when
  idle for too long, optional keep-alive ping.

Environment variables (common):
  LICHESS_API_TOKEN : your bot token
  STOCKFISH_PATH    : path to your Stockfish binary
  BOT_NAME          : bot username (read from the account when unset)
See bot_config.py for the rest.
"""
import sys
import time
from datetime import datetime
from typing import Optional

import pyfiglet
from berserk.exceptions import ResponseError
from requests import RequestException

from bot_config import BotConfig, ConfigError
from bot_log import log, log_exc
from chatter import Chatter
from event_stream import EventStreamConsumer
from game_stream import GameStreamConsumer
from lichess_api import LichessApi
from move_dispatcher import MoveDispatcher
from session_state import SessionState
from uci_engine import UciEngine
from watchdogs import start_watchdogs


def print_banner(commit_hash: Optional[str] = None):
    banner = pyfiglet.figlet_format("HYPER BOT", font="big")
    # date+commit stamp (YYYYMMDD-<shortcommit>), commit optional
    stamp = datetime.now().strftime("%Y%m%d")
    if commit_hash:
        stamp = f"{stamp}-{commit_hash[:8]}"
    print(banner.rstrip())
    print(stamp)


class HyperBot:
    """Owns the shared pieces and knows how to start a game consumer."""

    def __init__(self, config: BotConfig, api: LichessApi, engine: UciEngine,
                 chatter: Optional[Chatter] = None):
        self.config = config
        self.api = api
        self.engine = engine
        self.chatter = chatter
        self.state = SessionState()
        self.dispatcher = MoveDispatcher(
            api, engine,
            still_playing=self.state.is_active,
            max_retries=config.move_retries,
            retry_delay=config.move_retry_delay,
            ponder=config.ponder,
        )
        self.events = EventStreamConsumer(config, api, self.state, self.launch_game, chatter=chatter)
        self.tickers = []

    def launch_game(self, game_id: str):
        GameStreamConsumer(
            game_id, self.config, self.api, self.state, self.dispatcher,
            relaunch=self.launch_game, chatter=self.chatter,
        ).start()

    def run(self):
        self.events.start()
        self.tickers = start_watchdogs(self.config, self.api, self.state)
        while True:
            time.sleep(60)

    def shutdown(self):
        for t in self.tickers:
            t.stop()
        if self.events.stream is not None:
            self.events.stream.stop()
        self.engine.quit()


def build(config_path: str = "config.yml") -> HyperBot:
    config = BotConfig.from_env().validate()
    api = LichessApi(
        config.token, base_url=config.base_url,
        max_net_retries=config.max_net_retries, reconnect_delay=config.reconnect_delay,
    )
    try:
        account = api.account_id()
    except (ResponseError, RequestException, RuntimeError) as e:
        raise ConfigError(f"Failed to init Lichess client: {e}") from e
    if not account:
        log("Warning: could not read account id; is this a BOT token?", "❓")
    if not config.bot_name:
        config.bot_name = account
    elif account and account != config.bot_id:
        log(f"BOT_NAME={config.bot_name} but the token belongs to {account}; using the account.", "❓")
        config.bot_name = account
    if not config.bot_name:
        raise ConfigError("Bot identity unknown: set BOT_NAME or use a BOT account token.")

    engine = UciEngine(
        config.engine_path, threads=config.engine_threads, hash_mb=config.engine_hash_mb,
        move_overhead_ms=config.move_overhead_ms, ponder_time=config.ponder_time,
    )
    chatter = Chatter(api, me=config.bot_name)
    chatter.load_messages(config_path)
    log(f"Bot {config.bot_name} | engine {config.engine_path} | threads {config.engine_threads}", "🤖")
    return HyperBot(config, api, engine, chatter=chatter)


def start(config_path: str = "config.yml", commit_hash: Optional[str] = None):
    print_banner(commit_hash=commit_hash)
    try:
        bot = build(config_path)
    except ConfigError as e:
        log(str(e), "🛑")
        sys.exit(2)
    try:
        bot.run()
    except KeyboardInterrupt:
        log("Shutting down by user request.", "👋")
    except Exception as e:
        log_exc("MAIN FATAL", e)
    finally:
        bot.shutdown()


if __name__ == "__main__":
    start()
