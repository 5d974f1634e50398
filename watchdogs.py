# watchdogs.py — periodic reconciliation: playing status, idle challenges, keep-alive
import random
import threading
from datetime import datetime
from typing import Callable, Optional, Sequence

import requests

from bot_log import log, log_exc


class Ticker:
    """Calls fn every `interval` seconds on a daemon thread until stop()."""

    def __init__(self, name: str, interval: float, fn: Callable[[], None]):
        self.name = name
        self.interval = float(interval)
        self.fn = fn
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _loop(self):
        while not self._stop.wait(self.interval):
            try:
                self.fn()
            except Exception as e:
                log_exc(self.name, e)

    def start(self) -> "Ticker":
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()


class PlayingStatusPoll:
    """Heals a missed gameFinish: lichess says zero games, we think one."""

    def __init__(self, api, state, bot_name: str):
        self.api = api
        self.state = state
        self.bot_name = bot_name

    def tick(self):
        active = self.state.active()
        if active is None:
            return
        count = self.api.playing_count(self.bot_name)
        if count == 0 and self.state.release(active):
            log(f"Server reports no ongoing game; cleared stale {active}", "🧹", gid=active)


class IdleChallenger:
    """
    After `threshold` seconds without a game, challenge one random online
    bot per tick with a random rated flag and a short random clock.
    """

    def __init__(self, api, state, bot_id: str, threshold: float,
                 limits: Sequence[int] = (60, 120, 180), increments: Sequence[int] = (0, 1, 2),
                 rng: Optional[random.Random] = None):
        self.api = api
        self.state = state
        self.bot_id = (bot_id or "").lower()
        self.threshold = float(threshold)
        self.limits = tuple(limits)
        self.increments = tuple(increments)
        self.rng = rng or random.Random()

    def tick(self, now: Optional[float] = None):
        idle = self.state.idle_for(now)
        if idle <= self.threshold:
            return
        bots = [b for b in self.api.online_bots(exclude=self.bot_id) if b.lower() != self.bot_id]
        if not bots:
            log("Idle, but no online bots to challenge.", "🤷")
            return
        opponent = self.rng.choice(bots)
        rated = self.rng.choice((True, False))
        limit = self.rng.choice(self.limits)
        inc = self.rng.choice(self.increments)
        log(f"Idle {idle / 60:.0f} min; challenging {opponent} {limit // 60}+{inc} {'rated' if rated else 'casual'}", "🎯")
        try:
            ack = self.api.create_challenge(opponent, rated, limit, inc)
            log(f"challenge response: {(ack or '').strip()[:200]}", "📨")
        except Exception as e:
            log_exc("idle_challenge", e)


class KeepAlivePing:
    """GETs a URL during waking hours so free hosts do not put the bot to sleep."""

    def __init__(self, url: str, first_hour: int = 6, last_hour: int = 22,
                 get: Callable[..., requests.Response] = requests.get):
        self.url = url
        self.first_hour = first_hour
        self.last_hour = last_hour
        self._get = get

    def tick(self, now: Optional[datetime] = None):
        hour = (now or datetime.now()).hour
        if not (self.first_hour <= hour <= self.last_hour):
            return
        log(f"hours ok ({hour}), keep alive {self.url}", "⏰")
        try:
            self._get(self.url, timeout=10)
        except requests.RequestException as e:
            log(f"keep alive failed: {e}", "⚠️")


def start_watchdogs(config, api, state) -> list:
    tickers = [
        Ticker("playing-poll", config.status_poll_interval,
               PlayingStatusPoll(api, state, config.bot_name).tick).start(),
    ]
    if config.idle_challenges:
        challenger = IdleChallenger(
            api, state, config.bot_id, config.idle_threshold,
            limits=config.challenge_limits, increments=config.challenge_increments,
        )
        tickers.append(Ticker("idle-challenger", config.idle_check_interval, challenger.tick).start())
    if config.keep_alive_url:
        log(f"keep alive interval {config.keep_alive_interval:g} min, url {config.keep_alive_url}", "⏰")
        tickers.append(Ticker("keep-alive", config.keep_alive_interval * 60,
                              KeepAlivePing(config.keep_alive_url).tick).start())
    return tickers
