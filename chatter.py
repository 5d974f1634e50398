# chatter.py — tiny, safe lichess chat helper for the bot
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml
from requests import RequestException
from berserk.exceptions import ApiError

from bot_log import log


@dataclass
class Messages:
    greeting: str = "Good luck & have fun!"
    goodbye: str = "GG! Thanks for the game."
    greeting_spectators: str = ""
    goodbye_spectators: str = ""

    @staticmethod
    def _clean(val: Any) -> str:
        if not isinstance(val, str):
            return ""
        return val.strip()

    @classmethod
    def from_yaml(cls, path: str) -> "Messages":
        """
        Load the `messages:` section of a YAML config.
        - a key that is absent keeps the default in this class
        - a key that is present but blank turns that message off
        """
        base = cls()
        if not path or not os.path.exists(path):
            return base
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
        msg = cfg.get("messages") or {}

        def pick(key: str) -> str:
            return cls._clean(msg[key]) if key in msg else getattr(base, key)

        return cls(
            greeting=pick("greeting"),
            goodbye=pick("goodbye"),
            greeting_spectators=pick("greeting_spectators"),
            goodbye_spectators=pick("goodbye_spectators"),
        )


def _render(tmpl: str, context: Dict[str, Any]) -> str:
    if not tmpl:
        return ""
    try:
        return tmpl.format(**context)
    except (KeyError, IndexError, ValueError):
        return tmpl


class Chatter:
    """
    - Lightweight rate limiting (min_interval seconds)
    - Never raises: a failed chat post is logged and forgotten
    - Templates can use {me}, {opponent}
    """
    def __init__(self, api, me: str = "", min_interval: float = 2.0, max_len: int = 140,
                 messages: Optional[Messages] = None):
        self.api = api
        self.me = me
        self.min_interval = float(min_interval)
        self.max_len = int(max_len)
        self._next_ok = 0.0
        self._greeted = set()  # game ids; survives game stream reconnects
        self.messages = messages or Messages()

    def load_messages(self, path: str = "config.yml"):
        self.messages = Messages.from_yaml(path)

    def _wait_rate(self):
        now = time.time()
        if now < self._next_ok:
            time.sleep(self._next_ok - now)
        self._next_ok = time.time() + self.min_interval

    def _post(self, game_id: str, room: str, text: str):
        text = (text or "").strip()
        if not text:
            return
        if len(text) > self.max_len:
            text = text[: self.max_len - 1] + "…"
        try:
            self._wait_rate()
            self.api.send_chat(game_id, room, text)
        except (ApiError, RequestException, RuntimeError) as e:
            log(f"chat post failed ({room}): {e}", "💬", gid=game_id)

    # Convenience methods ------------------------------

    def greet(self, game_id: str, opponent: str):
        if game_id in self._greeted:
            return
        self._greeted.add(game_id)
        ctx = {"me": self.me, "opponent": opponent or "opponent"}
        self._post(game_id, "player", _render(self.messages.greeting, ctx))
        self._post(game_id, "spectator", _render(self.messages.greeting_spectators, ctx))

    def goodbye(self, game_id: str, opponent: str):
        self._greeted.discard(game_id)
        ctx = {"me": self.me, "opponent": opponent or "opponent"}
        self._post(game_id, "player", _render(self.messages.goodbye, ctx))
        self._post(game_id, "spectator", _render(self.messages.goodbye_spectators, ctx))
