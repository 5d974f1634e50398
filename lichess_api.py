# lichess_api.py — authenticated lichess calls used by the bot
import time
from typing import Callable, List, Optional

import berserk
import requests
from berserk.exceptions import ApiError, ResponseError
from bs4 import BeautifulSoup
from requests.exceptions import ConnectionError, ReadTimeout, ChunkedEncodingError

from bot_log import log

HTTP_TIMEOUT = 10


def _is_transient_net_err(e: Exception) -> bool:
    s = str(e).lower()
    return any([
        isinstance(e, (ConnectionError, ReadTimeout, ChunkedEncodingError)),
        "remote end closed connection" in s,
        "connection aborted" in s,
        "protocolerror" in s,
        "temporarily unavailable" in s,
        "gateway timeout" in s,
        "bad gateway" in s,
        "connection reset" in s,
        "api timeout" in s,
    ])


class LichessApi:
    """
    Thin wrapper over a berserk client sharing one token session.

    Streams are opened by NdjsonStream on `session`; everything else goes
    through `_retry_call` so transient failures and 429s are absorbed here.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://lichess.org",
        max_net_retries: int = 6,
        reconnect_delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = berserk.TokenSession(token)
        self.client = berserk.Client(session=self.session, base_url=self.base_url)
        self.max_net_retries = max_net_retries
        self.reconnect_delay = reconnect_delay
        self._sleep = sleep

    # ---------- plumbing ----------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _retry_call(self, desc: str, fn, *args, gid: Optional[str] = None, **kwargs):
        """Retry wrapper with a fixed delay on network errors and exponential backoff on 429."""
        attempt = 0
        backoff_429 = 60  # doubles each time up to 30 min
        while True:
            try:
                return fn(*args, **kwargs)
            except (ApiError, ResponseError) as e:
                if "429" in str(e):
                    retry_after = backoff_429
                    resp = getattr(e, "response", None)
                    if resp is not None:
                        try:
                            retry_after = int(resp.headers.get("Retry-After", retry_after))
                        except (TypeError, ValueError):
                            pass
                    log(f"{desc}: 429 Too Many Requests. Sleeping {retry_after}s before retry…", "⚠️", gid=gid)
                    self._sleep(retry_after)
                    backoff_429 = min(backoff_429 * 2, 1800)
                    continue
                if not _is_transient_net_err(e):
                    raise
                attempt = self._transient_pause(desc, attempt, e, gid)
            except requests.RequestException as e:
                if not _is_transient_net_err(e):
                    raise
                attempt = self._transient_pause(desc, attempt, e, gid)

    def _transient_pause(self, desc: str, attempt: int, e: Exception, gid: Optional[str]) -> int:
        attempt += 1
        if attempt > self.max_net_retries:
            raise RuntimeError(f"{desc}: exceeded retries ({self.max_net_retries})") from e
        log(f"{desc}: transient net error; retry {attempt}/{self.max_net_retries} after {self.reconnect_delay:.0f}s", "🔁", gid=gid)
        self._sleep(self.reconnect_delay)
        return attempt

    # ---------- feeds ----------

    def event_stream_url(self) -> str:
        return self._url("/api/stream/event")

    def game_stream_url(self, game_id: str) -> str:
        return self._url(f"/api/bot/game/stream/{game_id}")

    # ---------- actions ----------

    def account_id(self) -> str:
        data = self._retry_call("account", self.client.account.get) or {}
        return (data.get("id") or "").lower()

    def accept_challenge(self, challenge_id: str):
        return self._retry_call("accept_challenge", self.client.bots.accept_challenge, challenge_id)

    def create_challenge(self, username: str, rated: bool, clock_limit: int, clock_increment: int) -> str:
        def post():
            r = self.session.post(
                self._url(f"/api/challenge/{username}"),
                data={
                    "rated": "true" if rated else "false",
                    "clock.limit": int(clock_limit),
                    "clock.increment": int(clock_increment),
                },
                timeout=HTTP_TIMEOUT,
            )
            return r.text
        return self._retry_call("challenge_create", post)

    def make_move(self, game_id: str, move: str) -> str:
        """
        Submit a move and return the acknowledgement body as text.

        The status code is not inspected: lichess reports refused moves in
        the body, and the caller decides what counts as a rejection.
        """
        def post():
            r = self.session.post(
                self._url(f"/api/bot/game/{game_id}/move/{move}"),
                data="",
                timeout=HTTP_TIMEOUT,
            )
            return r.text
        return self._retry_call("make_move", post, gid=game_id)

    def send_chat(self, game_id: str, room: str, text: str):
        return self._retry_call(
            "send_chat", self.client.bots.post_message,
            game_id, text, spectator=(room == "spectator"), gid=game_id,
        )

    # ---------- status ----------

    def playing_count(self, username: str) -> int:
        data = self._retry_call("public_data", self.client.users.get_public_data, username) or {}
        return int((data.get("count") or {}).get("playing") or 0)

    def online_bots(self, exclude: Optional[str] = None, max_names: int = 200) -> List[str]:
        """Names of bots currently listed online, without `exclude`."""
        def fetch():
            r = requests.get(
                self._url("/player/bots"),
                headers={"User-Agent": "hyperbot/1.0 (+https://lichess.org)"},
                timeout=HTTP_TIMEOUT,
            )
            r.raise_for_status()
            return r.text

        soup = BeautifulSoup(self._retry_call("online_bots", fetch), "html.parser")
        skip = (exclude or "").lower()
        bots, seen = [], set()
        for a in soup.select("a.user-link"):
            name = (a.text or "").strip().replace("\xa0", " ")
            if name.upper().startswith("BOT "):
                name = name[4:].strip()
            if not name or name.lower() == skip or name.lower() in seen:
                continue
            seen.add(name.lower())
            bots.append(name)
        return bots[:max_names]
