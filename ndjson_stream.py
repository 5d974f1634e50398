# ndjson_stream.py — one long-lived NDJSON feed with an inactivity timeout
import json
import threading
import time
from typing import Any, Callable, Optional

import requests
from requests.exceptions import ConnectionError, ConnectTimeout, ReadTimeout, ChunkedEncodingError

from bot_log import log, log_exc

CONNECT_TIMEOUT = 10.0


def _is_read_timeout(e: Exception) -> bool:
    if isinstance(e, ConnectTimeout):
        return False
    if isinstance(e, ReadTimeout):
        return True
    # requests wraps urllib3's ReadTimeoutError in a ConnectionError mid-body
    return "timed out" in str(e).lower()


class NdjsonStream:
    """
    A single streaming GET whose body is newline-terminated JSON frames.

    - blank lines are heartbeats: they count as activity, nothing is decoded
    - each other line is decoded on its own; a bad line is logged and skipped
    - when nothing arrives for `inactivity_timeout` seconds the connection is
      torn down and `on_timeout` runs exactly once
    - any other end of the stream, an unexpected error included, waits
      `reconnect_delay` and then also calls `on_timeout` once

    The stream never reconnects itself. A finished stream delivers nothing
    more; callers open a fresh NdjsonStream to resume.
    """

    def __init__(
        self,
        session: requests.Session,
        url: str,
        inactivity_timeout: float,
        decode: Callable[[Any], Any],
        on_frame: Callable[[Any], None],
        on_timeout: Callable[[], None],
        name: str = "stream",
        gid: Optional[str] = None,
        reconnect_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.url = url
        self.timeout = float(inactivity_timeout)
        self.name = name
        self.gid = gid
        self.reconnect_delay = float(reconnect_delay)
        self._decode = decode
        self._on_frame = on_frame
        self._on_timeout = on_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._done = False
        self._response = None
        self.last_activity = clock()
        self.timed_out = False

    @property
    def done(self) -> bool:
        return self._done

    def expired(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return (now - self.last_activity) >= self.timeout

    def feed(self, line: bytes) -> None:
        """Handle one raw line of the body."""
        self.last_activity = self._clock()
        if self._done:
            return
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        text = line.strip()
        if not text:
            return
        try:
            frame = self._decode(json.loads(text))
        except ValueError as e:
            log(f"{self.name}: skipping undecodable line ({e}): {text[:120]}", "🧩", gid=self.gid)
            return
        self._on_frame(frame)

    def run(self) -> None:
        """Blocking: read the feed until it stalls or ends, then hand over."""
        timed_out = False
        try:
            with self.session.get(
                self.url, stream=True, timeout=(CONNECT_TIMEOUT, self.timeout)
            ) as resp:
                self._response = resp
                resp.raise_for_status()
                self.last_activity = self._clock()
                log(f"{self.name}: connected", "🔌", gid=self.gid)
                for line in resp.iter_lines():
                    if self._done:
                        return
                    self.feed(line)
            log(f"{self.name}: closed by server", "🔌", gid=self.gid)
        except (ReadTimeout, ConnectionError, ChunkedEncodingError) as e:
            if self._done:
                return
            # a socket that was silent for the whole window is a stall, whatever the error text says
            if _is_read_timeout(e) or self.expired():
                timed_out = True
                silent = self._clock() - self.last_activity
                log(f"{self.name}: no data for {silent:.0f}s; dropping connection", "⏰", gid=self.gid)
            else:
                log(f"{self.name}: dropped ({e})", "🔌", gid=self.gid)
        except requests.RequestException as e:
            if self._done:
                return
            log_exc(f"{self.name}/run", e, gid=self.gid)
        except Exception as e:
            if self._done:
                return
            log_exc(f"{self.name}/run (unexpected)", e, gid=self.gid)
        finally:
            self._response = None

        self.timed_out = timed_out
        if not timed_out and self.reconnect_delay > 0:
            time.sleep(self.reconnect_delay)
        self._finish()

    def _finish(self) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        self._on_timeout()

    def stop(self) -> None:
        """Terminal close: no more frames and no timeout callback."""
        with self._lock:
            self._done = True
        resp = self._response
        if resp is not None:
            resp.close()

    def start(self) -> threading.Thread:
        t = threading.Thread(target=self.run, name=self.name, daemon=True)
        t.start()
        return t
