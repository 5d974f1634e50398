# bot_log.py — console logging shared by every part of the bot
import sys
import traceback
from datetime import datetime
from typing import Optional


def log(msg: str, emoji: str = "", gid: Optional[str] = None):
    now = datetime.now().strftime("[%H:%M:%S]")
    tag = f" [{gid}]" if gid else ""
    try:
        print(f"{now}{tag} {emoji} {msg}")
    except UnicodeEncodeError:
        print(f"{now}{tag} {msg}")
    sys.stdout.flush()


def log_exc(where: str, e: Exception, gid: Optional[str] = None):
    tb = traceback.format_exc(limit=8)
    log(f"[!] {where}: {e}\n{tb}", "⚠️", gid=gid)
