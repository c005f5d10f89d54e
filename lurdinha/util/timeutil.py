# lurdinha/util/timeutil.py
from __future__ import annotations

import time


def now_ts() -> int:
    return int(time.time())


def now_ms() -> int:
    return int(time.time() * 1000)
