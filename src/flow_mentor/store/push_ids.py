# src/flow_mentor/store/push_ids.py

"""
Chronologically sortable record keys.

Same layout as Realtime Database push ids (20 chars):
- 8 chars of epoch milliseconds in a 64-char alphabet whose ASCII order matches
  its numeric order,
- 12 random chars; within the same millisecond the previous random part is
  incremented, so keys from one generator are strictly increasing.

Keys are generated client-side for every store adapter, so ordering never
depends on a particular backend's key scheme.
"""

from __future__ import annotations

import random
import threading
import time

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    return int(time.time() * 1000)


class PushIdGenerator:
    def __init__(self, *, clock=now_ms, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.SystemRandom()
        self._last_ts = -1
        self._last_rand = [0] * 12
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            ts = int(self._clock())
            # Wall clock going backwards must not break ordering.
            ts = max(ts, self._last_ts)

            if ts == self._last_ts:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i < 0:
                    # 64^12 ids in one millisecond: move to the next one.
                    ts += 1
                    self._last_rand = [self._rng.randrange(64) for _ in range(12)]
                else:
                    self._last_rand[i] += 1
            else:
                self._last_rand = [self._rng.randrange(64) for _ in range(12)]
            self._last_ts = ts

            time_chars = []
            t = ts
            for _ in range(8):
                time_chars.append(PUSH_CHARS[t % 64])
                t //= 64
            if t:
                raise ValueError("timestamp out of range for push id")

            return "".join(reversed(time_chars)) + "".join(PUSH_CHARS[n] for n in self._last_rand)
