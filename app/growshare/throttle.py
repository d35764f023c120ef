"""
In-memory sliding-window request throttles.

Each throttle maps an identifier (client IP, lower-cased email, ...) to the
timestamps of its recent requests. A request is rejected when, after dropping
timestamps outside the window and recording the current one, more than
``limit`` timestamps remain. Rejected requests are recorded too, so a client
that keeps hammering stays throttled.

The mapping is bounded: identifiers are kept in least-recently-seen order,
stale ones are swept every ``sweep_interval`` seconds, and once ``max_keys``
identifiers are tracked the least recently seen one is evicted. Each
identifier keeps at most ``limit + 1`` timestamps; older ones cannot change
the outcome of ``hit``.

State is per process and per app instance (``app.extensions``); with several
gunicorn workers each worker enforces its own limits.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict, deque
from collections.abc import Callable

from flask import Flask, Request, current_app

logger = logging.getLogger(__name__)

# name -> config key holding (limit, window seconds)
THROTTLE_CONFIG_KEYS = {
    "api": "API_RATE_LIMIT",
    "register_ip": "REGISTER_IP_LIMIT",
    "register_email": "REGISTER_EMAIL_LIMIT",
    "login_ip": "LOGIN_RATE_LIMIT",
}


class SlidingWindowThrottle:
    def __init__(
        self,
        limit: int,
        window_seconds: float,
        *,
        max_keys: int = 10_000,
        sweep_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "throttle",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        self.limit = limit
        self.window = float(window_seconds)
        self.max_keys = max_keys
        self.sweep_interval = float(sweep_interval) if sweep_interval is not None else self.window
        self.name = name
        self._clock = clock
        self._hits: OrderedDict[str, deque[float]] = OrderedDict()
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._hits

    def _prune(self, stamps: deque[float], cutoff: float) -> None:
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()

    def hit(self, identifier: str) -> bool:
        """Record a request for ``identifier``; return True if it is over the limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval:
                self._sweep_locked(now)

            stamps = self._hits.get(identifier)
            if stamps is None:
                stamps = deque(maxlen=self.limit + 1)
                self._hits[identifier] = stamps
                while len(self._hits) > self.max_keys:
                    evicted, _ = self._hits.popitem(last=False)
                    logger.debug("Throttle %s at capacity; evicted %s", self.name, evicted)
            else:
                self._hits.move_to_end(identifier)

            self._prune(stamps, now - self.window)
            stamps.append(now)
            count = len(stamps)
            limited = count > self.limit

        if limited:
            logger.warning("Throttle %s: limit exceeded for %s (%d/%d)", self.name, identifier, count, self.limit)
        return limited

    def retry_after(self, identifier: str) -> int:
        """Whole seconds until the next ``hit`` for ``identifier`` would be allowed (at least 1)."""
        now = self._clock()
        with self._lock:
            stamps = self._hits.get(identifier)
            if not stamps:
                return 1
            self._prune(stamps, now - self.window)
            if len(stamps) < self.limit:
                return 1
            # the next hit is allowed once only limit - 1 timestamps remain
            return max(1, math.ceil(stamps[len(stamps) - self.limit] + self.window - now))

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._hits.pop(identifier, None)

    def sweep(self) -> int:
        """Drop identifiers with no request inside the window. Returns how many were removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        cutoff = now - self.window
        stale = [key for key, stamps in self._hits.items() if not stamps or stamps[-1] <= cutoff]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now
        if stale:
            logger.debug("Throttle %s swept %d stale identifiers", self.name, len(stale))
        return len(stale)


def init_throttles(app: Flask) -> None:
    max_keys = int(app.config.get("THROTTLE_MAX_KEYS") or 10_000)
    throttles: dict[str, SlidingWindowThrottle] = {}
    for name, key in THROTTLE_CONFIG_KEYS.items():
        limit, window = app.config[key]
        throttles[name] = SlidingWindowThrottle(limit, window, max_keys=max_keys, name=name)
    app.extensions["growshare_throttles"] = throttles


def get_throttle(name: str) -> SlidingWindowThrottle:
    return current_app.extensions["growshare_throttles"][name]


def client_ip(req: Request) -> str:
    forwarded_for = req.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return req.remote_addr or "unknown"
