"""
Sliding-window rate limiter with temporary bans, keyed by remote IP.

Usage:
    limiter = RateLimiter(window_seconds=5, max_events=60, ban_seconds=30)
    if limiter.allow(ip):
        # process frame
    else:
        # close the connection
    limiter.forget(ip)  # on disconnect, unless banned
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from constants import RATE_LIMIT_BAN, RATE_LIMIT_MAX, RATE_LIMIT_WINDOW


class RateLimiter:
    """
    Allows at most ``max_events`` per key within any ``window_seconds`` span.

    Exceeding the limit bans the key for ``ban_seconds``; while banned every
    call to :meth:`allow` is refused.
    """

    def __init__(self,
                 window_seconds: float = RATE_LIMIT_WINDOW,
                 max_events: int = RATE_LIMIT_MAX,
                 ban_seconds: float = RATE_LIMIT_BAN) -> None:
        self.window_seconds = window_seconds
        self.max_events = max_events
        self.ban_seconds = ban_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._banned_until: Dict[str, float] = {}

    def allow(self, key: Optional[str]) -> bool:
        """
        Record one event for ``key`` and decide whether it may proceed.

        Args:
            key (str): Client identifier, normally the remote IP. ``None``
                (unknown peer address) is never limited.

        Returns:
            bool: True if allowed; False if over the limit or banned.
        """
        if key is None:
            return True
        now = time.monotonic()

        ban_deadline = self._banned_until.get(key)
        if ban_deadline is not None:
            if now < ban_deadline:
                return False
            del self._banned_until[key]

        hits = self._hits[key]
        hits.append(now)
        while hits and now - hits[0] > self.window_seconds:
            hits.popleft()

        if len(hits) > self.max_events:
            self._banned_until[key] = now + self.ban_seconds
            hits.clear()
            return False
        return True

    def is_banned(self, key: Optional[str]) -> bool:
        if key is None:
            return False
        ban_deadline = self._banned_until.get(key)
        if ban_deadline is None:
            return False
        if ban_deadline > time.monotonic():
            return True
        del self._banned_until[key]
        return False

    def forget(self, key: Optional[str]) -> None:
        """
        Drop the sliding window for ``key`` and sweep bans that have expired.

        Bans still in force are kept, including the one on ``key``.
        """
        self._hits.pop(key, None)
        now = time.monotonic()
        expired = [k for k, deadline in self._banned_until.items() if deadline <= now]
        for k in expired:
            del self._banned_until[k]
