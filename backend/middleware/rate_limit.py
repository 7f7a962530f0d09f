"""
In-memory rate limiting for instruction submissions.

Each submission starts a full plan/code/image run, so submissions are
limited per user. The limiter lives in process memory like the editing
sessions themselves.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta


class RateLimiter:
    """
    Sliding-window rate limiter.

    Tracks request timestamps per key (a user id) within a time window.
    """

    def __init__(self):
        # key -> request timestamps, oldest first
        self._requests: dict[str, list[datetime]] = defaultdict(list)

    def check_rate_limit(self, key: str, max_requests: int, window_minutes: int = 1) -> bool:
        """
        Check a key against its limit and record the request if allowed.

        Args:
            key: Identifier to rate limit (user id)
            max_requests: Maximum requests allowed in the window
            window_minutes: Time window in minutes (default 1)

        Returns:
            True if under the limit, False if limit exceeded
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(minutes=window_minutes)

        recent = [ts for ts in self._requests[key] if ts > cutoff]
        if len(recent) >= max_requests:
            self._requests[key] = recent
            return False

        recent.append(now)
        self._requests[key] = recent
        return True

    def reset(self, key: str) -> None:
        self._requests.pop(key, None)

    def cleanup_old_entries(self, max_age_minutes: int = 60):
        """
        Drop timestamps older than max_age_minutes and forget empty keys.

        Args:
            max_age_minutes: Remove entries older than this many minutes
        """
        cutoff = datetime.now(UTC) - timedelta(minutes=max_age_minutes)
        for key in list(self._requests.keys()):
            self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]
            if not self._requests[key]:
                del self._requests[key]


# Global rate limiter instance
turn_rate_limiter = RateLimiter()
