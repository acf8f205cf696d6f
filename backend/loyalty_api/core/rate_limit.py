"""
Login throttling

In-memory sliding window keyed by client IP. Only failed logins count;
a successful login clears the window for that client.
"""
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from fastapi import Request

from .config import settings


class LoginAttemptLimiter:
    """
    Sliding-window counter of failed login attempts.

    State is per process.
    """

    def __init__(self, max_attempts: int = None, window_seconds: int = None):
        self.max_attempts = max_attempts or settings.LOGIN_MAX_ATTEMPTS
        self.window_seconds = window_seconds or settings.LOGIN_WINDOW_SECONDS
        # {identifier: [timestamp, ...]}
        self._failures: Dict[str, List[float]] = defaultdict(list)

    def _prune(self, identifier: str, now: float) -> List[float]:
        window_start = now - self.window_seconds
        recent = [ts for ts in self._failures.get(identifier, []) if ts > window_start]
        if recent:
            self._failures[identifier] = recent
        else:
            self._failures.pop(identifier, None)
        return recent

    def check(self, identifier: str) -> Tuple[bool, int]:
        """
        Returns:
            Tuple of (is_allowed, retry_after_seconds)
        """
        now = time.time()
        recent = self._prune(identifier, now)
        if len(recent) >= self.max_attempts:
            retry_after = int(min(recent) + self.window_seconds - now) + 1
            return False, retry_after
        return True, 0

    def record_failure(self, identifier: str) -> None:
        self._failures[identifier].append(time.time())

    def reset(self, identifier: str) -> None:
        self._failures.pop(identifier, None)


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


# Global limiter instance
login_limiter = LoginAttemptLimiter()
