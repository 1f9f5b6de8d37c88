"""
CiviSure - Rate Limiting

Per-client sliding windows kept in process memory. All /api traffic shares
one window per IP; the credential endpoints get an extra, tighter window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from civisure.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"
SWEEP_INTERVAL_SECONDS = 300

# path -> (max POSTs, window seconds)
CREDENTIAL_LIMITS: Dict[str, Tuple[int, int]] = {
    "/api/auth/login": (10, 60),
    "/api/auth/register": (10, 60),
}


class RateLimitStore:
    """Timestamps of accepted hits per key, oldest first."""

    def __init__(self, sweep_interval: float = SWEEP_INTERVAL_SECONDS):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._longest_window = 0
        self._sweep_interval = sweep_interval
        self._last_sweep = time.monotonic()

    @property
    def key_count(self) -> int:
        return len(self._hits)

    def sweep(self, now: Optional[float] = None) -> None:
        """Forget keys with no hit inside the longest window in use."""
        now = time.monotonic() if now is None else now
        cutoff = now - self._longest_window
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record a hit for key unless it already has `limit` hits inside the window."""
        now = time.monotonic()
        self._longest_window = max(self._longest_window, window_seconds)
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep(now)

        hits = self._hits[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()
        if len(hits) >= limit:
            return False
        hits.append(now)
        return True

    def reset(self):
        self._hits.clear()
        self._last_sweep = time.monotonic()


rate_limit_store = RateLimitStore()


def too_many_requests(retry_after: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": "Too many requests. Please try again later."},
        headers={"Retry-After": str(retry_after)},
    )


class RateLimitMiddleware:
    """Reject /api requests over the per-IP limits with a 429 envelope."""

    def __init__(self, app: ASGIApp):
        self.app = app

    def _blocked_window(self, request: Request) -> int:
        """Return the window of the first exhausted limit, or 0 when the request may pass."""
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        window = settings.RATE_LIMIT_WINDOW_SECONDS
        if not rate_limit_store.allow(client_ip, settings.RATE_LIMIT_MAX_REQUESTS, window):
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return window

        if request.method == "POST" and path in CREDENTIAL_LIMITS:
            limit, window = CREDENTIAL_LIMITS[path]
            if not rate_limit_store.allow(f"{client_ip}:{path}", limit, window):
                logger.warning(f"Rate limit exceeded for {client_ip} on {path}")
                return window

        return 0

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] == "http":
            request = Request(scope)
            if request.url.path.startswith(API_PREFIX):
                retry_after = self._blocked_window(request)
                if retry_after:
                    await too_many_requests(retry_after)(scope, receive, send)
                    return

        await self.app(scope, receive, send)
