from math import ceil
from time import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

WINDOW_SECONDS = 60

# Paths that send real messages through third-party platforms get a tighter window
_STRICT_PATHS = {"/api/integrations/test"}


class FixedWindowCounter:
    """Per-key request counter that resets at the end of each window. Single-process only."""

    def __init__(self, limit: int, window_seconds: int = WINDOW_SECONDS) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = 0.0

    def hit(self, key: str, now: float | None = None) -> tuple[bool, int, int]:
        """Count one request. Returns (allowed, remaining, seconds until reset)."""
        now = time() if now is None else now
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        reset_in = max(ceil(started + self.window_seconds - now), 0)
        if count >= self.limit:
            self._windows[key] = (started, count)
            return False, 0, reset_in
        count += 1
        self._windows[key] = (started, count)
        return True, self.limit - count, reset_in

    def _sweep(self, now: float) -> None:
        self._windows = {k: v for k, v in self._windows.items() if now - v[0] < self.window_seconds}
        self._last_sweep = now


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client fixed-window rate limiter with a stricter budget for integration test sends."""

    def __init__(self, app, requests_per_minute: int = 120, strict_requests_per_minute: int = 10):
        super().__init__(app)
        self._global = FixedWindowCounter(requests_per_minute)
        self._strict = FixedWindowCounter(strict_requests_per_minute)

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        strict_headers: dict[str, str] = {}
        if path in _STRICT_PATHS and request.method == "POST":
            allowed, remaining, reset_in = self._strict.hit(client_ip)
            strict_headers = {
                "X-RateLimit-Limit": str(self._strict.limit),
                "X-RateLimit-Remaining": str(remaining),
                "X-RateLimit-Reset": str(reset_in),
            }
            if not allowed:
                return JSONResponse(
                    status_code=429,
                    content={"error": "Rate limit exceeded. Please try again later."},
                    headers={**strict_headers, "Retry-After": str(reset_in)},
                )

        allowed, _, reset_in = self._global.hit(client_ip)
        if not allowed:
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests"},
                headers={"Retry-After": str(reset_in)},
            )

        response = await call_next(request)
        response.headers.update(strict_headers)
        return response
