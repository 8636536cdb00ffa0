"""Response headers for the voice API."""

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Session listings and transcripts reflect live state; never cache them.
_NO_STORE_PREFIX = "/api/voice/sessions"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to every response.

    The microphone stays allowed for our own origin: the browser client
    captures speech for voice navigation.
    """

    async def dispatch(self, request: Request, call_next: Callable[..., Response]) -> Response:
        response = await call_next(request)

        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        headers["Permissions-Policy"] = "camera=(), microphone=(self), geolocation=()"
        if request.url.path.startswith(_NO_STORE_PREFIX):
            headers["Cache-Control"] = "no-store"
        return response
