from __future__ import annotations

import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from carevoice.core.logging import get_logger

logger = get_logger("carevoice.access")

_SESSION_PREFIX = "/api/voice/sessions/"
_QUIET_PATHS = frozenset({"/api/health"})


def _session_id(path: str) -> Optional[str]:
    if not path.startswith(_SESSION_PREFIX):
        return None
    return path[len(_SESSION_PREFIX):].split("/", 1)[0] or None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for the HTTP API.

    Health probes go to DEBUG; requests that address a voice session are
    tagged with its id so they line up with the session's own log lines.
    """

    async def dispatch(self, request: Request, call_next: Callable[..., Response]) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        path = request.url.path
        if response.status_code >= 500:
            log = logger.warning
        elif path in _QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info

        session_id = _session_id(path)
        log(
            "%s %s -> %d (%.1fms)%s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            f" [session={session_id[:8]}]" if session_id else "",
        )
        return response
