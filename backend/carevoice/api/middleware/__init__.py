from __future__ import annotations

from fastapi import FastAPI

from carevoice.api.middleware.request_log import RequestLoggingMiddleware
from carevoice.api.middleware.security_headers import SecurityHeadersMiddleware


def register_middleware(app: FastAPI) -> None:
    """Register middleware on *app*, innermost first.

    Starlette processes middleware in reverse registration order, so the
    resulting onion is:

        CORS (outermost, added in ``create_app``)
          -> SecurityHeaders
            -> RequestLogging
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
