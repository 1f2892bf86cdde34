"""Request logging middleware."""

import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

AUTH_HEADER = "x-auth-token"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per request once the response is ready.

    The line says whether the caller sent a token, never the token itself.
    Server errors are logged at ERROR, client errors at WARNING.
    """

    def __init__(self, app, logger: logging.Logger = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger("shortlink.web")

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, 500, started)
            raise

        self._log(request, response.status_code, started)
        return response

    def _log(self, request: Request, status_code: int, started: float) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        client_ip = request.client.host if request.client else "unknown"
        caller = "token" if request.headers.get(AUTH_HEADER) else "anonymous"

        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        self.logger.log(
            level,
            f"{request.method} {request.url.path} {status_code} "
            f"{duration_ms:.2f}ms client={client_ip} caller={caller}",
        )
