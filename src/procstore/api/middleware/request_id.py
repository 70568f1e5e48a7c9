"""Request ID middleware for the storage API.

Every request gets a correlation id: the caller's X-Request-Id when it is a
short token of safe characters, otherwise a fresh uuid4. The id is stored on
``request.state``, echoed in the response header and written to the request
log line, so an orchestrator command or an upload can be traced from the
caller's logs to ours.
"""

import logging
import re
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128

_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:\-]+")


def resolve_request_id(incoming: str | None) -> str:
    """Return the caller's request id if it is usable, else a new uuid4.

    Ids longer than MAX_REQUEST_ID_LENGTH or holding characters outside
    ``[A-Za-z0-9._:-]`` are replaced, since they end up in headers and logs.

    Example:
        >>> resolve_request_id(" req-12345 ")
        'req-12345'
    """
    if incoming:
        candidate = incoming.strip()
        if len(candidate) <= MAX_REQUEST_ID_LENGTH and _REQUEST_ID_PATTERN.fullmatch(candidate):
            return candidate
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id to every request and log its outcome."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "Request handled: method=%s path=%s status=%d duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={"request_id": request_id},
        )
        return response
