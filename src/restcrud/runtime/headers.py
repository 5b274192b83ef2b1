"""
Content-Range header exposure.

Browsers only let scripts read ``Content-Range`` on cross-origin responses
when it is listed in ``Access-Control-Expose-Headers``. Clients that page
through list endpoints depend on it, so every response passing through a
restcrud app gets ``Content-Range`` merged into the CORS header lists.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

CONTENT_RANGE = "Content-Range"
CORS_HEADER_NAMES = (
    "Access-Control-Expose-Headers",
    "Access-Control-Allow-Headers",
)

logger = logging.getLogger(__name__)


def merge_header_list(raw_value: str, entry: str = CONTENT_RANGE) -> str:
    """
    Append ``entry`` to a comma-separated header list unless already present.

    Existing entries keep their order; blank entries are dropped. The
    comparison is case-insensitive.

    Examples:
        "" -> "Content-Range"
        "X-Total-Count" -> "X-Total-Count, Content-Range"
        "X-Total-Count, Content-Range" -> "X-Total-Count, Content-Range"
    """
    entries = [part.strip() for part in raw_value.split(",") if part.strip()]
    if entry.lower() not in (e.lower() for e in entries):
        entries.append(entry)
    return ", ".join(entries)


def expose_content_range(headers: MutableMapping[str, Any]) -> None:
    """
    Ensure both CORS header lists include Content-Range.

    A header whose current value is not a plain string is left untouched and
    the next header is still processed. Applying this twice yields the same
    headers as applying it once.
    """
    for name in CORS_HEADER_NAMES:
        raw_value = headers.get(name) or ""
        if not isinstance(raw_value, str):
            logger.debug("Skipping %s: non-string value %r", name, raw_value)
            continue
        headers[name] = merge_header_list(raw_value)


def create_content_range_middleware() -> Any:
    """
    Create a middleware that exposes Content-Range on every response.

    Add it after CORSMiddleware so it wraps it and sees the CORS headers.

    Returns:
        Starlette middleware class
    """
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request
    from starlette.responses import Response

    class ContentRangeHeaderMiddleware(BaseHTTPMiddleware):
        """Middleware to merge Content-Range into the CORS header lists."""

        async def dispatch(self, request: Request, call_next: Any) -> Response:
            response = await call_next(request)
            expose_content_range(response.headers)
            return response  # type: ignore[no-any-return]

    return ContentRangeHeaderMiddleware
