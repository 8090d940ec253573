"""Logging setup and per-request tracing."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request

logger = logging.getLogger("katzai.request")


def configure_logging(level_name: str) -> int:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return level


async def request_id_middleware(request: Request, call_next: Callable):
    """Tag the request with ``X-Request-ID`` and log status and latency."""

    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d in %.1fms [rid=%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response
