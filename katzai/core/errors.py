"""Exception types and handlers."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("katzai.errors")


class AuthenticationError(Exception):
    """Raised when a session is missing, expired or otherwise invalid."""

    def __init__(self, message: str = "Unauthorized", redirect_to: str = "/login") -> None:
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


class TranscriptionError(Exception):
    """Raised when a transcription backend cannot produce usable text."""


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=401,
        content={"error": "unauthorized", "message": exc.message, "redirect": exc.redirect_to},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    """Return a generic JSON error response while logging the exception."""

    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
        },
    )
