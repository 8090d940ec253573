"""Launch the backend with Uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger("katzai.launcher")


def main() -> None:
    from katzai.main import app  # noqa: WPS433 (import position)

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    logger.debug("Starting KatzAI on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
