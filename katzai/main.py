"""FastAPI application entry point for the KatzAI assistant backend."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from katzai.api.assistant import create_assistant_router
from katzai.api.voice import create_voice_router
from katzai.core.auth import build_session_verifier
from katzai.core.config import get_settings
from katzai.core.errors import (
    AuthenticationError,
    authentication_error_handler,
    unhandled_exception_handler,
)
from katzai.core.logging import configure_logging, request_id_middleware
from katzai.core.metrics import MetricsCollector
from katzai.grounding.pipeline import RecommendationPipeline
from katzai.inventory.gateway import SQLiteInventoryGateway
from katzai.inventory.seed import seed_on_startup
from katzai.providers import create_llm_adapter, create_transcription_adapter

settings = get_settings()
logger = logging.getLogger("katzai.app")

if settings.seed_demo_inventory:
    seed_on_startup(settings.inventory_db_path)

metrics = MetricsCollector()
verifier = build_session_verifier(settings)
inventory_gateway = SQLiteInventoryGateway(settings.inventory_db_path)
llm_adapter = create_llm_adapter(settings)
transcriber = create_transcription_adapter(settings)
pipeline = RecommendationPipeline(
    llm_adapter,
    settings.store_policy,
    history_window=settings.history_window,
    metrics=metrics,
)

app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

app.include_router(
    create_assistant_router(settings, verifier, inventory_gateway, pipeline, transcriber, metrics)
)
app.include_router(create_voice_router(settings, verifier, inventory_gateway, pipeline, metrics))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return basic service status for monitoring."""

    return {"status": "ok"}


@app.get("/ready", tags=["health"])
async def readiness_probe() -> dict[str, Any]:
    """Readiness endpoint that verifies the inventory DB and provider config."""

    inventory_ok = False
    inventory_error: str | None = None
    try:
        inventory_ok = inventory_gateway.is_ready()
        if not inventory_ok:
            inventory_error = "products table missing"
    except Exception as exc:  # noqa: BLE001
        inventory_error = str(exc)

    components: dict[str, dict[str, Any]] = {
        "inventory_db": {
            "path": str(settings.inventory_db_path),
            "ok": inventory_ok,
            **({"error": inventory_error} if inventory_error else {}),
        },
        "llm_provider": {
            "provider": settings.llm_provider,
            "adapter": llm_adapter.describe(),
            "ok": bool(llm_adapter.api_key),
        },
    }

    if inventory_ok and components["llm_provider"]["ok"]:
        overall = "ok"
    elif inventory_ok:
        overall = "degraded"
    else:
        overall = "fail"

    return {
        "status": overall,
        "environment": settings.environment,
        "components": components,
    }


@app.on_event("startup")
async def announce_startup() -> None:
    level = configure_logging(settings.log_level)
    logger.info("Logging configured at %s level for %s environment", logging.getLevelName(level), settings.environment)


app.add_exception_handler(AuthenticationError, authentication_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint() -> dict:
    snapshot = metrics.snapshot()
    return {
        "total_turns": snapshot.total_turns,
        "turn_outcomes": snapshot.turn_outcomes,
        "provider_fallbacks": snapshot.provider_fallbacks,
        "grounding_drops": snapshot.grounding_drops,
    }
