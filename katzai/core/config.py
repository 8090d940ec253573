"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(default="KatzAI Assistant", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    inventory_db_path: Path = Field(
        default=Path("../db/inventory.db"),
        description="SQLite inventory database path.",
    )
    seed_demo_inventory: bool = Field(
        default=True,
        description="Load the demo store catalogue into an empty inventory DB on startup.",
    )

    jwt_secret: str = Field(
        default="katzai-secret-key-32-chars-long!",
        min_length=32,
        description="HS256 secret used to verify session cookies.",
    )
    session_cookie_name: str = Field(default="token", description="Cookie carrying the session JWT.")
    login_path: str = Field(default="/login", description="Where clients are sent to re-authenticate.")

    llm_provider: Literal["gemini", "anthropic", "openai", "openrouter"] = Field(
        default="gemini",
        description="Backend implementing grounded answer generation.",
    )
    llm_timeout_seconds: float = Field(default=30.0, ge=1.0, description="Provider HTTP timeout.")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_output_tokens: int = Field(default=2048, ge=64)

    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key.")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model identifier.")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key.")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", description="Anthropic model identifier.")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key.")
    openai_model: str = Field(default="gpt-4-turbo-preview", description="OpenAI model identifier.")
    openrouter_api_key: str | None = Field(default=None, description="OpenRouter API key.")
    openrouter_model: str = Field(default="minimax/minimax-m2:free", description="OpenRouter model identifier.")
    openrouter_referer: str | None = Field(
        default=None,
        description="Referer header required by OpenRouter (your app URL).",
    )
    openrouter_title: str | None = Field(default="KatzAI Assistant", description="Title header sent to OpenRouter.")

    transcription_provider: Literal["gemini", "whisper"] = Field(
        default="gemini",
        description="Backend used by the server-side transcription endpoint.",
    )
    whisper_model: str = Field(default="whisper-1", description="OpenAI transcription model.")

    silence_threshold_ms: int = Field(
        default=1500,
        ge=200,
        description="Silence after the last fragment that ends an utterance.",
    )
    silence_poll_interval_ms: int = Field(default=500, ge=50, description="Endpointing check cadence.")
    restart_backoff_ms: int = Field(default=500, ge=0, description="Delay before restarting capture.")
    speech_rate: float = Field(default=1.1, gt=0.0, description="Speech synthesis rate.")
    speech_pitch: float = Field(default=1.0, gt=0.0, description="Speech synthesis pitch.")
    speak_responses: bool = Field(default=True, description="Read assistant answers aloud in voice sessions.")
    show_mentioned_products: bool = Field(
        default=True,
        description="Include mentioned product details for the side panel in voice sessions.",
    )

    history_window: int = Field(default=6, ge=0, description="Turns of history sent to the model.")

    policy_prefer_no_damage: bool = Field(default=True)
    policy_prefer_no_tools: bool = Field(default=True)
    policy_suggest_drilling_first: bool = Field(default=False)
    policy_safety_disclaimers: bool = Field(default=True)
    policy_custom_instructions: str | None = Field(default=None)

    frontend_origin: AnyHttpUrl | None = Field(
        default=None,
        description="Allowed frontend origin (CORS). If omitted, defaults to localhost dev server.",
    )
    additional_origins: List[AnyHttpUrl] = Field(
        default_factory=list,
        description="Additional allowed CORS origins for multi-client deployments.",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Frontend origin (or the local Next.js dev server) plus extras, de-duplicated."""

        primary = (
            [str(self.frontend_origin)]
            if self.frontend_origin
            else ["http://localhost:3000", "http://127.0.0.1:3000"]
        )
        extras = [str(origin) for origin in self.additional_origins]
        return list(dict.fromkeys(origin.rstrip("/") for origin in primary + extras))

    @property
    def store_policy(self):
        from katzai.grounding.context import StorePolicy

        return StorePolicy(
            prefer_no_damage=self.policy_prefer_no_damage,
            prefer_no_tools=self.policy_prefer_no_tools,
            suggest_drilling_first=self.policy_suggest_drilling_first,
            safety_disclaimers=self.policy_safety_disclaimers,
            custom_instructions=self.policy_custom_instructions,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
