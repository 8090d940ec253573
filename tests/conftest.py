from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

import pytest

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="katzai-tests-"))
os.environ["INVENTORY_DB_PATH"] = str(_TEST_DB_DIR / "inventory.db")
os.environ["JWT_SECRET"] = "test-secret-test-secret-test-secret!"
os.environ["LLM_PROVIDER"] = "gemini"
os.environ["TRANSCRIPTION_PROVIDER"] = "gemini"
for _key in ("GEMINI_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "OPENROUTER_API_KEY"):
    os.environ.pop(_key, None)

from katzai.core.auth import Session, SessionVerifier  # noqa: E402
from katzai.grounding.context import StorePolicy  # noqa: E402
from katzai.inventory.seed import DEMO_CATALOGUE, DEMO_STORE_ID  # noqa: E402
from katzai.providers.base import LLMAdapter, ModelOutput, ProviderRequest  # noqa: E402


class StubAdapter(LLMAdapter):
    """Adapter returning a canned answer and recording every context."""

    name = "stub"

    def __init__(self, output: ModelOutput, gate: asyncio.Event | None = None) -> None:
        super().__init__(api_key="stub-key", model="stub-model")
        self.output = output
        self.gate = gate
        self.contexts = []

    def build_request(self, context):
        return ProviderRequest(url="http://stub.invalid", headers={}, payload={})

    def extract_text(self, data):
        return None

    async def generate(self, context):
        self.contexts.append(context)
        if self.gate is not None:
            await self.gate.wait()
        return ModelOutput(**self.output.to_dict())


@pytest.fixture
def stub_adapter_factory():
    def _factory(**kwargs) -> StubAdapter:
        gate = kwargs.pop("gate", None)
        kwargs.setdefault("response_text", "Try the monkey hooks in Aisle A3.")
        return StubAdapter(ModelOutput(**kwargs), gate=gate)

    return _factory


@pytest.fixture(scope="session")
def demo_items():
    return list(DEMO_CATALOGUE)


@pytest.fixture(scope="session")
def store_id() -> str:
    return DEMO_STORE_ID


@pytest.fixture
def policy() -> StorePolicy:
    return StorePolicy()


@pytest.fixture(scope="session")
def verifier() -> SessionVerifier:
    return SessionVerifier(os.environ["JWT_SECRET"])


@pytest.fixture(scope="session")
def session_token(verifier: SessionVerifier, store_id: str) -> str:
    return verifier.issue(
        Session(user_id="user-1", email="employee@demo-store.com", role="EMPLOYEE", store_id=store_id)
    )
