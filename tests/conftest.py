import pytest

from newsroom.clients.base import TextCompletionClient
from newsroom.clients.errors import EmptyOutputError


class ScriptedTextClient(TextCompletionClient):
    """Text client that replays scripted outputs and records every call.

    An empty string in ``outputs`` becomes an EmptyOutputError and an
    exception instance is raised as-is.
    """

    def __init__(self, outputs, model="test-model", fallback_model=None, json_mode=True):
        super().__init__(
            "test_key", model, "https://llm.test", fallback_model=fallback_model
        )
        self.outputs = list(outputs)
        self.calls = []
        self.supports_json_mode = json_mode

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def _complete(self, request, model, token_param, json_mode):
        self.calls.append(
            {
                "request": request,
                "model": model,
                "token_param": token_param,
                "json_mode": json_mode,
            }
        )
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        if not output:
            raise EmptyOutputError("empty output", model=model)
        return output


@pytest.fixture
def scripted_client():
    """Factory for scripted text clients."""
    return ScriptedTextClient


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with test credentials and no environment leakage."""
    from newsroom.models.settings import Settings

    for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "DIFFBOT_TOKEN", "NEWSROOM_AI_LOG"):
        monkeypatch.delenv(var, raising=False)

    return Settings(
        openai_api_key="test_key",
        gemini_api_key="test_key",
        diffbot_token="test_token",
    )
