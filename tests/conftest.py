"""Pytest configuration and fixtures for GroqAgent tests."""

import json

import httpx
import pytest

from groqagent.config import Settings

GROQ_ENV_VARS = ["GROQ_API_KEY", "GROQ_MODEL", "GROQ_BASE_URL", "GROQ_MAX_TOKENS", "ZYPHER_HOME"]

BASE_URL = "https://api.test/openai/v1"


@pytest.fixture(autouse=True)
def clean_env(request, monkeypatch):
    """Start every non-integration test without GroqAgent environment variables."""
    if request.node.get_closest_marker("integration"):
        return
    for name in GROQ_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_env(monkeypatch):
    """Set a fake API key in the environment."""
    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    monkeypatch.setenv("GROQ_BASE_URL", BASE_URL)


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake API."""
    return Settings(api_key="test-key", base_url=BASE_URL)


@pytest.fixture
def catalog_client():
    """Build an httpx client whose /models endpoint returns a canned response.

    Returns a factory taking (body, status_code); the client records every
    request it sees in ``client.requests``.
    """
    clients = []

    def factory(body=None, status_code: int = 200, raw: bytes | None = None) -> httpx.Client:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if raw is not None:
                return httpx.Response(status_code, content=raw)
            return httpx.Response(status_code, json=body)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        client.requests = requests
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


def sse_body(*fragments: str, done: bool = True) -> bytes:
    """Encode text fragments as an OpenAI-style event stream."""
    lines = []
    for fragment in fragments:
        event = {"choices": [{"index": 0, "delta": {"content": fragment}}]}
        lines.append(f"data: {json.dumps(event)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


@pytest.fixture
def sample_catalog() -> dict:
    """Catalog in the {data: [...]} shape with mixed entries."""
    return {
        "object": "list",
        "data": [
            {"id": "whisper-large-v3", "decommissioned": False},
            {"id": "gemma2-9b-it"},
            {"id": "llama-3.3-70b-versatile"},
            {"id": "old-model", "decommissioned": True},
        ],
    }


@pytest.fixture
def make_sse():
    """Expose sse_body to tests."""
    return sse_body
