"""Tests for the agent runner."""

import json

import httpx
import pytest
from unittest.mock import patch

from groqagent.agent import (
    AUTH_HINT,
    MODEL_HINT,
    QUOTA_HINT,
    AgentRunError,
    _parse_stream_line,
    run_agent,
    troubleshooting_hints,
)
from groqagent.config import Settings


def _api_client(completion: httpx.Response, catalog: dict | None = None):
    """Client serving /models and /chat/completions; records requests."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/models"):
            return httpx.Response(200, json=catalog or {"data": [{"id": "llama-3.3-70b-versatile"}]})
        return completion

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return client, seen


class TestParseStreamLine:
    """Test server-sent event parsing."""

    def test_delta_content(self):
        """Content fragments are extracted."""
        line = 'data: {"choices": [{"delta": {"content": "Hello"}}]}'
        assert _parse_stream_line(line) == "Hello"

    def test_done_marker(self):
        """The DONE marker carries no text."""
        assert _parse_stream_line("data: [DONE]") is None

    def test_non_data_lines(self):
        """Comments and blank lines are ignored."""
        assert _parse_stream_line(": keep-alive") is None
        assert _parse_stream_line("") is None

    def test_invalid_json_skipped(self):
        """Undecodable payloads are skipped."""
        assert _parse_stream_line("data: {broken") is None

    def test_non_object_payload_skipped(self):
        """JSON scalars and arrays are skipped."""
        assert _parse_stream_line("data: 42") is None
        assert _parse_stream_line("data: [1, 2]") is None

    def test_malformed_choices_skipped(self):
        """Choices that are not objects are skipped."""
        assert _parse_stream_line('data: {"choices": ["oops"]}') is None
        assert _parse_stream_line('data: {"choices": "oops"}') is None
        assert _parse_stream_line('data: {"choices": [{"delta": "oops"}]}') is None

    def test_role_only_delta(self):
        """Deltas without content yield nothing."""
        line = 'data: {"choices": [{"delta": {"role": "assistant"}}]}'
        assert _parse_stream_line(line) is None

    def test_empty_choices(self):
        """Events without choices yield nothing."""
        assert _parse_stream_line('data: {"choices": []}') is None


class TestTroubleshootingHints:
    """Test hint selection."""

    def test_auth(self):
        assert troubleshooting_hints(401) == [AUTH_HINT]

    def test_quota(self):
        assert troubleshooting_hints(429) == [QUOTA_HINT]

    def test_model(self):
        assert troubleshooting_hints(404) == [MODEL_HINT]

    def test_unknown(self):
        """Unknown failures get every hint."""
        assert troubleshooting_hints(None) == [AUTH_HINT, QUOTA_HINT, MODEL_HINT]


class TestRunAgent:
    """Test run_agent end to end against a mocked API."""

    def test_collects_streamed_output(self, settings: Settings, make_sse):
        """Fragments are concatenated in order."""
        client, _ = _api_client(httpx.Response(200, content=make_sse("- AI ", "news ", "item")))

        with client:
            result = run_agent("Find AI news", settings, client=client)

        assert result.output == "- AI news item"
        assert result.model == "llama-3.3-70b-versatile"
        assert result.chunk_count == 3

    def test_request_payload(self, settings: Settings, make_sse):
        """The completion request carries model, prompt and limits."""
        client, seen = _api_client(httpx.Response(200, content=make_sse("ok")))

        with client:
            run_agent("Find AI news", settings, client=client)

        completion_request = seen[-1]
        assert completion_request.method == "POST"
        assert completion_request.url.path.endswith("/chat/completions")
        assert completion_request.headers["Authorization"] == "Bearer test-key"
        payload = json.loads(completion_request.content)
        assert payload["model"] == "llama-3.3-70b-versatile"
        assert payload["messages"] == [{"role": "user", "content": "Find AI news"}]
        assert payload["max_tokens"] == 200
        assert payload["stream"] is True

    def test_model_override_used(self, make_sse):
        """An override skips the catalog request."""
        settings = Settings(api_key="test-key", base_url="https://api.test/v1", model_override="pinned")
        client, seen = _api_client(httpx.Response(200, content=make_sse("ok")))

        with client:
            result = run_agent("hello", settings, client=client)

        assert result.model == "pinned"
        assert len(seen) == 1

    def test_stops_at_done(self, settings: Settings, make_sse):
        """Anything after the DONE marker is ignored."""
        body = make_sse("first") + b'data: {"choices": [{"delta": {"content": "late"}}]}\n\n'
        client, _ = _api_client(httpx.Response(200, content=body))

        with client:
            result = run_agent("hello", settings, client=client)

        assert result.output == "first"

    def test_malformed_events_ignored(self, settings: Settings):
        """Events with unexpected shapes do not break the run."""
        body = (
            b'data: {"choices": ["oops"]}\n\n'
            b"data: 42\n\n"
            b'data: {"choices": [{"delta": {"content": "kept"}}]}\n\n'
            b"data: [DONE]\n\n"
        )
        client, _ = _api_client(httpx.Response(200, content=body))

        with client:
            result = run_agent("hi", settings, client=client)

        assert result.output == "kept"
        assert result.chunk_count == 1

    def test_http_error_raises(self, settings: Settings):
        """Non-2xx completion responses raise AgentRunError with hints."""
        client, _ = _api_client(httpx.Response(401, json={"error": {"message": "Invalid API Key"}}))

        with client:
            with pytest.raises(AgentRunError) as exc_info:
                run_agent("hello", settings, client=client)

        assert exc_info.value.status_code == 401
        assert exc_info.value.hints == [AUTH_HINT]
        assert "Invalid API Key" in str(exc_info.value)

    def test_connect_error_raises(self, settings: Settings):
        """Connection failures raise AgentRunError."""
        settings.model_override = "pinned"

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AgentRunError) as exc_info:
                run_agent("hello", settings, client=client)

        assert exc_info.value.status_code is None

    def test_timeout_raises(self, settings: Settings):
        """Timeouts raise AgentRunError."""
        settings.model_override = "pinned"

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AgentRunError, match="timed out"):
                run_agent("hello", settings, client=client)

    def test_empty_prompt_rejected(self, settings: Settings):
        """Blank prompts are rejected before any request."""
        with patch("groqagent.agent.select_model") as mock_select:
            with pytest.raises(ValueError):
                run_agent("   ", settings)
            mock_select.assert_not_called()

    def test_settings_loaded_from_env(self, api_env, make_sse):
        """Settings default to the environment."""
        client, seen = _api_client(httpx.Response(200, content=make_sse("ok")))

        with client:
            result = run_agent("hello", client=client)

        assert result.output == "ok"
        assert str(seen[0].url).startswith("https://api.test/openai/v1")


class TestRunAgentIntegration:
    """Integration tests requiring a live API (marked for conditional running)."""

    @pytest.mark.integration
    def test_real_completion(self):
        """Run a real prompt (requires GROQ_API_KEY)."""
        import os

        if not os.environ.get("GROQ_API_KEY"):
            pytest.skip("GROQ_API_KEY not set")

        result = run_agent("Reply with the single word: pong")

        assert result.output
        assert result.model
