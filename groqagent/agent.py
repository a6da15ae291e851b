"""Agent runner: sends one prompt to an OpenAI-compatible chat endpoint."""

from __future__ import annotations

import json
import logging

import httpx

from groqagent.config import Settings, load_settings
from groqagent.model_selector import select_model
from groqagent.schemas import AgentResult

logger = logging.getLogger(__name__)

STREAM_PREFIX = "data:"
STREAM_DONE = "[DONE]"

AUTH_HINT = "If you see auth errors, ensure GROQ_API_KEY is correct and not expired."
QUOTA_HINT = "If you see quota errors, check Groq console usage/billing."
MODEL_HINT = "To force a model, set GROQ_MODEL in .env to an available model id."


class AgentRunError(Exception):
    """Raised when the completion request fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.hints = troubleshooting_hints(status_code)


def troubleshooting_hints(status_code: int | None) -> list[str]:
    """Suggest fixes for a failed completion request."""
    if status_code in (401, 403):
        return [AUTH_HINT]
    if status_code == 429:
        return [QUOTA_HINT]
    if status_code in (400, 404):
        return [MODEL_HINT]
    return [AUTH_HINT, QUOTA_HINT, MODEL_HINT]


def _build_payload(prompt: str, model: str, max_tokens: int) -> dict:
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "stream": True,
    }


def _parse_stream_line(line: str) -> str | None:
    """Extract the text fragment from one server-sent event line.

    Returns None for keep-alives, non-data lines and undecodable payloads.
    """
    line = line.strip()
    if not line.startswith(STREAM_PREFIX):
        return None
    data = line[len(STREAM_PREFIX):].strip()
    if not data or data == STREAM_DONE:
        return None
    try:
        event = json.loads(data)
    except (json.JSONDecodeError, RecursionError):
        logger.debug(f"Skipping undecodable stream line: {data[:80]}")
        return None
    if not isinstance(event, dict):
        return None

    choices = event.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or choices[0].get("message")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


def _stream_completion(
    client: httpx.Client,
    url: str,
    headers: dict[str, str],
    payload: dict,
) -> tuple[str, int]:
    fragments: list[str] = []
    with client.stream("POST", url, headers=headers, json=payload) as response:
        if not response.is_success:
            body = response.read().decode("utf-8", errors="replace")
            raise AgentRunError(
                f"Completion request failed: ({response.status_code}) {response.reason_phrase} {body}".rstrip(),
                status_code=response.status_code,
            )
        for line in response.iter_lines():
            if line.strip() == f"{STREAM_PREFIX} {STREAM_DONE}":
                break
            fragment = _parse_stream_line(line)
            if fragment:
                fragments.append(fragment)
    return "".join(fragments), len(fragments)


def run_agent(
    prompt: str,
    settings: Settings | None = None,
    *,
    client: httpx.Client | None = None,
) -> AgentResult:
    """Run a prompt against the configured model and collect the answer.

    Args:
        prompt: Prompt text
        settings: Runtime settings (loaded from the environment if omitted)
        client: Optional httpx client used for both catalog and completion

    Returns:
        AgentResult with the concatenated output and the model used

    Raises:
        ValueError: If the prompt is empty
        AgentRunError: If the completion request fails
    """
    if not prompt or not prompt.strip():
        raise ValueError("Prompt must not be empty")

    settings = settings or load_settings()
    model = select_model(
        settings.base_url,
        settings.api_key,
        settings.model_override,
        timeout=settings.catalog_timeout,
        client=client,
    )
    logger.info(f"Running agent task with model {model}")

    url = f"{settings.base_url.rstrip('/')}/chat/completions"
    headers = {
        "Authorization": f"Bearer {settings.api_key}",
        "Accept": "text/event-stream",
    }
    payload = _build_payload(prompt, model, settings.max_tokens)

    try:
        if client is not None:
            output, chunk_count = _stream_completion(client, url, headers, payload)
        else:
            with httpx.Client(timeout=settings.agent_timeout) as own_client:
                output, chunk_count = _stream_completion(own_client, url, headers, payload)
    except httpx.ConnectError as e:
        logger.error(f"Failed to connect to completion endpoint: {e}")
        raise AgentRunError(f"Completion endpoint unavailable: {e}") from e
    except httpx.TimeoutException as e:
        logger.error(f"Completion request timed out: {e}")
        raise AgentRunError("Completion request timed out") from e
    except httpx.HTTPError as e:
        logger.error(f"Completion request failed: {e}")
        raise AgentRunError(f"Completion request failed: {e}") from e

    logger.info(f"Agent run finished: model={model}, chunks={chunk_count}")
    return AgentResult(output=output, model=model, chunk_count=chunk_count)
