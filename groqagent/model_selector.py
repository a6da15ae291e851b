"""Model selection against an OpenAI-compatible model catalog.

The selector asks ``{base_url}/models`` which models the account can use and
picks one, in order of preference:

1. an explicit override (no network call at all),
2. the first entry the catalog flags as recommended,
3. the first entry matching an ordered list of name patterns,
4. the first usable entry in catalog order.

Any failure to obtain or read the catalog degrades to ``FALLBACK_MODELS[0]``.
Callers always get a model id back; nothing here raises to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx

from groqagent.config import CATALOG_TIMEOUT
from groqagent.schemas import ModelCandidate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = CATALOG_TIMEOUT

# Safe choices likely to exist. Only the first is ever returned; the rest
# document alternatives a user can pin through GROQ_MODEL.
FALLBACK_MODELS = (
    "llama-3.1-8b-instant",
    "llama-3.1-70b-versatile",
    "mixtral-8x7b",
    "gemma2-9b-it",
    "llama3-70b",
    "llama-3.1-8b",
)

ID_FIELDS = ("id", "model_id", "name")
TAG_FIELDS = ("tags", "capabilities")


class CatalogError(Exception):
    """Base class for catalog lookup failures."""

    pass


class CatalogTransportError(CatalogError):
    """Raised when the catalog cannot be reached or returns a non-2xx status."""

    pass


class CatalogParseError(CatalogError):
    """Raised when the catalog body is not valid JSON."""

    pass


class EmptyCatalogError(CatalogError):
    """Raised when no usable model remains after normalization."""

    pass


# --- Candidate extraction ---


def _body_as_list(body: Any) -> list[Any] | None:
    return body if isinstance(body, list) else None


def _list_field(name: str) -> Callable[[Any], list[Any] | None]:
    def extract(body: Any) -> list[Any] | None:
        if not isinstance(body, dict):
            return None
        value = body.get(name)
        return value if isinstance(value, list) else None

    extract.__name__ = f"_list_field_{name}"
    return extract


# Tried in order; the first one returning a list wins.
CANDIDATE_EXTRACTORS: list[Callable[[Any], list[Any] | None]] = [
    _body_as_list,
    _list_field("data"),
    _list_field("models"),
    _list_field("result"),
]


def extract_candidates(body: Any) -> list[Any]:
    """Find the raw model list in a catalog response body.

    Accepts a bare list, or an object with a ``data``, ``models`` or
    ``result`` list. Anything else yields an empty list.
    """
    for extractor in CANDIDATE_EXTRACTORS:
        found = extractor(body)
        if found is not None:
            return found
    return []


# --- Normalization ---


def _entry_id(entry: Any) -> str:
    if isinstance(entry, dict):
        for key in ID_FIELDS:
            value = entry.get(key)
            if value:
                return str(value)
    return str(entry)


def _entry_tags(entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        return []
    raw = None
    for key in TAG_FIELDS:
        if entry.get(key) is not None:
            raw = entry[key]
            break
    if isinstance(raw, (list, tuple)):
        return [str(tag) for tag in raw]
    if isinstance(raw, dict):
        # Capability maps like {"vision": true, "tools": false}
        return [str(key) for key, enabled in raw.items() if enabled]
    return []


def _flag(value: Any) -> bool:
    """Coerce a catalog flag; empty lists and objects count as set."""
    if isinstance(value, (list, dict)):
        return True
    if isinstance(value, float) and value != value:
        return False
    return bool(value)


def _normalize_entry(entry: Any) -> ModelCandidate | None:
    model_id = _entry_id(entry)
    if not model_id:
        return None
    flags = entry if isinstance(entry, dict) else {}
    return ModelCandidate(
        id=model_id,
        decommissioned=_flag(flags.get("decommissioned")),
        recommended=_flag(flags.get("recommended")),
        tags=_entry_tags(entry),
    )


def normalize_candidates(raw_entries: list[Any]) -> list[ModelCandidate]:
    """Normalize raw catalog entries, dropping unusable ones.

    Entries without an id and entries flagged as decommissioned are removed.
    Catalog order is preserved.
    """
    candidates = []
    for entry in raw_entries:
        candidate = _normalize_entry(entry)
        if candidate is None or candidate.decommissioned:
            continue
        candidates.append(candidate)
    return candidates


# --- Preference ---


@dataclass(frozen=True)
class PreferenceMatcher:
    """Case-insensitive substring preference on model ids."""

    pattern: str
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(re.escape(self.pattern), re.IGNORECASE))

    def __call__(self, candidate: ModelCandidate) -> bool:
        return bool(self._regex.search(candidate.id))


# Heuristic order for Groq-hosted models
PREFERENCE_MATCHERS = [
    PreferenceMatcher("llama-3"),
    PreferenceMatcher("mixtral"),
    PreferenceMatcher("gemma"),
    PreferenceMatcher("llama"),
    PreferenceMatcher("mix"),
]


def choose_model(candidates: list[ModelCandidate]) -> str | None:
    """Pick a model id from normalized candidates.

    Args:
        candidates: Usable candidates in catalog order

    Returns:
        The chosen id, or None when there are no candidates
    """
    if not candidates:
        return None

    for candidate in candidates:
        if candidate.recommended:
            logger.info(f"Selected recommended model: {candidate.id}")
            return candidate.id

    for matcher in PREFERENCE_MATCHERS:
        for candidate in candidates:
            if matcher(candidate):
                logger.info(f"Selected model by heuristic ({matcher.pattern}): {candidate.id}")
                return candidate.id

    logger.info(f"No heuristic match; selecting first available model: {candidates[0].id}")
    return candidates[0].id


# --- Catalog transport ---


def _catalog_request(base_url: str, api_key: str) -> tuple[str, dict[str, str]]:
    url = f"{base_url.rstrip('/')}/models"
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }
    return url, headers


def _read_catalog_response(response: httpx.Response) -> Any:
    if not response.is_success:
        text = response.text
        raise CatalogTransportError(
            f"Failed to fetch models: ({response.status_code}) {response.reason_phrase} {text}".rstrip()
        )
    try:
        return response.json()
    except (ValueError, RecursionError) as e:
        raise CatalogParseError("Models endpoint returned invalid JSON.") from e


def fetch_catalog(
    base_url: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
) -> Any:
    """Fetch and decode the model catalog.

    Args:
        base_url: Root of the OpenAI-compatible API
        api_key: Bearer credential
        timeout: Request timeout in seconds
        client: Optional client to reuse (not closed here)

    Raises:
        CatalogTransportError: On network errors, timeouts and non-2xx status
        CatalogParseError: If the body is not JSON
    """
    url, headers = _catalog_request(base_url, api_key)
    try:
        if client is not None:
            response = client.get(url, headers=headers, timeout=timeout)
        else:
            with httpx.Client(timeout=timeout) as own_client:
                response = own_client.get(url, headers=headers)
    except httpx.TimeoutException as e:
        raise CatalogTransportError(f"Models request timed out after {timeout}s") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise CatalogTransportError(f"Failed to reach models endpoint: {e}") from e

    return _read_catalog_response(response)


async def fetch_catalog_async(
    base_url: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """Async variant of fetch_catalog."""
    url, headers = _catalog_request(base_url, api_key)
    try:
        if client is not None:
            response = await client.get(url, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(url, headers=headers)
    except httpx.TimeoutException as e:
        raise CatalogTransportError(f"Models request timed out after {timeout}s") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise CatalogTransportError(f"Failed to reach models endpoint: {e}") from e

    return _read_catalog_response(response)


# --- Selection ---


def _select_from_body(body: Any) -> str:
    candidates = normalize_candidates(extract_candidates(body))
    chosen = choose_model(candidates)
    if chosen is None:
        raise EmptyCatalogError("No non-decommissioned models found in API response")
    return chosen


def _fallback_model() -> str:
    logger.info(f"Using fallback model {FALLBACK_MODELS[0]} (alternatives: {', '.join(FALLBACK_MODELS[1:])})")
    return FALLBACK_MODELS[0]


def select_model(
    base_url: str,
    api_key: str,
    env_override: str | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
) -> str:
    """Determine which model id to use for inference.

    Args:
        base_url: Root of the OpenAI-compatible API
        api_key: Bearer credential for the catalog request
        env_override: Model id that bypasses the catalog when non-empty
        timeout: Catalog request timeout in seconds
        client: Optional httpx client to reuse

    Returns:
        A non-empty model id
    """
    if env_override:
        logger.info(f"Using model override: {env_override}")
        return env_override

    logger.info("Fetching available models to auto-select a valid model...")
    try:
        body = fetch_catalog(base_url, api_key, timeout=timeout, client=client)
        return _select_from_body(body)
    except CatalogError as e:
        logger.warning(f"Error while selecting model from catalog: {e}")

    return _fallback_model()


async def select_model_async(
    base_url: str,
    api_key: str,
    env_override: str | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Async variant of select_model.

    Cancelling the calling task while the catalog request is in flight aborts
    the request and returns the fallback model id.
    """
    if env_override:
        logger.info(f"Using model override: {env_override}")
        return env_override

    logger.info("Fetching available models to auto-select a valid model...")
    try:
        body = await fetch_catalog_async(base_url, api_key, timeout=timeout, client=client)
        return _select_from_body(body)
    except CatalogError as e:
        logger.warning(f"Error while selecting model from catalog: {e}")
    except asyncio.CancelledError:
        logger.warning("Model catalog request cancelled")

    return _fallback_model()
