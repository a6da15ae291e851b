"""Environment-driven configuration for GroqAgent."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Groq's OpenAI-compatible endpoint
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"

# Completion settings
DEFAULT_MAX_TOKENS = 200
DEFAULT_PROMPT = "Find latest AI news in 5 concise bullet points"

# Timeouts
CATALOG_TIMEOUT = 10.0  # seconds
AGENT_TIMEOUT = 60.0  # seconds

# Environment variable names
API_KEY_ENV = "GROQ_API_KEY"
MODEL_ENV = "GROQ_MODEL"
BASE_URL_ENV = "GROQ_BASE_URL"
MAX_TOKENS_ENV = "GROQ_MAX_TOKENS"
HOME_ENV = "ZYPHER_HOME"


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


class MissingEnvironmentError(ConfigError):
    """Raised when a required environment variable is not set."""

    pass


@dataclass
class Settings:
    """Runtime settings for the agent and server."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model_override: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    catalog_timeout: float = CATALOG_TIMEOUT
    agent_timeout: float = AGENT_TIMEOUT


def load_env(env_path: Path | str | None = None) -> bool:
    """Load a .env file into the process environment.

    Existing variables are not overridden.

    Args:
        env_path: Path to the .env file (defaults to ./.env)

    Returns:
        True if a file was found and loaded
    """
    path = Path(env_path) if env_path else Path.cwd() / ".env"
    if not path.exists():
        return False
    loaded = load_dotenv(dotenv_path=path, override=False)
    logger.debug(f"Loaded environment from {path}")
    return loaded


def get_required_env(name: str) -> str:
    """Return an environment variable or raise if it is unset or empty."""
    value = os.environ.get(name)
    if not value:
        raise MissingEnvironmentError(f"Environment variable {name} is not set")
    return value


def get_model_override() -> str | None:
    """Return the model override from the environment, if any."""
    return os.environ.get(MODEL_ENV) or None


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def resolve_home() -> Path:
    """Resolve the agent home directory.

    Checks ZYPHER_HOME, then HOME, then USERPROFILE, then the working directory.
    """
    for name in (HOME_ENV, "HOME", "USERPROFILE"):
        value = os.environ.get(name)
        if value:
            return Path(value)
    return Path.cwd()


def load_settings() -> Settings:
    """Build Settings from the environment.

    Raises:
        MissingEnvironmentError: If GROQ_API_KEY is not set
        ConfigError: If an optional value is malformed
    """
    return Settings(
        api_key=get_required_env(API_KEY_ENV),
        base_url=(os.environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL).rstrip("/"),
        model_override=get_model_override(),
        max_tokens=_int_env(MAX_TOKENS_ENV, DEFAULT_MAX_TOKENS),
    )
