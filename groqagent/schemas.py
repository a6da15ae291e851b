"""Pydantic schemas for GroqAgent request/response contracts."""

from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, Field, field_validator


# --- Catalog ---


class ModelCandidate(BaseModel):
    """Normalized entry from a model catalog response."""

    id: str = Field(..., min_length=1)
    decommissioned: bool = False
    recommended: bool = False
    tags: list[str] = Field(default_factory=list)


# --- Agent ---


class AgentResult(BaseModel):
    """Result from a single agent run."""

    output: str
    model: str
    chunk_count: int = 0


# --- Request Schemas ---


class RunAgentRequest(BaseModel):
    """Request to run the agent on a prompt."""

    query: str = Field(..., min_length=1, description="Prompt forwarded to the model")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        """Reject prompts that are only whitespace."""
        if not value.strip():
            raise ValueError("query must not be blank")
        return value.strip()


# --- Response Schemas ---


class RunAgentResponse(BaseModel):
    """Response from an agent run."""

    output: str
    model: str


class ErrorResponse(BaseModel):
    """Error response for failed requests."""

    detail: str
    error_code: str | None = None
    hints: list[str] = Field(default_factory=list)


# --- Health Check ---


class HealthResponse(BaseModel):
    """Health check response."""

    server: Literal["healthy", "unhealthy"] = "healthy"
    api_key_configured: bool = False
    model_override: str | None = None
