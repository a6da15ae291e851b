"""HTTP server relaying agent output to the browser page."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from groqagent import __version__
from groqagent.agent import AgentRunError, run_agent
from groqagent.config import (
    API_KEY_ENV,
    ConfigError,
    get_model_override,
    load_env,
    load_settings,
    resolve_home,
)
from groqagent.schemas import (
    ErrorResponse,
    HealthResponse,
    RunAgentRequest,
    RunAgentResponse,
)

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

STATIC_DIR = Path(__file__).parent / "static"
INDEX_PATH = STATIC_DIR / "index.html"

load_env()
logger.info(f"Agent home set to: {resolve_home()}")

app = FastAPI(
    title="GroqAgent Server",
    description="Runs a prompt against a hosted model and returns the answer",
    version=__version__,
)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


class AgentRequestError(Exception):
    """Raised when an agent run fails in a way the client should see."""

    def __init__(self, response: ErrorResponse, status_code: int):
        super().__init__(response.detail)
        self.response = response
        self.status_code = status_code


# --- HTTP Endpoints ---


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the browser page."""
    if not INDEX_PATH.exists():
        raise HTTPException(status_code=404, detail="Not found")
    return HTMLResponse(INDEX_PATH.read_text(encoding="utf-8"))


@app.post("/run-agent", response_model=RunAgentResponse)
def run_agent_endpoint(request: RunAgentRequest) -> RunAgentResponse:
    """Run the agent on the submitted query.

    Args:
        request: RunAgentRequest with the prompt

    Returns:
        RunAgentResponse with the model output
    """
    logger.info(f"Received agent request: {request.query[:80]!r}")

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        raise AgentRequestError(
            ErrorResponse(detail=str(e), error_code="CONFIG_ERROR"),
            status_code=500,
        ) from e

    try:
        result = run_agent(request.query, settings)
    except AgentRunError as e:
        logger.error(f"Agent run error: {e}")
        raise AgentRequestError(
            ErrorResponse(detail=str(e), error_code="AGENT_ERROR", hints=e.hints),
            status_code=502,
        ) from e

    logger.info(f"Completed agent request: model={result.model}, chars={len(result.output)}")
    return RunAgentResponse(output=result.output, model=result.model)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report server status and configuration presence."""
    return HealthResponse(
        server="healthy",
        api_key_configured=bool(os.environ.get(API_KEY_ENV)),
        model_override=get_model_override(),
    )


@app.exception_handler(AgentRequestError)
async def agent_request_error_handler(request, exc: AgentRequestError) -> JSONResponse:
    """Return structured errors for failed agent runs."""
    return JSONResponse(status_code=exc.status_code, content=exc.response.model_dump())


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail=str(exc),
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )
