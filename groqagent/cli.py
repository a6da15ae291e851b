"""CLI for GroqAgent - model selection, one-shot runs and the HTTP server."""

from __future__ import annotations

import sys

import click

from groqagent import __version__
from groqagent.config import DEFAULT_PROMPT


@click.group()
@click.version_option(version=__version__, prog_name="groqagent")
def main() -> None:
    """GroqAgent - run prompts against an auto-selected hosted model.

    Reads GROQ_API_KEY (and optionally GROQ_MODEL) from the environment or .env.
    """
    from groqagent.config import load_env

    load_env()


@main.command()
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int, host: str, reload: bool) -> None:
    """Start the GroqAgent HTTP server."""
    import uvicorn

    click.echo(f"Server running at http://{host}:{port}")
    uvicorn.run(
        "groqagent.server:app",
        host=host,
        port=port,
        reload=reload,
    )


@main.command()
@click.argument("prompt", default=DEFAULT_PROMPT)
def run(prompt: str) -> None:
    """Run a prompt and print the model's answer.

    \b
    Example:
        groqagent run
        groqagent run "Summarize today's top three tech headlines"
    """
    from groqagent.agent import AgentRunError, run_agent
    from groqagent.config import ConfigError, load_settings

    try:
        settings = load_settings()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Running agent task...", err=True)
    try:
        result = run_agent(prompt, settings)
    except AgentRunError as e:
        click.echo(f"Agent run error: {e}", err=True)
        click.echo("\nTroubleshooting suggestions:", err=True)
        for hint in e.hints:
            click.echo(f"- {hint}", err=True)
        sys.exit(1)

    click.echo(f"Using model: {result.model}", err=True)
    click.echo(result.output)


@main.command("pick-model")
@click.option("--base-url", default=None, help="Override the API base URL")
@click.option("--raw", is_flag=True, help="Output raw JSON instead of plain text")
def pick_model(base_url: str | None, raw: bool) -> None:
    """Print the model id that would be used.

    \b
    Example:
        groqagent pick-model
        groqagent pick-model --base-url https://api.groq.com/openai/v1
    """
    from groqagent.config import ConfigError, load_settings
    from groqagent.model_selector import select_model

    try:
        settings = load_settings()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    model = select_model(
        base_url or settings.base_url,
        settings.api_key,
        settings.model_override,
        timeout=settings.catalog_timeout,
    )

    if raw:
        import json
        click.echo(json.dumps({"model": model, "override": settings.model_override is not None}))
        return

    click.echo(model)


@main.command()
def mcp() -> None:
    """Run the MCP server exposing GroqAgent tools.

    \b
    Configure in .mcp.json:
        {
            "mcpServers": {
                "groqagent": {
                    "command": "groqagent",
                    "args": ["mcp"]
                }
            }
        }
    """
    from mcp_groqagent.server import mcp as mcp_server
    mcp_server.run()


if __name__ == "__main__":
    main()
