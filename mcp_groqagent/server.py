"""MCP server exposing GroqAgent tools to MCP clients."""

from mcp.server.fastmcp import FastMCP
import httpx

from groqagent.config import load_env, load_settings
from groqagent.model_selector import select_model_async

mcp = FastMCP("groqagent")
SERVER = "http://localhost:8000"


@mcp.tool()
async def pick_model() -> dict:
    """Return the model id GroqAgent would use right now.

    Honors GROQ_MODEL; otherwise queries the model catalog.
    """
    load_env()
    settings = load_settings()
    model = await select_model_async(
        settings.base_url,
        settings.api_key,
        settings.model_override,
        timeout=settings.catalog_timeout,
    )
    return {"model": model}


@mcp.tool()
async def run_agent(prompt: str) -> dict:
    """Run a prompt through the local GroqAgent server.

    Args:
        prompt: Prompt text forwarded to the model

    Returns:
        The server's JSON response (output and model, or an error)
    """
    async with httpx.AsyncClient(timeout=90.0) as client:
        r = await client.post(f"{SERVER}/run-agent", json={"query": prompt})
        return r.json()


if __name__ == "__main__":
    mcp.run()
