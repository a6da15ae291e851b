"""MCP server package for GroqAgent."""
