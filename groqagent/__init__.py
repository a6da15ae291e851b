"""GroqAgent demo application.

Picks a hosted model from an OpenAI-compatible catalog, sends a prompt to it,
and relays the answer to a browser page through a small HTTP server.
"""

__version__ = "0.1.0"
