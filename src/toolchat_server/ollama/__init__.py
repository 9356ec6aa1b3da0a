"""Ollama client wrapper and integration layer.

This package provides async client wrappers for communicating with the Ollama API.
All Ollama interactions are async and use streaming by default.
"""

from toolchat_server.ollama.client import OllamaClient

__all__ = ["OllamaClient"]
