"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject the settings, the Ollama client and the tool
context created at startup.
"""

import copy
from functools import lru_cache

from fastapi import Request

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.errors import ContextUnavailableError
from toolchat_server.ollama import OllamaClient
from toolchat_server.tools import ToolContext


@lru_cache
def get_settings() -> ToolchatServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLCHAT_ prefix.

    Returns:
        ToolchatServerSettings: The application configuration settings.
    """
    return ToolchatServerSettings()


def get_ollama_client(request: Request) -> OllamaClient:
    """Get the Ollama client from app state.

    Raises:
        ContextUnavailableError: If the Ollama client is not initialized (503).
    """
    ollama_client = getattr(request.app.state, "ollama_client", None)
    if ollama_client is None:
        raise ContextUnavailableError("Ollama client not initialized")
    return ollama_client


def get_tool_context(request: Request) -> ToolContext:
    """Get the MCP tool context from app state.

    If the context failed to build at startup, a copy of the original error is
    raised so the caller sees its message and status. The stored error itself
    is never raised again, so its traceback does not grow per request.

    Raises:
        ToolchatError: The stored startup error, or ContextUnavailableError
                       (503) if the context was never built.
    """
    context = getattr(request.app.state, "tool_context", None)
    if context is not None:
        return context

    error = getattr(request.app.state, "tool_context_error", None)
    if error is not None:
        raise copy.copy(error)
    raise ContextUnavailableError("MCP tool context not initialized")
