"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from toolchat_server.models.chat import (
    ChatMessage,
    ChatSettings,
    ContentDeltaEvent,
    DoneEvent,
    ErrorEvent,
    ErrorResponse,
    MCPChatRequest,
)
from toolchat_server.models.health import HealthResponse
from toolchat_server.models.mcp import MCPStatusResponse, MCPToolInfo

__all__ = [
    "ChatMessage",
    "ChatSettings",
    "ContentDeltaEvent",
    "DoneEvent",
    "ErrorEvent",
    "ErrorResponse",
    "HealthResponse",
    "MCPChatRequest",
    "MCPStatusResponse",
    "MCPToolInfo",
]
