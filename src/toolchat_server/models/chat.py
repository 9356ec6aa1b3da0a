"""Pydantic models for chat API requests and responses.

This module defines the request body of the MCP chat endpoints, the error
object returned before a stream starts, and the SSE event payloads.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatSettings(BaseModel):
    """Model selection and sampling settings sent by the caller.

    Unknown fields are accepted and ignored so that richer client settings
    objects can be passed through unchanged.
    """

    model: str = Field(description="Ollama model name, e.g. qwen3:latest")
    temperature: float | None = Field(default=None, description="Sampling temperature")
    max_tokens: int | None = Field(
        default=None,
        alias="maxTokens",
        description="Maximum number of tokens to generate (num_predict)",
    )
    context_length: int | None = Field(
        default=None,
        alias="contextLength",
        description="Context window size in tokens (num_ctx)",
    )

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_ollama_options(self) -> dict[str, Any] | None:
        """Map the settings onto Ollama request options."""
        options: dict[str, Any] = {}
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.context_length is not None:
            options["num_ctx"] = self.context_length
        return options or None


class ChatMessage(BaseModel):
    """One role-tagged message of the caller's conversation."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[dict[str, Any]] | None = None
    tool_name: str | None = None

    def to_ollama(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MCPChatRequest(BaseModel):
    """Request body for POST /api/v1/chat/mcp and its SSE variant."""

    chatSettings: ChatSettings
    messages: list[ChatMessage]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "chatSettings": {"model": "qwen3:latest", "temperature": 0.7},
                "messages": [
                    {
                        "role": "user",
                        "content": "What tools are available from the SEC EDGAR MCP server?",
                    }
                ],
            }
        }
    )


class ErrorResponse(BaseModel):
    """Error object returned when a request fails before streaming begins."""

    message: str
    status: int = 500


class ContentDeltaEvent(BaseModel):
    """SSE event carrying one text chunk."""

    content: str


class DoneEvent(BaseModel):
    """SSE event sent after the last chunk of a completed stream."""

    iterations: int = Field(description="Number of model calls made")
    truncated: bool = Field(
        default=False,
        description="Whether the loop stopped at the iteration bound",
    )


class ErrorEvent(BaseModel):
    """SSE event terminating a stream that failed mid-way."""

    message: str
    status: int = 500
