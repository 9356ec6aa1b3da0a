"""Chat API endpoints.

This module provides the tool-augmented chat endpoints. Both return the live
output of one conversation loop: as plain text chunks, or as SSE events.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from toolchat_server.dependencies import get_ollama_client, get_tool_context
from toolchat_server.models.chat import ErrorResponse, MCPChatRequest
from toolchat_server.ollama import OllamaClient
from toolchat_server.services import start_chat
from toolchat_server.tools import ToolContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/mcp", responses=ERROR_RESPONSES)
async def chat_mcp(
    request_body: MCPChatRequest,
    request: Request,
    ollama_client: OllamaClient = Depends(get_ollama_client),
    context: ToolContext = Depends(get_tool_context),
) -> StreamingResponse:
    """Stream a tool-augmented chat response as plain text.

    Model tokens are forwarded as they arrive, interleaved with tool call and
    tool result annotations. If the model backend fails mid-stream the
    response is cut at that point; everything already sent stays valid.

    Args:
        request_body: Chat settings and the conversation so far
        request: FastAPI request object
        ollama_client: Injected Ollama client
        context: Injected MCP tool context

    Returns:
        StreamingResponse with text/plain chunks

    Raises:
        ToolchatError: Returned as {message, status} before streaming begins
    """
    settings = request.app.state.settings
    stream = start_chat(
        ollama_client=ollama_client,
        context=context,
        chat_settings=request_body.chatSettings,
        messages=request_body.messages,
        max_iterations=settings.max_iterations,
    )
    return StreamingResponse(stream.iter_text(), media_type="text/plain; charset=utf-8")


@router.post("/mcp/stream", responses=ERROR_RESPONSES)
async def chat_mcp_events(
    request_body: MCPChatRequest,
    request: Request,
    ollama_client: OllamaClient = Depends(get_ollama_client),
    context: ToolContext = Depends(get_tool_context),
) -> EventSourceResponse:
    """Stream a tool-augmented chat response via Server-Sent Events (SSE).

    SSE Events:
        - content_delta: Each text chunk (model text or tool annotation)
        - error: The stream failed; earlier chunks remain valid
        - done: The loop finished, with iteration count and truncation flag
    """
    settings = request.app.state.settings
    stream = start_chat(
        ollama_client=ollama_client,
        context=context,
        chat_settings=request_body.chatSettings,
        messages=request_body.messages,
        max_iterations=settings.max_iterations,
    )
    return EventSourceResponse(stream.iter_events())
