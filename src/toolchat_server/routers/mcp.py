"""MCP status endpoint router."""

import logging

from fastapi import APIRouter, Request

from toolchat_server.models.mcp import MCPStatusResponse, MCPToolInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mcp", tags=["mcp"])


@router.get("/status", response_model=MCPStatusResponse)
async def mcp_status(request: Request) -> MCPStatusResponse:
    """Report the connected MCP servers and the aggregated tool catalog.

    Args:
        request: The FastAPI request object.

    Returns:
        MCPStatusResponse: Connection and catalog state, or the startup error.
    """
    context = getattr(request.app.state, "tool_context", None)
    error = getattr(request.app.state, "tool_context_error", None)

    if context is None:
        return MCPStatusResponse(
            initialized=False,
            error=error.message if error is not None else None,
        )

    return MCPStatusResponse(
        initialized=True,
        connected_servers=context.connected_servers,
        tools=[
            MCPToolInfo(
                name=descriptor.name,
                description=descriptor.description,
                server=descriptor.server_name,
            )
            for descriptor in context.catalog
        ],
        tool_count=context.tool_count,
    )
