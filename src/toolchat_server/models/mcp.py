"""Pydantic models for the MCP status endpoint."""

from pydantic import BaseModel, Field


class MCPToolInfo(BaseModel):
    """One catalog entry as reported by the status endpoint."""

    name: str
    description: str = ""
    server: str = Field(description="Name of the server providing the tool")


class MCPStatusResponse(BaseModel):
    """Response body for GET /api/v1/mcp/status."""

    initialized: bool = Field(description="Whether the tool context was built")
    connected_servers: list[str] = Field(default_factory=list)
    tools: list[MCPToolInfo] = Field(default_factory=list)
    tool_count: int = 0
    error: str | None = Field(
        default=None,
        description="Startup error when the tool context failed to build",
    )
