"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific domain (health, mcp, chat).
"""

from toolchat_server.routers import chat, health, mcp

__all__ = [
    "chat",
    "health",
    "mcp",
]
