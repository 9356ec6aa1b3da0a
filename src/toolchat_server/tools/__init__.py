"""Tool catalog, invocation and shared context layer.

This package aggregates the tools of every connected MCP server into one
catalog, converts them to Ollama-compatible schemas, and executes model-issued
tool calls against the owning server.
"""

from toolchat_server.tools.catalog import (
    ListingShape,
    ToolCatalog,
    ToolDescriptor,
    classify_listing,
    query_all,
)
from toolchat_server.tools.context import ToolContext
from toolchat_server.tools.invoker import (
    ToolCallRequest,
    ToolCallResult,
    ToolInvoker,
    decode_arguments,
)

__all__ = [
    "ListingShape",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolCatalog",
    "ToolContext",
    "ToolDescriptor",
    "ToolInvoker",
    "classify_listing",
    "decode_arguments",
    "query_all",
]
