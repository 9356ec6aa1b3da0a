"""Tool call decoding, dispatch and failure isolation.

A failed tool call never aborts the conversation. Every failure is turned into
a result carrying an error payload so the model can read it and react.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from toolchat_server.errors import (
    ArgumentDecodeError,
    ToolchatError,
    ToolExecutionError,
    UnknownToolError,
)
from toolchat_server.tools.catalog import ToolCatalog

logger = logging.getLogger(__name__)


def decode_arguments(raw: Any) -> dict[str, Any]:
    """Decode tool call arguments into a mapping.

    Text is trimmed and parsed as JSON; a mapping is used as is.

    Raises:
        ArgumentDecodeError: For invalid or too deeply nested JSON, JSON that
                             is not an object, or any other argument type.
    """
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw.strip())
        except (ValueError, RecursionError) as e:
            raise ArgumentDecodeError(f"Invalid JSON arguments: {e}") from e
        if not isinstance(decoded, dict):
            raise ArgumentDecodeError(
                f"Arguments must decode to an object, got {type(decoded).__name__}"
            )
        return decoded

    if isinstance(raw, Mapping):
        return dict(raw)

    raise ArgumentDecodeError(f"Unexpected arguments type: {type(raw).__name__}")


def to_jsonable(result: Any) -> Any:
    """Convert an MCP SDK result object into plain JSON-compatible data."""
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return result


def _render_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


@dataclass
class ToolCallRequest:
    """A model-issued request to invoke a named tool."""

    name: str
    arguments: Any = None

    @staticmethod
    def from_ollama(tool_call: Any) -> "ToolCallRequest":
        """Build a request from an Ollama tool call.

        Ollama emits ``{"function": {"name": ..., "arguments": ...}}``.
        """
        function = {}
        if isinstance(tool_call, Mapping) and isinstance(
            tool_call.get("function"), Mapping
        ):
            function = tool_call["function"]
        return ToolCallRequest(
            name=function.get("name") or "",
            arguments=function.get("arguments"),
        )


@dataclass
class ToolCallResult:
    """Outcome of one tool call, successful or not."""

    tool_name: str
    payload: Any
    is_error: bool = False

    @staticmethod
    def failure(tool_name: str, cause: str) -> "ToolCallResult":
        return ToolCallResult(
            tool_name=tool_name,
            payload={"error": f"Failed to execute tool {tool_name}: {cause}"},
            is_error=True,
        )

    def to_message(self) -> dict[str, Any]:
        """Serialize as a tool-role message for the conversation."""
        return {
            "role": "tool",
            "tool_name": self.tool_name,
            "content": json.dumps(self.payload, ensure_ascii=False, default=str),
        }

    def annotation(self) -> str:
        """Human-readable block streamed to the caller."""
        label = "Tool Error" if self.is_error else "Tool Result"
        return (
            f"**{label} ({self.tool_name}):**\n"
            f"```json\n{_render_json(self.payload)}\n```\n\n"
        )


class ToolInvoker:
    """Executes tool calls against the connection owning each tool.

    Attributes:
        catalog: The aggregated tool catalog
        connections: Connections keyed by server name
    """

    def __init__(self, catalog: ToolCatalog, connections: Mapping[str, Any]) -> None:
        self.catalog = catalog
        self.connections = connections

    async def _dispatch(self, request: ToolCallRequest) -> Any:
        arguments = decode_arguments(request.arguments)

        descriptor = self.catalog.get(request.name)
        if descriptor is None:
            raise UnknownToolError(request.name)

        connection = self.connections.get(descriptor.server_name)
        if connection is None:
            raise ToolExecutionError(
                f"MCP server {descriptor.server_name} is not connected"
            )

        logger.info(f"Calling tool {request.name} with args: {arguments}")
        try:
            return await connection.call_tool(request.name, arguments)
        except ToolchatError:
            raise
        except Exception as e:
            raise ToolExecutionError(str(e) or type(e).__name__) from e

    async def execute(self, request: ToolCallRequest) -> ToolCallResult:
        """Run one tool call and fold any failure into its result.

        Returns:
            ToolCallResult: Either the tool's output or an error payload.
        """
        try:
            result = await self._dispatch(request)
        except ToolchatError as e:
            logger.error(f"Error calling MCP tool {request.name}: {e}")
            return ToolCallResult.failure(request.name, e.message)

        payload = to_jsonable(result)
        is_error = isinstance(payload, Mapping) and payload.get("isError") is True
        if is_error:
            logger.warning(f"MCP tool {request.name} reported an error result")
        return ToolCallResult(tool_name=request.name, payload=payload, is_error=is_error)
