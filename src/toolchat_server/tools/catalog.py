"""Tool catalog aggregated from all connected MCP servers.

Servers do not agree on how a tool listing is returned, so every listing is
first classified into one of a closed set of shapes and only then flattened
into records. An unrecognized shape is an error rather than an empty list.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from toolchat_server.errors import CatalogError

logger = logging.getLogger(__name__)


class ListingShape(str, Enum):
    """Recognized layouts of a tools/list response."""

    SEQUENCE = "sequence"  # [tool, ...]
    TOOLS_KEY = "tools_key"  # {"tools": [tool, ...]} or an object with .tools
    RESULT_KEY = "result_key"  # {"result": [tool, ...]}
    MAPPING = "mapping"  # {"any": tool, ...}


@dataclass
class ToolDescriptor:
    """One capability exposed by an MCP server.

    Attributes:
        name: Tool name, unique within the catalog
        description: Human-readable description for the model
        input_schema: JSON schema of the tool arguments
        server_name: Name of the owning server (lookup only)
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)
    server_name: str = ""

    def to_ollama_tool(self) -> dict[str, Any]:
        """Project the descriptor into Ollama's function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


def _get_value(obj: Any, key: str, default: Any = None) -> Any:
    """Read a key from a mapping or an attribute from an object."""
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def classify_listing(raw: Any) -> tuple[ListingShape, list[Any]]:
    """Decode a raw tools/list response into its shape and its records.

    Args:
        raw: Whatever the server returned for tools/list

    Returns:
        tuple[ListingShape, list]: The detected shape and the tool records

    Raises:
        CatalogError: If the response matches none of the known shapes.
    """
    if isinstance(raw, (list, tuple)):
        return ListingShape.SEQUENCE, list(raw)

    if isinstance(raw, Mapping):
        if isinstance(raw.get("tools"), (list, tuple)):
            return ListingShape.TOOLS_KEY, list(raw["tools"])
        if isinstance(raw.get("result"), (list, tuple)):
            return ListingShape.RESULT_KEY, list(raw["result"])
        return ListingShape.MAPPING, list(raw.values())

    # MCP SDK result objects (ListToolsResult) expose the list as an attribute
    tools = getattr(raw, "tools", None)
    if isinstance(tools, (list, tuple)):
        return ListingShape.TOOLS_KEY, list(tools)

    raise CatalogError(f"Unexpected tools format: {type(raw).__name__}")


def descriptors_from_listing(raw: Any, server_name: str) -> list[ToolDescriptor]:
    """Turn a raw listing into descriptors, dropping records without a name."""
    shape, records = classify_listing(raw)
    logger.debug(
        f"Server {server_name} listed {len(records)} record(s) as {shape.value}"
    )

    descriptors: list[ToolDescriptor] = []
    for record in records:
        if record is None or isinstance(record, (str, bytes, int, float, bool)):
            continue

        name = _get_value(record, "name")
        if not name or not isinstance(name, str):
            continue

        input_schema = _get_value(record, "inputSchema")
        if input_schema is None:
            input_schema = _get_value(record, "input_schema")

        descriptors.append(
            ToolDescriptor(
                name=name,
                description=_get_value(record, "description") or "",
                input_schema=(
                    dict(input_schema) if isinstance(input_schema, Mapping) else {}
                ),
                server_name=server_name,
            )
        )

    return descriptors


class ToolCatalog:
    """Name-keyed registry of every tool across all connected servers."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        """Add a tool. A later registration under the same name replaces the earlier one."""
        existing = self._tools.get(descriptor.name)
        if existing is not None:
            logger.warning(
                f"Tool name collision: {descriptor.name} from server "
                f"{descriptor.server_name} replaces the one from server "
                f"{existing.server_name}"
            )
        self._tools[descriptor.name] = descriptor

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def to_ollama_tools(self) -> list[dict[str, Any]]:
        """Project every entry into Ollama's function-calling format."""
        return [descriptor.to_ollama_tool() for descriptor in self._tools.values()]


async def query_all(connections: Mapping[str, Any]) -> ToolCatalog:
    """Build a catalog by listing tools on every connection, in order.

    Args:
        connections: Connections keyed by server name. Each must provide an
                     async ``list_tools()``.

    Returns:
        ToolCatalog: The aggregated catalog

    Raises:
        CatalogError: If any server fails to list its tools or returns an
                      unrecognized shape.
    """
    catalog = ToolCatalog()

    for server_name, connection in connections.items():
        try:
            raw = await connection.list_tools()
            descriptors = descriptors_from_listing(raw, server_name)
        except Exception as e:
            cause = str(e) or type(e).__name__
            logger.error(f"Failed to list MCP tools on {server_name}: {cause}")
            raise CatalogError(
                f"Failed to list MCP tools on {server_name}: {cause}"
            ) from e

        for descriptor in descriptors:
            catalog.register(descriptor)
            logger.info(f"MCP tool registered: {descriptor.name} (from '{server_name}')")

    logger.info(f"Processed tools count: {len(catalog)}")
    return catalog
