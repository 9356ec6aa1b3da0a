"""Process-wide tool context built once at startup.

The context owns every MCP connection through a single ``AsyncExitStack``,
the aggregated catalog and the invoker. It is created in the application
lifespan, only read by request handlers, and closed on shutdown.
"""

import logging
from collections.abc import Mapping
from contextlib import AsyncExitStack
from typing import Any

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.servers import ServerDescriptor, connect_all, load_mcp_config
from toolchat_server.tools.catalog import ToolCatalog, query_all
from toolchat_server.tools.invoker import ToolInvoker

logger = logging.getLogger(__name__)


class ToolContext:
    """Connections, catalog and invoker shared by all chat requests.

    Attributes:
        connections: Connections keyed by server name, in configuration order
        catalog: The aggregated tool catalog
        invoker: Invoker bound to the catalog and connections
    """

    def __init__(
        self,
        connections: Mapping[str, Any],
        catalog: ToolCatalog,
        exit_stack: AsyncExitStack | None = None,
    ) -> None:
        self.connections = dict(connections)
        self.catalog = catalog
        self.invoker = ToolInvoker(catalog, self.connections)
        self._exit_stack = exit_stack

    @classmethod
    async def create(
        cls,
        descriptors: list[ServerDescriptor],
        connect_timeout: float = 30.0,
        list_tools_timeout: float = 30.0,
        tool_call_timeout: float = 120.0,
    ) -> "ToolContext":
        """Connect to every server and build the catalog.

        Any connection opened before a failure is released before the error
        propagates.

        Raises:
            ServerConnectionError: If a server cannot be reached or none connect.
            CatalogError: If any server fails to list its tools.
        """
        exit_stack = AsyncExitStack()
        try:
            connections = await connect_all(
                descriptors,
                exit_stack,
                connect_timeout=connect_timeout,
                list_tools_timeout=list_tools_timeout,
                tool_call_timeout=tool_call_timeout,
            )
            catalog = await query_all(connections)
        except BaseException:
            await _close_quietly(exit_stack)
            raise

        return cls(connections, catalog, exit_stack)

    @classmethod
    async def from_settings(cls, settings: ToolchatServerSettings) -> "ToolContext":
        """Load mcp.json from settings and create the context.

        Raises:
            ConfigurationError: If mcp.json is missing or invalid.
        """
        descriptors = load_mcp_config(settings.resolved_mcp_config_path)
        return await cls.create(
            descriptors,
            connect_timeout=settings.connect_timeout,
            list_tools_timeout=settings.list_tools_timeout,
            tool_call_timeout=settings.tool_call_timeout,
        )

    @property
    def connected_servers(self) -> list[str]:
        return list(self.connections)

    @property
    def tool_count(self) -> int:
        return len(self.catalog)

    async def aclose(self) -> None:
        """Release every connection. Safe to call more than once."""
        if self._exit_stack is not None:
            stack, self._exit_stack = self._exit_stack, None
            await stack.aclose()
            logger.info("MCP connections closed")


async def _close_quietly(exit_stack: AsyncExitStack) -> None:
    try:
        await exit_stack.aclose()
    except Exception:
        logger.exception("Error releasing MCP connections after failed startup")
