"""Transport connectors for MCP servers.

Each configured server gets one ``ClientSession`` over either a stdio pipe or an
SSE channel. All transports are entered on a caller-owned ``AsyncExitStack`` so
that the owner decides when the subprocesses and HTTP streams are released.
"""

import asyncio
import logging
import os
from contextlib import AsyncExitStack
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from toolchat_server.errors import ServerConnectionError, ToolExecutionError
from toolchat_server.servers.types import (
    ServerDescriptor,
    SSEServerConfig,
    StdioServerConfig,
)

logger = logging.getLogger(__name__)


class ServerConnection:
    """Live handle to one connected MCP server.

    Attributes:
        name: The server name from mcp.json
        session: The initialized MCP client session
        list_tools_timeout: Deadline for a tools/list request, in seconds
        tool_call_timeout: Deadline for a tools/call request, in seconds
    """

    def __init__(
        self,
        name: str,
        session: ClientSession,
        list_tools_timeout: float = 30.0,
        tool_call_timeout: float = 120.0,
    ) -> None:
        self.name = name
        self.session = session
        self.list_tools_timeout = list_tools_timeout
        self.tool_call_timeout = tool_call_timeout

    async def list_tools(self) -> Any:
        """Return the raw tool listing from the server."""
        return await asyncio.wait_for(
            self.session.list_tools(), timeout=self.list_tools_timeout
        )

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a tool on the server and return its raw result.

        Raises:
            ToolExecutionError: If the call does not finish before the deadline.
        """
        try:
            return await asyncio.wait_for(
                self.session.call_tool(name, arguments=arguments),
                timeout=self.tool_call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ToolExecutionError(
                f"timed out after {self.tool_call_timeout}s on server {self.name}"
            ) from e


async def _open_transport(
    descriptor: ServerDescriptor, exit_stack: AsyncExitStack
) -> tuple[Any, Any]:
    """Enter the transport context for a descriptor and return its streams."""
    config = descriptor.config

    if isinstance(config, StdioServerConfig):
        # Merge overrides with the current environment so PATH etc. are preserved
        env = None
        if config.env:
            env = {**os.environ, **config.env}
        params = StdioServerParameters(
            command=config.command,
            args=list(config.args),
            env=env,
        )
        logger.info(
            f"Connecting to MCP server: {descriptor.name} via stdio "
            f"({config.command} {' '.join(config.args)})"
        )
        return await exit_stack.enter_async_context(stdio_client(params))

    if isinstance(config, SSEServerConfig):
        logger.info(f"Connecting to MCP server: {descriptor.name} at {config.url}")
        return await exit_stack.enter_async_context(
            sse_client(config.url, headers=config.headers)
        )

    raise ServerConnectionError.for_server(
        descriptor.name, f"unsupported transport {descriptor.transport}"
    )


async def connect_server(
    descriptor: ServerDescriptor,
    exit_stack: AsyncExitStack,
    connect_timeout: float = 30.0,
    list_tools_timeout: float = 30.0,
    tool_call_timeout: float = 120.0,
) -> ServerConnection:
    """Open a transport to one server and run the MCP handshake.

    Args:
        descriptor: The server to connect to
        exit_stack: Stack that will own the transport and session
        connect_timeout: Deadline for the initialize handshake, in seconds
        list_tools_timeout: Deadline passed on to the connection
        tool_call_timeout: Deadline passed on to the connection

    Returns:
        ServerConnection: The initialized connection

    Raises:
        ServerConnectionError: If the transport or the handshake fails.
    """
    try:
        read, write = await _open_transport(descriptor, exit_stack)
        session = await exit_stack.enter_async_context(ClientSession(read, write))
        await asyncio.wait_for(session.initialize(), timeout=connect_timeout)
    except ServerConnectionError:
        raise
    except asyncio.TimeoutError as e:
        raise ServerConnectionError.for_server(
            descriptor.name, f"handshake timed out after {connect_timeout}s"
        ) from e
    except Exception as e:
        logger.error(f"Failed to connect to MCP server {descriptor.name}: {e}")
        raise ServerConnectionError.for_server(
            descriptor.name, str(e) or type(e).__name__
        ) from e

    logger.info(f"Connected to MCP server: {descriptor.name}")
    return ServerConnection(
        name=descriptor.name,
        session=session,
        list_tools_timeout=list_tools_timeout,
        tool_call_timeout=tool_call_timeout,
    )


async def connect_all(
    descriptors: list[ServerDescriptor],
    exit_stack: AsyncExitStack,
    connect_timeout: float = 30.0,
    list_tools_timeout: float = 30.0,
    tool_call_timeout: float = 120.0,
) -> dict[str, ServerConnection]:
    """Connect to every configured server, in order, failing fast.

    The first failure propagates immediately. Connections opened before it stay
    registered on ``exit_stack``, which the caller closes on the abort path.

    Returns:
        dict[str, ServerConnection]: Connections keyed by server name, in order

    Raises:
        ServerConnectionError: If any server fails or none are configured.
    """
    connections: dict[str, ServerConnection] = {}

    for descriptor in descriptors:
        connections[descriptor.name] = await connect_server(
            descriptor,
            exit_stack,
            connect_timeout=connect_timeout,
            list_tools_timeout=list_tools_timeout,
            tool_call_timeout=tool_call_timeout,
        )

    logger.info(f"Total connected servers: {len(connections)}")
    if not connections:
        raise ServerConnectionError("No MCP servers were successfully connected")

    return connections
