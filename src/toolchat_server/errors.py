"""Exception hierarchy for toolchat-server.

Every error carries an HTTP status so that failures which happen before a
stream starts can be returned to the caller as ``{"message", "status"}``.
"""


class ToolchatError(Exception):
    """Base class for all toolchat-server errors."""

    status: int = 500

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def to_dict(self) -> dict:
        """Serialize the error for the request boundary."""
        return {"message": self.message, "status": self.status}


class ConfigurationError(ToolchatError):
    """The MCP configuration is missing or malformed."""


class ServerConnectionError(ToolchatError):
    """An MCP server could not be reached or initialized."""

    def __init__(self, message: str, server_name: str | None = None) -> None:
        super().__init__(message)
        self.server_name = server_name

    @classmethod
    def for_server(cls, server_name: str, cause: str) -> "ServerConnectionError":
        return cls(f"Failed to connect to MCP server {server_name}: {cause}", server_name)


class CatalogError(ToolchatError):
    """Tool listing failed or returned an unrecognized shape."""


class ArgumentDecodeError(ToolchatError):
    """Tool call arguments could not be decoded into a mapping."""


class UnknownToolError(ToolchatError):
    """A tool call named a tool that is not in the catalog."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"MCP tool {tool_name} not found")
        self.tool_name = tool_name


class ToolExecutionError(ToolchatError):
    """The owning server failed to execute a tool call."""


class ModelBackendError(ToolchatError):
    """The Ollama backend failed or produced a malformed stream."""

    status = 502


class ContextUnavailableError(ToolchatError):
    """The tool context failed to initialize at startup."""

    status = 503
