"""Configuration module for toolchat-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolchatServerSettings(BaseSettings):
    """Main configuration settings for toolchat-server.

    All settings can be overridden via environment variables with the TOOLCHAT_ prefix.
    For example, TOOLCHAT_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"

    # MCP servers
    mcp_config_path: str = "mcp.json"

    # Conversation loop
    max_iterations: int = Field(default=10, ge=1)

    # Deadlines for every suspension point, in seconds
    connect_timeout: float = 30.0
    list_tools_timeout: float = 30.0
    tool_call_timeout: float = 120.0
    model_chunk_timeout: float = 300.0

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TOOLCHAT_")

    @property
    def resolved_mcp_config_path(self) -> Path:
        """Get the MCP configuration path as a Path."""
        return Path(self.mcp_config_path)
