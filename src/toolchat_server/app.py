"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from toolchat_server.config import ToolchatServerSettings
from toolchat_server.errors import ToolchatError
from toolchat_server.ollama import OllamaClient
from toolchat_server.routers import chat, health, mcp
from toolchat_server.tools import ToolContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    The Ollama client and the tool context (MCP connections plus catalog) are
    created once at startup and stored in app.state for reuse across all
    requests. A tool context failure does not stop the server: the error is
    kept in app.state and returned by every chat request.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolchatServerSettings = app.state.settings
    app.state.ollama_client = OllamaClient(
        host=settings.ollama_host, chunk_timeout=settings.model_chunk_timeout
    )
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    app.state.tool_context = None
    app.state.tool_context_error = None
    try:
        app.state.tool_context = await ToolContext.from_settings(settings)
        logger.info(
            f"MCP tool context ready: {len(app.state.tool_context.connected_servers)} "
            f"server(s), {app.state.tool_context.tool_count} tool(s)"
        )
    except ToolchatError as e:
        logger.error(f"Failed to initialize MCP tool context: {e}")
        app.state.tool_context_error = e

    yield

    if app.state.tool_context is not None:
        await app.state.tool_context.aclose()
    await app.state.ollama_client.close()
    logger.info("Ollama client closed")


async def toolchat_error_handler(request: Request, exc: ToolchatError) -> JSONResponse:
    """Return toolchat errors as {message, status}."""
    logger.error(f"Request to {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return request validation failures as {message, status}."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content={"message": f"Invalid request: {problems}", "status": 422},
    )


def create_app(settings: ToolchatServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ToolchatServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolchat_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="toolchat-server",
        description="Tool-augmented chat server bridging MCP servers and Ollama",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ToolchatError, toolchat_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(mcp.router)
    app.include_router(chat.router)

    return app
