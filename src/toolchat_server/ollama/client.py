"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient for
communicating with the Ollama API. All operations are async and the client
is designed to be created once at startup and reused.
"""

import asyncio
import logging
from typing import Any, AsyncIterator

import ollama

from toolchat_server.errors import ModelBackendError

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for interacting with Ollama API.

    This client wraps ollama.AsyncClient and provides high-level async methods
    for streaming chat completions with tools and checking connectivity.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        chunk_timeout: Seconds to wait for each streamed chunk
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str, chunk_timeout: float = 300.0) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
            chunk_timeout: Seconds to wait for each streamed chunk
        """
        self.host = host
        self.chunk_timeout = chunk_timeout
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            # Try to list models as a connectivity check
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        options: dict[str, Any] | None = None,
        think: bool | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat responses from Ollama.

        Args:
            model: The model name to use for the chat
            messages: List of message dicts in Ollama format:
                      [{"role": "user", "content": "..."}, ...]
            tools: Optional function-calling tool specs
            options: Optional model parameters (temperature, etc.)
            think: Whether to request thinking output from the model

        Yields:
            dict: Response chunks from Ollama. Each chunk contains:
                  - model: str - The model name
                  - message: dict - Contains role, content and optional tool_calls
                  - done: bool - True on the final chunk

        Raises:
            ModelBackendError: If the request fails or a chunk does not arrive
                               before the chunk deadline
        """
        logger.debug(f"Starting chat stream with model: {model}")
        logger.debug(
            f"Message count: {len(messages)}, tool count: {len(tools or [])}"
        )

        try:
            stream = await asyncio.wait_for(
                self._client.chat(
                    model=model,
                    messages=messages,
                    tools=tools,
                    stream=True,
                    think=think,
                    options=options,
                ),
                timeout=self.chunk_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ModelBackendError(
                f"Ollama did not respond within {self.chunk_timeout}s"
            ) from e
        except Exception as e:
            logger.error(f"Chat stream failed: {e}")
            raise ModelBackendError(f"Failed to get response from Ollama: {e}") from e

        try:
            while True:
                try:
                    chunk = await asyncio.wait_for(
                        stream.__anext__(), timeout=self.chunk_timeout
                    )
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError as e:
                    raise ModelBackendError(
                        f"No chunk from Ollama within {self.chunk_timeout}s"
                    ) from e
                except Exception as e:
                    logger.error(f"Chat stream failed: {e}")
                    raise ModelBackendError(
                        f"Failed to get response from Ollama: {e}"
                    ) from e

                # Convert the chunk to a dict if it's not already
                if hasattr(chunk, "model_dump"):
                    chunk_dict = chunk.model_dump()
                elif isinstance(chunk, dict):
                    chunk_dict = chunk
                else:
                    raise ModelBackendError(
                        f"Malformed chunk from Ollama: {type(chunk).__name__}"
                    )

                logger.debug(f"Received chunk: done={chunk_dict.get('done')}")
                yield chunk_dict
        finally:
            # Release the HTTP stream when the consumer stops early
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.debug("Chat stream completed")

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient doesn't require explicit cleanup in current versions.
        """
        logger.debug("OllamaClient closed")
