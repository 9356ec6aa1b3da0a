"""Bounded tool-calling conversation loop.

One ``ConversationLoop`` serves exactly one chat request. Each iteration
streams a model turn, forwarding text as it arrives. When the finished turn
contains tool calls they are executed one after another, in the order the
model issued them, and their results are appended before the next turn.
"""

import json
import logging
from contextlib import aclosing
from enum import Enum
from typing import Any, AsyncIterator

from toolchat_server.errors import ModelBackendError, ToolchatError
from toolchat_server.models.chat import ChatSettings
from toolchat_server.ollama import OllamaClient
from toolchat_server.tools.context import ToolContext
from toolchat_server.tools.invoker import ToolCallRequest

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


class LoopState(str, Enum):
    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"


def format_tool_calls(tool_calls: list[Any]) -> str:
    """Render the raw tool calls of a turn for the caller."""
    rendered = json.dumps(tool_calls, indent=2, ensure_ascii=False, default=str)
    return f"\n\n**Tool Calls:**\n```json\n{rendered}\n```\n\n"


class ConversationLoop:
    """State machine driving model turns and tool execution for one request.

    Attributes:
        conversation: Local copy of the messages, only ever appended to
        iterations: Number of model calls made so far
        state: RUNNING until the loop finishes, then DONE or ABORTED
        truncated: True if the loop stopped because of max_iterations
        error: The error that aborted the loop, if any
    """

    def __init__(
        self,
        ollama_client: OllamaClient,
        context: ToolContext,
        chat_settings: ChatSettings,
        messages: list[dict[str, Any]],
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self.ollama_client = ollama_client
        self.context = context
        self.chat_settings = chat_settings
        self.max_iterations = max_iterations
        self.conversation: list[dict[str, Any]] = [dict(m) for m in messages]
        self.iterations = 0
        self.state = LoopState.RUNNING
        self.truncated = False
        self.error: ToolchatError | None = None

    async def _stream_turn(
        self, message: dict[str, Any], tools: list[dict[str, Any]] | None
    ) -> AsyncIterator[str]:
        """Stream one model turn into ``message``, yielding text as it arrives."""
        stream = self.ollama_client.chat_stream(
            model=self.chat_settings.model,
            messages=list(self.conversation),
            tools=tools,
            options=self.chat_settings.to_ollama_options(),
            think=False,
        )
        async with aclosing(stream):
            async for chunk in stream:
                part = chunk.get("message") if isinstance(chunk, dict) else None
                if not isinstance(part, dict):
                    raise ModelBackendError(
                        "Malformed chunk from Ollama: missing message"
                    )

                content = part.get("content")
                if content:
                    message["content"] += content
                    yield content

                if part.get("tool_calls"):
                    message["tool_calls"] = list(part["tool_calls"])

    async def run(self) -> AsyncIterator[str]:
        """Run the loop, yielding every text chunk destined for the caller.

        Raises:
            ToolchatError: If the model backend fails; chunks already yielded
                           stay delivered.
        """
        tools = self.context.catalog.to_ollama_tools() or None

        try:
            while True:
                if self.iterations >= self.max_iterations:
                    self.truncated = True
                    logger.warning(
                        f"Stopped after reaching max iterations "
                        f"({self.max_iterations}), response truncated"
                    )
                    break

                self.iterations += 1
                logger.info(f"Chat iteration {self.iterations}")

                message: dict[str, Any] = {"role": "assistant", "content": ""}
                async with aclosing(self._stream_turn(message, tools)) as turn:
                    async for text in turn:
                        yield text

                self.conversation.append(message)
                tool_calls = message.get("tool_calls") or []

                if not tool_calls:
                    break

                tool_call_info = format_tool_calls(tool_calls)
                yield tool_call_info
                message["content"] += tool_call_info

                for tool_call in tool_calls:
                    result = await self.context.invoker.execute(
                        ToolCallRequest.from_ollama(tool_call)
                    )
                    yield result.annotation()
                    self.conversation.append(result.to_message())

            self.state = LoopState.DONE
        except ToolchatError as e:
            logger.error(f"Error in chat streaming: {e}")
            self.state = LoopState.ABORTED
            self.error = e
            raise
        except Exception as e:
            logger.error(f"Error in chat streaming: {e}")
            self.state = LoopState.ABORTED
            self.error = ModelBackendError(str(e) or type(e).__name__)
            raise self.error from e
        finally:
            # Consumer stopped reading before the loop finished
            if self.state is LoopState.RUNNING:
                self.state = LoopState.ABORTED
