"""Request boundary for tool-augmented chat."""

import logging

from toolchat_server.errors import ToolchatError
from toolchat_server.models.chat import ChatMessage, ChatSettings
from toolchat_server.ollama import OllamaClient
from toolchat_server.services.conversation import (
    DEFAULT_MAX_ITERATIONS,
    ConversationLoop,
)
from toolchat_server.services.stream import ChatStream
from toolchat_server.tools.context import ToolContext

logger = logging.getLogger(__name__)


def start_chat(
    ollama_client: OllamaClient,
    context: ToolContext,
    chat_settings: ChatSettings,
    messages: list[ChatMessage],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> ChatStream:
    """Prepare a chat stream over a fresh copy of the caller's messages.

    The returned stream does no work until it is iterated.

    Raises:
        ToolchatError: 400 if there are no messages to process.
    """
    if not messages:
        raise ToolchatError("Conversation has no messages to process", status=400)

    logger.info(
        f"Starting MCP chat with model {chat_settings.model}, "
        f"{len(messages)} message(s), {context.tool_count} tool(s)"
    )
    loop = ConversationLoop(
        ollama_client=ollama_client,
        context=context,
        chat_settings=chat_settings,
        messages=[message.to_ollama() for message in messages],
        max_iterations=max_iterations,
    )
    return ChatStream(loop)
