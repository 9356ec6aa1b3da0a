"""Business logic services for toolchat-server.

This package contains the conversation loop, the single-use chat stream that
exposes its output, and the request boundary that wires them together.
"""

from toolchat_server.services.chat import start_chat
from toolchat_server.services.conversation import ConversationLoop, LoopState
from toolchat_server.services.stream import ChatStream

__all__ = [
    "ChatStream",
    "ConversationLoop",
    "LoopState",
    "start_chat",
]
