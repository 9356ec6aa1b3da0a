"""Single-use stream of text chunks produced by one conversation loop.

Nothing runs until the consumer starts iterating. The consumer can stop at
any time; closing the stream cancels whatever the loop is waiting on. Chunks
delivered before a failure are never retracted: the failure only ends the
sequence.
"""

import logging
from contextlib import aclosing
from typing import Any, AsyncIterator

from toolchat_server.errors import ToolchatError
from toolchat_server.models.chat import ContentDeltaEvent, DoneEvent, ErrorEvent
from toolchat_server.services.conversation import ConversationLoop, LoopState

logger = logging.getLogger(__name__)


class ChatStream:
    """Lazy, finite, non-restartable async iterator over a loop's output."""

    def __init__(self, loop: ConversationLoop) -> None:
        self._loop = loop
        self._iterator: AsyncIterator[str] | None = None

    def __aiter__(self) -> AsyncIterator[str]:
        if self._iterator is not None:
            raise RuntimeError("ChatStream can only be consumed once")
        self._iterator = self._loop.run()
        return self._iterator

    async def aclose(self) -> None:
        """Stop the stream and cancel any in-flight model or tool call."""
        if self._iterator is not None:
            await self._iterator.aclose()

    @property
    def state(self) -> LoopState:
        return self._loop.state

    @property
    def error(self) -> ToolchatError | None:
        return self._loop.error

    @property
    def iterations(self) -> int:
        return self._loop.iterations

    @property
    def truncated(self) -> bool:
        return self._loop.truncated

    @property
    def conversation(self) -> list[dict[str, Any]]:
        return self._loop.conversation

    async def iter_text(self) -> AsyncIterator[str]:
        """Yield text chunks for a plain streaming response.

        A failure propagates after the chunks already yielded, which makes the
        server cut the response at that point.
        """
        async with aclosing(aiter(self)) as chunks:
            async for chunk in chunks:
                yield chunk

    async def iter_events(self) -> AsyncIterator[dict[str, str]]:
        """Yield SSE events: content_delta per chunk, then done or error."""
        try:
            async with aclosing(aiter(self)) as chunks:
                async for chunk in chunks:
                    yield {
                        "event": "content_delta",
                        "data": ContentDeltaEvent(content=chunk).model_dump_json(),
                    }
        except ToolchatError as e:
            error_event = ErrorEvent(message=e.message, status=e.status)
            yield {"event": "error", "data": error_event.model_dump_json()}
            return

        done_event = DoneEvent(iterations=self.iterations, truncated=self.truncated)
        yield {"event": "done", "data": done_event.model_dump_json()}
