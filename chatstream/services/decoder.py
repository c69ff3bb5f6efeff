import asyncio
import time
from typing import AsyncIterator, Callable, Generic, List, Optional, Set, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from chatstream.errors import StreamDecodeError, StreamReadError
from chatstream.observability import DROPPED_COUNTER, EVENT_COUNTER, STREAM_LATENCY
from chatstream.providers.base import StreamHandle
from chatstream.schemas import ChatResponsePartial

logger = structlog.get_logger()

T = TypeVar("T")

DATA_PREFIX = "data: {"
DONE_PREFIX = "data: [DONE]"
PAYLOAD_OFFSET = len("data: ")

# responses of abandoned streams still being closed
_pending_closes: Set["asyncio.Task[None]"] = set()


def project_response(partial: ChatResponsePartial) -> ChatResponsePartial:
    return partial


def project_text(partial: ChatResponsePartial) -> Optional[str]:
    return partial.fragment


class ChatStream(Generic[T]):
    """
    Lazy async sequence of projected stream events.

    Iterate with ``async for``; close early with ``aclose()`` or by using the
    stream as an async context manager. ``on_complete`` receives the full
    reply text only when the stream ends cleanly (sentinel or end of body).
    ``on_close`` runs exactly once however the stream ends.
    """

    def __init__(
        self,
        handle: StreamHandle,
        project: Callable[[ChatResponsePartial], T],
        *,
        on_complete: Optional[Callable[[str], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
        strict: bool = False,
    ):
        self._handle = handle
        self._project = project
        self._on_complete = on_complete
        self._on_close = on_close
        self.strict = strict
        self._closed = False
        self._gen = self._run()

    def __aiter__(self) -> "ChatStream[T]":
        return self

    async def __anext__(self) -> T:
        return await self._gen.__anext__()

    async def aclose(self) -> None:
        await self._gen.aclose()
        # a generator closed before its first step never runs its finally block
        await self._finish()

    def __del__(self) -> None:
        # Dropped without being exhausted or closed: release the turn now and
        # close the response on the loop, if one is still running.
        if self._closed:
            return
        self._closed = True
        logger.warning("stream_abandoned")
        try:
            if self._on_close is not None:
                self._on_close()
        finally:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            task = loop.create_task(self._handle.aclose())
            _pending_closes.add(task)
            task.add_done_callback(_pending_closes.discard)

    async def __aenter__(self) -> "ChatStream[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    async def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._handle.aclose()
        finally:
            if self._on_close is not None:
                self._on_close()

    def _decode(self, line: str) -> Optional[ChatResponsePartial]:
        try:
            return ChatResponsePartial.model_validate_json(line[PAYLOAD_OFFSET:])
        except ValidationError as e:
            if self.strict:
                logger.error("stream_event_malformed", error=str(e), line=line[:200])
                raise StreamDecodeError(line, str(e)) from e
            DROPPED_COUNTER.inc()
            logger.warning("stream_event_dropped", error=str(e), line=line[:200])
            return None

    async def _run(self) -> AsyncIterator[T]:
        outcome = "cancelled"
        start = time.perf_counter()
        parts: List[str] = []
        try:
            try:
                async for line in self._handle.aiter_lines():
                    if line.startswith(DONE_PREFIX):
                        break
                    if not line.startswith(DATA_PREFIX):
                        continue
                    partial = self._decode(line)
                    if partial is None:
                        continue
                    EVENT_COUNTER.inc()
                    fragment = partial.fragment
                    if fragment:
                        parts.append(fragment)
                    yield self._project(partial)
            except httpx.HTTPError as e:
                outcome = "read_error"
                logger.error("stream_read_failed", error=str(e), received=len(parts))
                raise StreamReadError(str(e) or type(e).__name__) from e
            except StreamDecodeError:
                outcome = "decode_error"
                raise

            outcome = "ok"
            reply = "".join(parts)
            logger.debug("stream_completed", reply_chars=len(reply))
            if self._on_complete is not None:
                self._on_complete(reply)
        finally:
            STREAM_LATENCY.labels(outcome).observe(time.perf_counter() - start)
            await self._finish()
