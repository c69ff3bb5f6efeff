import asyncio
from typing import Any, Callable, Optional, Tuple, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from chatstream.core.config import check_api_key, mask_key, settings
from chatstream.errors import SerializationError
from chatstream.providers.base import Provider
from chatstream.providers.openai_provider import OpenAIProvider
from chatstream.schemas import SYSTEM, ChatResponsePartial, Turn
from chatstream.services.decoder import ChatStream, project_response, project_text
from chatstream.services.history import ConversationHistory
from chatstream.services.request_builder import build_messages, build_request

logger = structlog.get_logger()

T = TypeVar("T")


class ChatClient:
    """
    Streaming chat client that keeps the conversation going across calls.

    Usage::

        async with ChatClient(api_key) as chat:
            stream = await chat.stream_text("Hello")
            async with stream:
                async for fragment in stream:
                    print(fragment or "", end="")

    One turn runs at a time: a call made while another turn's stream is
    still open waits until that stream ends or is closed, so the reply of
    the first turn is in the history the second one sends.

    Keyword options accepted by both ``stream_*`` methods: ``temperature``,
    ``stop`` (str, list of str or ``Stop``), ``max_tokens``, ``top_p``, ``n``,
    ``presence_penalty``, ``frequency_penalty`` and ``user``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        system_prompt: Optional[str] = None,
        api_url: Optional[str] = None,
        strict: Optional[bool] = None,
        timeout: Optional[float] = None,
        error_body_limit: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        provider: Optional[Provider] = None,
    ):
        self.model = model or settings.MODEL
        self.temperature = temperature if temperature is not None else settings.TEMPERATURE
        self.preamble = Turn(role=SYSTEM, content=system_prompt or settings.SYSTEM_PROMPT)
        self.strict = settings.STRICT_STREAM if strict is None else strict

        if provider is None:
            if api_key is None:
                # already checked when settings were loaded
                api_key = settings.OPENAI_API_KEY
            else:
                check_api_key(api_key)
            if not api_key:
                raise ValueError("An API key is required (pass api_key or set OPENAI_API_KEY)")
            provider = OpenAIProvider(
                api_key,
                api_url=api_url or settings.API_URL,
                http_client=http_client,
                timeout=timeout,
                error_body_limit=error_body_limit,
            )
            logger.debug("chat_client_created", model=self.model, key=mask_key(api_key))
        self.provider = provider

        self._history = ConversationHistory()
        self._turn_lock = asyncio.Lock()

    @property
    def history(self) -> Tuple[Turn, ...]:
        return self._history.snapshot()

    def reset(self) -> None:
        self._history.clear()

    async def stream_responses(self, prompt: str, **options: Any) -> ChatStream[ChatResponsePartial]:
        """Send ``prompt``; the stream yields every decoded partial response."""
        return await self._start_turn(prompt, project_response, options)

    async def stream_text(self, prompt: str, **options: Any) -> ChatStream[Optional[str]]:
        """Send ``prompt``; the stream yields each text fragment, or None for events without one."""
        return await self._start_turn(prompt, project_text, options)

    async def _start_turn(self, prompt: str, project: Callable[[ChatResponsePartial], T], options: dict) -> ChatStream[T]:
        await self._turn_lock.acquire()
        try:
            messages = build_messages(self._history.snapshot(), prompt, self.preamble)
            if options.get("temperature") is None:
                options["temperature"] = self.temperature
            try:
                req = build_request(model=self.model, messages=messages, **options)
            except ValidationError as e:
                logger.error("request_invalid", error=str(e))
                raise SerializationError(str(e)) from e
            handle = await self.provider.send(req)
        except BaseException:
            self._turn_lock.release()
            raise

        def record(reply: str) -> None:
            self._history.record(prompt, reply)
            logger.info("turn_recorded", history=len(self._history), reply_chars=len(reply))

        return ChatStream(
            handle,
            project,
            on_complete=record,
            on_close=self._turn_lock.release,
            strict=self.strict,
        )

    async def aclose(self) -> None:
        await self.provider.aclose()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
