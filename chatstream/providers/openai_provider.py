from typing import Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from chatstream.core.config import DEFAULT_API_URL, mask_key, settings
from chatstream.errors import ApiError, NetworkError, ResponseError, SerializationError
from chatstream.observability import REQ_COUNTER
from chatstream.providers.base import Provider, StreamHandle
from chatstream.schemas import ChatRequest, ErrorEnvelope

logger = structlog.get_logger()


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


class OpenAIProvider(Provider):
    """
    Posts streaming chat-completion requests and classifies the first response.
    Only a 200 response is handed back, still open and unread.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        error_body_limit: Optional[int] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.error_body_limit = error_body_limit or settings.ERROR_BODY_LIMIT
        self._owns_client = http_client is None
        self.client = http_client or _build_client(timeout or settings.TIMEOUT_SECONDS)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }

    async def send(self, req: ChatRequest) -> StreamHandle:
        try:
            body = req.to_wire()
        except (ValueError, TypeError) as e:
            REQ_COUNTER.labels("serialization_error").inc()
            logger.error("request_serialization_failed", error=str(e))
            raise SerializationError(str(e)) from e

        logger.info(
            "chat_request_started",
            url=self.api_url,
            model=req.model,
            messages=len(req.messages),
            key=mask_key(self.api_key),
        )
        try:
            request = self.client.build_request("POST", self.api_url, content=body, headers=self._headers())
            response = await self.client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            REQ_COUNTER.labels("network_error").inc()
            logger.error("chat_request_network_error", error=str(e), url=self.api_url)
            raise NetworkError(str(e) or type(e).__name__) from e

        if response.status_code != 200:
            await self._raise_for_error_body(response)

        REQ_COUNTER.labels("ok").inc()
        return StreamHandle(response)

    async def _read_capped(self, response: httpx.Response) -> bytes:
        buf = bytearray()
        try:
            async for chunk in response.aiter_bytes():
                buf.extend(chunk)
                if len(buf) >= self.error_body_limit:
                    logger.warning("error_body_truncated", limit=self.error_body_limit, status_code=response.status_code)
                    del buf[self.error_body_limit:]
                    break
        finally:
            await response.aclose()
        return bytes(buf)

    async def _raise_for_error_body(self, response: httpx.Response) -> None:
        status = response.status_code
        try:
            raw = await self._read_capped(response)
        except httpx.HTTPError as e:
            REQ_COUNTER.labels("network_error").inc()
            logger.error("error_body_read_failed", status_code=status, error=str(e))
            raise NetworkError(str(e) or type(e).__name__) from e

        try:
            envelope = ErrorEnvelope.model_validate_json(raw)
        except ValidationError as e:
            REQ_COUNTER.labels("response_error").inc()
            logger.error("error_body_undecodable", status_code=status, body=raw[:200].decode("utf-8", "replace"))
            raise ResponseError(status, str(e)) from e

        REQ_COUNTER.labels("api_error").inc()
        logger.error("chat_api_error", status_code=status, message=envelope.error.message, type=envelope.error.type)
        raise ApiError(envelope.error.message, envelope.error.type, status)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
