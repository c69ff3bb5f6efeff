from typing import AsyncIterator

import httpx

from chatstream.schemas import ChatRequest


class StreamHandle:
    """An open 200 response whose body has not been read yet."""

    def __init__(self, response: httpx.Response):
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    def aiter_lines(self) -> AsyncIterator[str]:
        return self.response.aiter_lines()

    async def aclose(self) -> None:
        await self.response.aclose()


class Provider:
    async def send(self, req: ChatRequest) -> StreamHandle:
        raise NotImplementedError

    async def aclose(self) -> None:
        pass
