from collections.abc import AsyncGenerator

import httpx
import pytest

from chatstream.client import ChatClient
from chatstream.tests.utils.transport import RecordingProvider

API_URL = "https://llm.test/v1/chat/completions"


@pytest.fixture
def recorder() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
async def http_client(recorder: RecordingProvider) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with recorder.client() as client:
        yield client


@pytest.fixture
def chat(http_client: httpx.AsyncClient) -> ChatClient:
    return ChatClient("sk-test-key", model="gpt-test", api_url=API_URL, http_client=http_client)
