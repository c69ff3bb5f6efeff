import httpx
import pytest

from chatstream.client import ChatClient
from chatstream.errors import ApiError
from chatstream.tests.utils.fake_provider import FakeProviderState, create_fake_provider

BASE_URL = "http://fake-provider"
API_URL = f"{BASE_URL}/v1/chat/completions"


def _http(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)


async def test_conversation_against_sse_endpoint():
    state = FakeProviderState()
    app = create_fake_provider([["Bon", "jour"], ["Ça ", "va"]], state)

    async with _http(app) as http:
        chat = ChatClient("sk-test-key", model="gpt-fake", api_url=API_URL, http_client=http)

        first = await chat.stream_text("Say hello in French")
        async with first:
            text = "".join([f async for f in first if f])
        second = await chat.stream_text("How are you?")
        async with second:
            text2 = "".join([f async for f in second if f])

    assert text == "Bonjour"
    assert text2 == "Ça va"
    assert [t.content for t in chat.history] == ["Say hello in French", "Bonjour", "How are you?", "Ça va"]
    assert state.requests[1]["messages"][1:3] == [
        {"role": "user", "content": "Say hello in French"},
        {"role": "assistant", "content": "Bonjour"},
    ]
    assert all(r["stream"] is True for r in state.requests)


async def test_rejected_key_surfaces_api_error():
    app = create_fake_provider([["unused"]])

    async with _http(app) as http:
        chat = ChatClient("sk-wrong", api_url=API_URL, http_client=http)
        with pytest.raises(ApiError) as excinfo:
            await chat.stream_responses("hi")

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Incorrect API key provided"
    assert chat.history == ()
