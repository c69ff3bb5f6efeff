from chatstream.client import ChatClient
from chatstream.errors import (
    ApiError,
    ChatError,
    NetworkError,
    ResponseError,
    SerializationError,
    StreamDecodeError,
    StreamError,
    StreamReadError,
)
from chatstream.schemas import ChatRequest, ChatResponsePartial, Choice, Stop, Turn
from chatstream.services.decoder import ChatStream

__all__ = [
    "ApiError",
    "ChatClient",
    "ChatError",
    "ChatRequest",
    "ChatResponsePartial",
    "ChatStream",
    "Choice",
    "NetworkError",
    "ResponseError",
    "SerializationError",
    "Stop",
    "StreamDecodeError",
    "StreamError",
    "StreamReadError",
    "Turn",
]
