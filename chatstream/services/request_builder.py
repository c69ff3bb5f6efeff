from typing import Iterable, List, Optional, Sequence, Union

from chatstream.core.config import DEFAULT_SYSTEM_PROMPT
from chatstream.schemas import SYSTEM, USER, ChatRequest, Stop, Turn

DEFAULT_PREAMBLE = Turn(role=SYSTEM, content=DEFAULT_SYSTEM_PROMPT)

StopLike = Union[Stop, str, Sequence[str]]


def build_messages(history: Iterable[Turn], prompt: str, preamble: Turn = DEFAULT_PREAMBLE) -> List[Turn]:
    """[preamble] + history + [user prompt]; history itself is only read."""
    messages = [preamble]
    messages.extend(history)
    messages.append(Turn(role=USER, content=prompt))
    return messages


def _coerce_stop(stop: Optional[StopLike]) -> Optional[Stop]:
    if stop is None or isinstance(stop, Stop):
        return stop
    if isinstance(stop, str):
        return Stop.scalar(stop)
    return Stop.many(list(stop))


def build_request(
    *,
    model: str,
    messages: List[Turn],
    temperature: Optional[float] = None,
    stop: Optional[StopLike] = None,
    max_tokens: Optional[int] = None,
    top_p: Optional[float] = None,
    n: Optional[int] = None,
    presence_penalty: Optional[float] = None,
    frequency_penalty: Optional[float] = None,
    user: Optional[str] = None,
) -> ChatRequest:
    return ChatRequest(
        model=model,
        messages=messages,
        temperature=temperature,
        stream=True,
        stop=_coerce_stop(stop),
        max_tokens=max_tokens,
        top_p=top_p,
        n=n,
        presence_penalty=presence_penalty,
        frequency_penalty=frequency_penalty,
        user=user,
    )
