import json

import pytest
from pydantic import ValidationError

from chatstream.schemas import ChatRequest, ChatResponsePartial, Stop, Turn

SAMPLE = '{"id":"x","object":"o","created":1,"choices":[{"index":0,"delta":{"role":null,"content":"Hi"}}]}'


def test_turn_is_immutable():
    turn = Turn(role="user", content="hello")
    with pytest.raises(ValidationError):
        turn.content = "changed"


def test_turn_null_content_decodes_as_empty():
    assert Turn.model_validate({"role": "assistant", "content": None}).content == ""
    assert Turn.model_validate({"role": "assistant"}).content == ""


def test_stop_scalar_round_trip():
    encoded = Stop.scalar("END").model_dump_json()
    assert encoded == '"END"'
    decoded = Stop.model_validate_json(encoded)
    assert not decoded.is_list
    assert decoded.values == ["END"]
    assert decoded == Stop.scalar("END")


def test_stop_list_round_trip():
    encoded = Stop.many(["A", "B"]).model_dump_json()
    assert json.loads(encoded) == ["A", "B"]
    decoded = Stop.model_validate_json(encoded)
    assert decoded.is_list
    assert decoded.values == ["A", "B"]


def test_stop_single_element_list_stays_a_list():
    decoded = Stop.model_validate_json('["END"]')
    assert decoded.is_list


@pytest.mark.parametrize("raw", ["5", '{"a": 1}', "[1, 2]", "null"])
def test_stop_rejects_other_shapes(raw):
    with pytest.raises(ValidationError):
        Stop.model_validate_json(raw)


def test_request_wire_omits_unset_fields_and_inlines_stop():
    req = ChatRequest(
        model="gpt-test",
        messages=[Turn(role="user", content="hi")],
        stream=True,
        stop=Stop.many(["A", "B"]),
    )
    wire = json.loads(req.to_wire())
    assert wire == {
        "model": "gpt-test",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": True,
        "stop": ["A", "B"],
    }


def test_request_decodes_scalar_stop():
    req = ChatRequest.model_validate_json('{"model":"m","messages":[],"stop":"END"}')
    assert req.stop == Stop.scalar("END")


def test_partial_response_fragment():
    partial = ChatResponsePartial.model_validate_json(SAMPLE)
    assert partial.fragment == "Hi"
    assert partial.choices[0].delta.role is None


def test_partial_response_without_fragment():
    partial = ChatResponsePartial.model_validate(
        {"id": "x", "object": "o", "created": 1, "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]}
    )
    assert partial.fragment is None
    assert partial.choices[0].finish_reason == "stop"

    empty = ChatResponsePartial.model_validate({"id": "x", "object": "o", "created": 1, "choices": []})
    assert empty.fragment is None


def test_partial_response_carries_inline_error():
    partial = ChatResponsePartial.model_validate(
        {"id": "x", "object": "o", "created": 1, "error": {"message": "overloaded", "type": "server_error"}, "choices": []}
    )
    assert partial.error.message == "overloaded"


def test_non_streaming_choice_message():
    partial = ChatResponsePartial.model_validate(
        {"id": "x", "object": "chat.completion", "created": 1,
         "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hello"}, "finish_reason": "stop"}]}
    )
    assert partial.choices[0].message == Turn(role="assistant", content="Hello")
    assert partial.fragment is None
