import base64

import pytest

from gateway_node.transport.response import (
    NormalizedChatResult,
    convert_anthropic_response,
    extract_chat_content,
    extract_embedding,
    extract_image_url,
    extract_thinking,
    extract_video_url,
    parse_image_payload,
)


@pytest.mark.parametrize(
    "raw",
    [None, {}, {"choices": []}, {"choices": [{}]}, {"choices": "nope"}, "text", 42, {"choices": [None]}],
)
def test_extract_chat_content_degrades_to_empty(raw):
    assert extract_chat_content(raw) == NormalizedChatResult(content="", finish_reason="", usage={})


def test_extract_chat_content_reads_fields():
    raw = {
        "choices": [{"message": {"content": "hello"}, "finish_reason": "stop"}],
        "usage": {"total_tokens": 9},
    }
    result = extract_chat_content(raw)
    assert result.content == "hello"
    assert result.finish_reason == "stop"
    assert result.usage == {"total_tokens": 9}


def test_extract_chat_content_ignores_non_string_content_and_null_usage():
    raw = {"choices": [{"message": {"content": [{"type": "text"}]}, "finish_reason": 3}], "usage": None}
    assert extract_chat_content(raw) == NormalizedChatResult()


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("![alt](https://x.com/a.png)", "https://x.com/a.png"),
        ('<img src="https://cdn.example.com/img/b.JPEG?sig=1&x=2">', "https://cdn.example.com/img/b.JPEG?sig=1&x=2"),
        ("see [img](http://a.b/c.webp) and https://a.b/d.gif", "http://a.b/c.webp"),
        ("no image here https://x.com/page.html", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_image_url(text, expected):
    assert extract_image_url(text) == expected


def test_extract_thinking_prefers_thinking_then_reasoning_content():
    assert extract_thinking({"choices": [{"message": {"thinking": "T", "reasoning_content": "R"}}]}) == "T"
    assert extract_thinking({"choices": [{"message": {"reasoning_content": "R"}}]}) == "R"
    assert extract_thinking({"choices": [{"message": {"thinking": None}}]}) == ""
    assert extract_thinking({"choices": "bad"}) == ""
    assert extract_thinking(None) == ""


def test_parse_image_payload_url_wins_over_base64():
    payload = parse_image_payload(
        {"data": {"image_url": "https://x/y.png", "image_base64": base64.b64encode(b"img").decode()}}
    )
    assert payload.image_url == "https://x/y.png"
    assert payload.image_bytes is None


def test_parse_image_payload_decodes_base64():
    payload = parse_image_payload({"data": {"image_base64": base64.b64encode(b"PNGDATA").decode()}})
    assert payload.image_url is None
    assert payload.image_bytes == b"PNGDATA"
    assert payload.has_image


def test_parse_image_payload_openai_images_shape():
    assert parse_image_payload({"data": [{"url": "https://x/1.png"}]}).image_url == "https://x/1.png"
    b64 = base64.b64encode(b"abc").decode()
    assert parse_image_payload({"data": [{"b64_json": b64}]}).image_bytes == b"abc"


def test_parse_image_payload_without_image():
    payload = parse_image_payload({"data": {"status": "queued"}})
    assert not payload.has_image
    assert payload.json == {"status": "queued"}
    assert not parse_image_payload({"data": {"image_base64": "%%%not-base64%%%"}}).has_image
    assert not parse_image_payload(None).has_image


def test_extract_embedding_and_video_url():
    assert extract_embedding({"data": [{"embedding": [0.1, 0.2]}]}) == [0.1, 0.2]
    assert extract_embedding({"data": []}) == []
    assert extract_video_url({"video_url": "https://v/1.mp4"}) == "https://v/1.mp4"
    assert extract_video_url({"data": {"video_url": "https://v/2.mp4"}}) == "https://v/2.mp4"
    assert extract_video_url({"status": "pending"}) == ""


def test_convert_anthropic_response_to_chat_shape():
    raw = {
        "id": "msg_1",
        "model": "claude-opus-4-5-thinking",
        "content": [
            {"type": "thinking", "thinking": "step 1"},
            {"type": "text", "text": "Answer"},
        ],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 4},
    }
    converted = convert_anthropic_response(raw)

    assert extract_chat_content(converted).content == "Answer"
    assert extract_chat_content(converted).finish_reason == "end_turn"
    assert extract_thinking(converted) == "step 1"
    assert converted["usage"] == {"prompt_tokens": 10, "completion_tokens": 4, "total_tokens": 14}


def test_convert_anthropic_response_passes_through_chat_payloads():
    raw = {"choices": [{"message": {"content": "x"}}]}
    assert convert_anthropic_response(raw) is raw
    assert convert_anthropic_response("plain") == "plain"


@pytest.mark.parametrize(
    ("usage", "expected"),
    [
        ({"input_tokens": "10", "output_tokens": 4}, (0, 4, 4)),
        ({"input_tokens": "10", "output_tokens": "4"}, (0, 0, 0)),
        ({"input_tokens": None, "output_tokens": 7}, (0, 7, 7)),
        ({"input_tokens": {"cached": 3}, "output_tokens": 2}, (0, 2, 2)),
        ({"input_tokens": True, "output_tokens": 5}, (0, 5, 5)),
        ({"input_tokens": 6, "output_tokens": 9}, (6, 9, 15)),
    ],
)
def test_convert_anthropic_response_ignores_non_numeric_usage(usage, expected):
    converted = convert_anthropic_response({"content": [{"type": "text", "text": "ok"}], "usage": usage})

    assert converted["choices"][0]["message"]["content"] == "ok"
    assert (
        converted["usage"]["prompt_tokens"],
        converted["usage"]["completion_tokens"],
        converted["usage"]["total_tokens"],
    ) == expected


def test_parse_image_payload_accepts_line_wrapped_base64():
    raw = bytes(range(256)) * 2
    encoded = base64.b64encode(raw).decode()
    wrapped = "\n".join(encoded[i : i + 76] for i in range(0, len(encoded), 76))

    assert "\n" in wrapped
    assert parse_image_payload({"data": [{"b64_json": wrapped}]}).image_bytes == raw
    assert parse_image_payload({"data": {"image_base64": "data:image/png;base64," + wrapped}}).image_bytes == raw
