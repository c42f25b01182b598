import pytest

from gateway_node.actions.chat import execute_chat
from gateway_node.actions.embeddings import execute_embeddings
from gateway_node.actions.prompt import execute_enhance_prompt, parse_enhancement
from gateway_node.actions.thinking import execute_thinking
from gateway_node.errors import ActionError
from gateway_node.transport.endpoint_map import CHAT_COMPLETIONS_PATH, EMBEDDINGS_PATH, MESSAGES_PATH


@pytest.mark.asyncio
async def test_chat_builds_body_and_simplified_output(scripted, make_transport, make_context, chat_reply):
    requester = scripted([chat_reply("Hello there")])
    ctx = make_context(requester, {"model": "gpt-4o", "userPrompt": "Hi", "additionalOptions": {}})

    items = await execute_chat(ctx, make_transport(requester), 0)

    body = requester.calls[0]["json_body"]
    assert requester.calls[0]["url"].endswith(CHAT_COMPLETIONS_PATH)
    assert body == {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "Hi"},
        ],
        "max_tokens": 2048,
        "temperature": 0.7,
    }
    assert len(items) == 1
    data = items[0].json
    assert data["success"] is True
    assert data["operation"] == "chat"
    assert data["content"] == "Hello there"
    assert data["finish_reason"] == "stop"
    assert "raw_response" not in data
    assert "usage" not in data
    assert isinstance(data["processing_time_ms"], int)
    assert items[0].paired_item == 0


@pytest.mark.asyncio
async def test_chat_full_output_and_extra_body(scripted, make_transport, make_context, chat_reply):
    requester = scripted([chat_reply("ok")])
    ctx = make_context(
        requester,
        {
            "model": "__custom",
            "customModel": "my-model",
            "userPrompt": "Hi",
            "additionalOptions": {
                "simplify": False,
                "temperature": 0,
                "systemPrompt": "Be terse.",
                "extraBodyFields": '{"top_p": 0.9, "stream": true, "model": "evil", "tools": []}',
            },
        },
    )

    items = await execute_chat(ctx, make_transport(requester), 0)

    body = requester.calls[0]["json_body"]
    assert body["model"] == "my-model"
    assert body["temperature"] == 0
    assert body["top_p"] == 0.9
    assert "stream" not in body
    assert "tools" not in body
    assert body["messages"][0] == {"role": "system", "content": "Be terse."}
    assert items[0].json["usage"]["total_tokens"] == 8
    assert items[0].json["raw_response"] == chat_reply("ok")


@pytest.mark.asyncio
async def test_chat_ignores_invalid_extra_body_json(scripted, make_transport, make_context, chat_reply):
    requester = scripted([chat_reply("ok")])
    ctx = make_context(
        requester,
        {"model": "gpt-4o", "userPrompt": "Hi", "additionalOptions": {"extraBodyFields": "{not json"}},
    )
    await execute_chat(ctx, make_transport(requester), 0)
    assert set(requester.calls[0]["json_body"]) == {"model", "messages", "max_tokens", "temperature"}


@pytest.mark.asyncio
async def test_chat_model_from_mode(scripted, make_transport, make_context, chat_reply):
    requester = scripted([chat_reply("ok")])
    ctx = make_context(requester, {"mode": "budget", "userPrompt": "Hi"})
    items = await execute_chat(ctx, make_transport(requester), 0)
    assert items[0].json["model"] == "deepseek-chat"


@pytest.mark.asyncio
async def test_chat_custom_model_requires_name(scripted, make_transport, make_context):
    requester = scripted()
    ctx = make_context(requester, {"model": "__custom", "customModel": " ", "userPrompt": "Hi"})
    with pytest.raises(ActionError):
        await execute_chat(ctx, make_transport(requester), 0)
    assert requester.calls == []


@pytest.mark.asyncio
async def test_thinking_openai_model(scripted, make_transport, make_context, chat_reply):
    requester = scripted([chat_reply("42", reasoning_content="let me think")])
    ctx = make_context(
        requester,
        {"model": "gemini-3-flash-preview-thinking", "userPrompt": "Q?", "budgetTokens": 3000},
    )

    items = await execute_thinking(ctx, make_transport(requester), 0)

    call = requester.calls[0]
    assert call["url"].endswith(CHAT_COMPLETIONS_PATH)
    assert call["timeout_ms"] == 120000
    assert call["json_body"]["thinking"] == {"type": "enabled", "budget_tokens": 3000}
    assert call["json_body"]["temperature"] == 1
    assert call["json_body"]["max_tokens"] == 8192
    data = items[0].json
    assert data["content"] == "42"
    assert data["thinking"] == "let me think"
    assert data["budget_tokens"] == 3000


@pytest.mark.asyncio
async def test_thinking_anthropic_model_uses_messages_endpoint(scripted, make_transport, make_context):
    anthropic_reply = {
        "content": [{"type": "thinking", "thinking": "hmm"}, {"type": "text", "text": "done"}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 1, "output_tokens": 2},
    }
    requester = scripted([anthropic_reply])
    ctx = make_context(
        requester,
        {"model": "claude-opus-4-5-thinking", "userPrompt": "Q?", "additionalOptions": {"simplify": False}},
    )

    items = await execute_thinking(ctx, make_transport(requester), 0)

    call = requester.calls[0]
    assert call["url"].endswith(MESSAGES_PATH)
    assert call["json_body"]["system"] == "You are a helpful assistant."
    assert all(m["role"] != "system" for m in call["json_body"]["messages"])
    data = items[0].json
    assert data["content"] == "done"
    assert data["thinking"] == "hmm"
    assert data["finish_reason"] == "end_turn"
    assert data["usage"]["total_tokens"] == 3


@pytest.mark.asyncio
async def test_embeddings_output(scripted, make_transport, make_context):
    requester = scripted([{"data": [{"embedding": [0.1, 0.2, 0.3]}], "usage": {"total_tokens": 2}}])
    ctx = make_context(requester, {"model": "text-embedding-3-small", "input": "hello"})

    items = await execute_embeddings(ctx, make_transport(requester), 0)

    assert requester.calls[0]["url"].endswith(EMBEDDINGS_PATH)
    assert requester.calls[0]["json_body"] == {"model": "text-embedding-3-small", "input": "hello"}
    assert items[0].json["embedding"] == [0.1, 0.2, 0.3]
    assert items[0].json["dimensions"] == 3


@pytest.mark.asyncio
async def test_enhance_prompt_parses_json_reply(scripted, make_transport, make_context, chat_reply):
    reply = '{"enhanced_prompt": "A studio shot", "suggestions": ["use softbox"], "category": "lifestyle"}'
    requester = scripted([chat_reply(reply)])
    ctx = make_context(
        requester,
        {
            "model": "gemini-2.5-flash",
            "prompt": "red shoe",
            "category": "product_photo",
            "additionalOptions": {"style": "minimalist", "language": "zh"},
        },
    )

    items = await execute_enhance_prompt(ctx, make_transport(requester), 0)

    user_message = requester.calls[0]["json_body"]["messages"][1]["content"]
    assert user_message == "Prompt: red shoe\nCategory: product_photo\nStyle: minimalist\nOutput Language: Chinese"
    data = items[0].json
    assert data["enhanced_prompt"] == "A studio shot"
    assert data["suggestions"] == ["use softbox"]
    assert data["category"] == "lifestyle"
    assert data["original_prompt"] == "red shoe"


def test_parse_enhancement_falls_back_to_raw_content():
    assert parse_enhancement("just text", "banner") == ("just text", [], "banner")
    assert parse_enhancement("[1, 2]", "banner") == ("[1, 2]", [], "banner")
    assert parse_enhancement('{"suggestions": "x"}', "banner") == ('{"suggestions": "x"}', [], "banner")
