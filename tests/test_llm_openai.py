from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from orchestrator.errors import ProtocolFailure, TransportFailure
from orchestrator.llm_openai import OpenAIGateway, extract_tool_calls, to_openai_messages
from orchestrator.models import Role, ToolCall, Turn
from tools import weather


HELLO = [Turn(role=Role.USER, content="Hello")]
REQUEST = httpx.Request("POST", "http://ollama.test/v1/chat/completions")


def completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def function_call(name, arguments):
    return SimpleNamespace(type="function", function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def gateway():
    gw = OpenAIGateway(base_url="http://ollama.test", model="llama3.2")
    gw._client = MagicMock()
    gw._client.chat.completions.create = AsyncMock()
    return gw


def test_messages_carry_tool_calls_as_json_strings():
    history = [
        Turn(role=Role.USER, content="Weather?"),
        Turn(role=Role.ASSISTANT, tool_calls=[ToolCall(name="get_current_weather", arguments={"location": "Köln"})]),
    ]

    messages = to_openai_messages(history)

    assert messages[0] == {"role": "user", "content": "Weather?"}
    call = messages[1]["tool_calls"][0]
    assert call["id"] == "call_0"
    assert call["type"] == "function"
    assert json.loads(call["function"]["arguments"]) == {"location": "Köln"}


def test_extract_tool_calls():
    choice = completion(tool_calls=[function_call("get_current_weather", '{"location": "Paris"}')]).choices[0]

    assert extract_tool_calls(choice) == [ToolCall(name="get_current_weather", arguments={"location": "Paris"})]


@pytest.mark.parametrize("arguments", ["{oops", '"just a string"'])
def test_extract_tool_calls_rejects_bad_arguments(arguments):
    choice = completion(tool_calls=[function_call("get_current_weather", arguments)]).choices[0]

    with pytest.raises(ProtocolFailure):
        extract_tool_calls(choice)


def test_client_targets_the_v1_endpoint():
    gw = OpenAIGateway(base_url="http://ollama.test/", model="llama3.2")

    assert str(gw._client.base_url).rstrip("/") == "http://ollama.test/v1"
    assert gw._client.max_retries == 0


@pytest.mark.asyncio
async def test_send_returns_assistant_turn(gateway):
    gateway._client.chat.completions.create.return_value = completion(content="Hi!")

    turn = await gateway.send(HELLO)

    assert turn == Turn(role=Role.ASSISTANT, content="Hi!")
    kwargs = gateway._client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "llama3.2"
    assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]
    assert "tools" not in kwargs and "tool_choice" not in kwargs


@pytest.mark.asyncio
async def test_send_with_tools(gateway):
    gateway._client.chat.completions.create.return_value = completion(
        tool_calls=[function_call("get_current_weather", '{"location": "Paris"}')],
    )

    turn = await gateway.send(HELLO, tools=[weather.SCHEMA])

    assert turn.content == ""
    assert turn.tool_calls[0].arguments == {"location": "Paris"}
    kwargs = gateway._client.chat.completions.create.call_args.kwargs
    assert kwargs["tools"] == [weather.SCHEMA.to_wire()]
    assert kwargs["tool_choice"] == "auto"


@pytest.mark.asyncio
async def test_status_error_is_transport_failure(gateway):
    response = httpx.Response(503, request=REQUEST)
    gateway._client.chat.completions.create.side_effect = openai.InternalServerError(
        "unavailable", response=response, body=None,
    )

    with pytest.raises(TransportFailure) as info:
        await gateway.send(HELLO)

    assert info.value.status_code == 503


@pytest.mark.asyncio
async def test_connection_error_is_transport_failure(gateway):
    gateway._client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

    with pytest.raises(TransportFailure):
        await gateway.send(HELLO)


@pytest.mark.asyncio
async def test_empty_choices_is_protocol_failure(gateway):
    gateway._client.chat.completions.create.return_value = SimpleNamespace(choices=[])

    with pytest.raises(ProtocolFailure):
        await gateway.send(HELLO)
