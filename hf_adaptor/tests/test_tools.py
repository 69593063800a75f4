import json

import pytest

from hf_adaptor.domain.exceptions import DecodeError
from hf_adaptor.domain.models import ChatRequest, Message, chat_request_to_payload
from hf_adaptor.tools.definitions import (
    FunctionCall,
    Tool,
    ToolFunction,
    ToolParam,
    ToolParameterProperty,
    ToolParameters,
    build_tool,
    parse_arguments,
    tool_to_payload,
)


def test_tool_payload_matches_wire_format():
    tool = Tool(
        function=ToolFunction(
            name="get_current_weather",
            description="Get the current weather in a given location",
            parameters=ToolParameters(
                properties={
                    "location": ToolParameterProperty(
                        type="string",
                        description="The city and state, e.g. San Francisco, CA",
                    ),
                    "unit": ToolParameterProperty(
                        type="string",
                        description="Unit for temperature, e.g. celsius or fahrenheit",
                    ),
                },
                required=["location"],
            ),
        )
    )
    expected = json.loads(
        '{"type":"function","function":{"name":"get_current_weather",'
        '"description":"Get the current weather in a given location",'
        '"parameters":{"type":"object","properties":{'
        '"location":{"type":"string","description":"The city and state, e.g. San Francisco, CA"},'
        '"unit":{"type":"string","description":"Unit for temperature, e.g. celsius or fahrenheit"}},'
        '"required":["location"],"additionalProperties":false}}}'
    )
    assert tool_to_payload(tool) == expected


def test_build_tool_required_in_supplied_order():
    tool = build_tool(
        "search",
        "Search documents",
        [
            ToolParam(name="query", type="string", description="Query text", required=True),
            ToolParam(name="limit", type="integer", description="Max hits"),
            ToolParam(name="lang", type="string", required=True, enum=["en", "de"]),
            ToolParam(name="source", type="string", required=True),
        ],
    )
    payload = tool_to_payload(tool)
    params = payload["function"]["parameters"]
    assert params["required"] == ["query", "lang", "source"]
    assert list(params["properties"]) == ["query", "limit", "lang", "source"]
    assert params["properties"]["lang"] == {"type": "string", "enum": ["en", "de"]}
    assert params["properties"]["limit"] == {"type": "integer", "description": "Max hits"}
    assert params["additionalProperties"] is False


def test_tool_without_parameters_or_required():
    assert tool_to_payload(Tool(function=ToolFunction(name="ping"))) == {
        "type": "function",
        "function": {"name": "ping"},
    }
    params = tool_to_payload(build_tool("noop", "", [ToolParam(name="x", type="string")]))["function"]["parameters"]
    assert "required" not in params


def test_chat_request_payload_omits_empty_tools():
    req = ChatRequest(model="tgi", messages=[Message(role="user", content="hi")], tools=[])
    assert chat_request_to_payload(req) == {"model": "tgi", "messages": [{"role": "user", "content": "hi"}]}


def test_parse_arguments():
    assert parse_arguments(FunctionCall(name="f", arguments='{"a": [1, 2]}')) == {"a": [1, 2]}
    assert parse_arguments(FunctionCall(name="f", arguments="")) == {}
    with pytest.raises(DecodeError):
        parse_arguments(FunctionCall(name="f", arguments="{broken"))
    with pytest.raises(DecodeError):
        parse_arguments(FunctionCall(name="f", arguments="[1]"))
