"""工具数据结构定义。

这些 dataclass 描述了“工具 / 函数调用”的 schema，既用于：
- 将可用工具列表暴露给远端模型（Tool / ToolFunction / ToolParameters）。
- 保存远端模型返回的调用请求（FunctionCall）。

工具只是描述性声明，不携带可执行代码；required / additionalProperties
仅作为给模型的提示，本库不在本地校验调用参数。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from hf_adaptor.domain.exceptions import DecodeError


@dataclass
class ToolParameterProperty:
    """单个参数属性：类型、说明与可选的枚举值。"""

    type: str
    description: str = ""
    enum: Optional[List[str]] = None


@dataclass
class ToolParameters:
    """JSON-schema 风格的参数对象，type 固定为 "object"。"""

    properties: Dict[str, ToolParameterProperty] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    additional_properties: bool = False
    type: str = "object"


@dataclass
class ToolFunction:
    name: str
    description: str = ""
    parameters: Optional[ToolParameters] = None


@dataclass
class Tool:
    """一个可供远端模型请求调用的工具声明。"""

    function: ToolFunction
    type: str = "function"


@dataclass
class ToolParam:
    """build_tool 使用的参数描述。"""

    name: str
    type: str
    description: str = ""
    required: bool = False
    enum: Optional[List[str]] = None


@dataclass
class FunctionCall:
    """模型发起的一次函数 / 工具调用请求。

    arguments 保持为原始 JSON 文本，由调用方负责解析与执行。
    """

    name: str
    arguments: str = ""
    id: Optional[str] = None
    type: Optional[str] = None


def build_tool(name: str, description: str, params: Sequence[ToolParam] = ()) -> Tool:
    """根据参数列表构造 Tool，required 的顺序与传入顺序一致。"""

    properties: Dict[str, ToolParameterProperty] = {}
    required: List[str] = []
    for param in params:
        properties[param.name] = ToolParameterProperty(
            type=param.type,
            description=param.description,
            enum=list(param.enum) if param.enum else None,
        )
        if param.required:
            required.append(param.name)
    return Tool(
        function=ToolFunction(
            name=name,
            description=description,
            parameters=ToolParameters(properties=properties, required=required),
        )
    )


def tool_to_payload(tool: Tool) -> Dict[str, Any]:
    """将 Tool 序列化为请求体中的 JSON 对象。"""

    function: Dict[str, Any] = {"name": tool.function.name}
    if tool.function.description:
        function["description"] = tool.function.description
    params = tool.function.parameters
    if params is not None:
        properties: Dict[str, Any] = {}
        for prop_name, prop in params.properties.items():
            schema: Dict[str, Any] = {"type": prop.type}
            if prop.description:
                schema["description"] = prop.description
            if prop.enum:
                schema["enum"] = list(prop.enum)
            properties[prop_name] = schema
        parameters: Dict[str, Any] = {"type": params.type, "properties": properties}
        if params.required:
            parameters["required"] = list(params.required)
        parameters["additionalProperties"] = params.additional_properties
        function["parameters"] = parameters
    return {"type": tool.type, "function": function}


def function_call_to_payload(call: FunctionCall) -> Dict[str, Any]:
    """按现代 tool_calls 结构序列化一次调用（用于回放历史消息）。"""

    payload: Dict[str, Any] = {
        "type": call.type or "function",
        "function": {"name": call.name, "arguments": call.arguments},
    }
    if call.id:
        payload["id"] = call.id
    return payload


def parse_arguments(call: FunctionCall) -> Dict[str, Any]:
    """把 arguments 文本解析为 dict，供调用方执行函数前使用。"""

    if not call.arguments:
        return {}
    try:
        data = json.loads(call.arguments)
    except json.JSONDecodeError as e:
        raise DecodeError(code="DECODE_ERROR", message=f"invalid arguments for {call.name}: {e}")
    if not isinstance(data, dict):
        raise DecodeError(code="DECODE_ERROR", message=f"arguments for {call.name} are not a JSON object")
    return data
