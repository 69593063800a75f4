"""统一的对话 / 问答数据模型。

本模块定义了适配器在调用方与推理端点之间共享的数据结构：

- Message: 一条对话消息（system/user/assistant），可附带函数 / 工具调用。
- ChatRequest: 发给 chat 端点的完整请求体。
- ChatResponse 及其子结构: chat/completions 响应的线上格式，仅用于解码。
- ChatReply: 解码后返回给调用方的统一结果（文本 + 调用列表）。
- QnARequest / QnAResponse: 抽取式问答的请求与候选答案。

所有实体都是一次调用内的临时对象，不做任何持久化。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union, get_args

from hf_adaptor.domain.exceptions import ValidationError
from hf_adaptor.tools.definitions import FunctionCall, Tool, function_call_to_payload, tool_to_payload


# 消息角色，与 OpenAI / TGI 的 role 字段对应
Role = Literal["system", "user", "assistant"]

ROLE_SYSTEM: Role = "system"
ROLE_USER: Role = "user"
ROLE_ASSISTANT: Role = "assistant"


@dataclass
class Message:
    """一条对话消息，既用于历史记录，也用于新发送的消息。

    - content: 纯文本内容；当附带调用时可以为空字符串。
    - function_call: 旧版单个函数调用字段。
    - tool_calls: 新版工具调用列表。
    """

    role: Role
    content: str = ""
    function_call: Optional[FunctionCall] = None
    tool_calls: Optional[List[FunctionCall]] = None

    def __post_init__(self) -> None:
        if self.role not in get_args(Role):
            raise ValidationError(code="INVALID_ROLE", message=f"invalid message role: {self.role!r}")


@dataclass
class ChatRequest:
    """一次 chat 请求，按原样序列化为请求体。"""

    model: str
    messages: List[Message]
    tools: Optional[List[Tool]] = None


@dataclass
class ChatUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatReply:
    """一次 chat 调用的最终结果。

    function_calls 统一为有序列表（可能为空），调用方无需关心
    端点返回的是旧版 function_call 还是新版 tool_calls。
    """

    content: str
    function_calls: List[FunctionCall] = field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Optional[ChatUsage] = None


# ---- chat/completions 响应的线上格式 ----


@dataclass
class WireFunction:
    name: str
    arguments: Union[str, Dict[str, Any]] = ""
    description: Optional[str] = None


@dataclass
class WireToolCall:
    function: WireFunction
    id: Optional[str] = None
    type: Optional[str] = None


@dataclass
class WireFunctionCall:
    """旧版单个 function_call 字段。"""

    name: str
    arguments: Union[str, Dict[str, Any]] = ""
    id: Optional[str] = None
    call_id: Optional[str] = None


@dataclass
class ResponseMessage:
    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[List[WireToolCall]] = None
    function_call: Optional[WireFunctionCall] = None


@dataclass
class ResponseChoice:
    message: ResponseMessage
    index: int = 0
    finish_reason: Optional[str] = None


@dataclass
class ChatResponse:
    """chat/completions 响应体，未知字段在解码时忽略。"""

    choices: List[ResponseChoice]
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    system_fingerprint: Optional[str] = None
    usage: Optional[ChatUsage] = None


# ---- QnA ----


@dataclass
class QnAInputs:
    context: str
    question: str


@dataclass
class QnARequest:
    inputs: QnAInputs
    # 模型相关参数，原样透传，不做校验
    parameters: Optional[Dict[str, Any]] = None


@dataclass
class QnAResponse:
    """单个候选答案：文本、置信度以及在 context 中的字符区间。"""

    answer: str
    score: float
    start: int
    end: int


# ---- 序列化 ----


def message_to_payload(message: Message) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"role": message.role, "content": message.content}
    if message.function_call is not None:
        call = message.function_call
        legacy: Dict[str, Any] = {"name": call.name, "arguments": call.arguments}
        if call.id:
            legacy["id"] = call.id
        payload["function_call"] = legacy
    if message.tool_calls:
        payload["tool_calls"] = [function_call_to_payload(c) for c in message.tool_calls]
    return payload


def chat_request_to_payload(req: ChatRequest) -> Dict[str, Any]:
    """序列化 ChatRequest；tools 为空时整个字段省略而不是发送空数组。"""

    payload: Dict[str, Any] = {
        "model": req.model,
        "messages": [message_to_payload(m) for m in req.messages],
    }
    if req.tools:
        payload["tools"] = [tool_to_payload(t) for t in req.tools]
    return payload


def qna_request_to_payload(req: QnARequest) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "inputs": {"context": req.inputs.context, "question": req.inputs.question},
    }
    if req.parameters is not None:
        payload["parameters"] = req.parameters
    return payload
