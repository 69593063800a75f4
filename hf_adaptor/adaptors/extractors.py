"""响应解码器（Extractor）。

解码器把端点返回的原始字节流转换成结构化结果：

- openai_json_extractor: 解析 chat/completions 结构，只取第一个 choice，
  旧版 function_call 与新版 tool_calls 统一为一个有序调用列表。
- raw_extractor: 不做结构解析，整个响应体原样作为文本返回。
- qna_json_extractor: 解析问答端点返回的候选答案数组。
- DebugExtractor: 包装任意解码器，边读边把原始字节写到诊断 sink。

所有解码器的输入都是 bytes 块的可迭代对象（通常是 httpx.Response.iter_bytes()），
读取失败时异常直接向上抛出，由 adaptor 统一转换为 NetworkError。
"""

import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TypeVar, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from hf_adaptor.domain.exceptions import DecodeError, ValidationError
from hf_adaptor.domain.models import ChatReply, ChatResponse, QnAResponse, ResponseMessage
from hf_adaptor.infrastructure.logging.logger import logger
from hf_adaptor.tools.definitions import FunctionCall


T = TypeVar("T")

ChatExtractor = Callable[[Iterable[bytes]], ChatReply]
QnAExtractor = Callable[[Iterable[bytes]], List[QnAResponse]]
ChunkSink = Callable[[bytes], None]

_CHAT_RESPONSE = TypeAdapter(ChatResponse)
_QNA_RESPONSE = TypeAdapter(List[QnAResponse])


def _read_all(chunks: Iterable[bytes]) -> bytes:
    return b"".join(chunks)


def _decode(adapter: TypeAdapter, data: bytes, what: str):
    if not data.strip():
        raise DecodeError(code="EMPTY_BODY", message=f"empty {what} body")
    try:
        # strict: 类型不符（如字符串形式的数字）直接视为解码失败
        return adapter.validate_json(data, strict=True)
    except PydanticValidationError as e:
        raise DecodeError(code="DECODE_ERROR", message=f"invalid {what} body: {e}")


def _arguments_text(raw: Union[str, Dict[str, Any]]) -> str:
    # 个别端点直接返回对象而不是 JSON 字符串
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)


def _collect_calls(message: ResponseMessage) -> List[FunctionCall]:
    calls: List[FunctionCall] = []
    for call in message.tool_calls or []:
        calls.append(
            FunctionCall(
                id=call.id,
                type=call.type,
                name=call.function.name,
                arguments=_arguments_text(call.function.arguments),
            )
        )
    legacy = message.function_call
    if legacy is not None:
        calls.append(
            FunctionCall(
                id=legacy.id or legacy.call_id,
                type="function",
                name=legacy.name,
                arguments=_arguments_text(legacy.arguments),
            )
        )
    return calls


def openai_json_extractor(chunks: Iterable[bytes]) -> ChatReply:
    """解析 OpenAI 风格 chat 响应，只取第一个 choice 的内容与调用。"""

    resp: ChatResponse = _decode(_CHAT_RESPONSE, _read_all(chunks), "chat response")
    if not resp.choices:
        raise DecodeError(code="NO_CHOICES", message="no choices found in response")
    choice = resp.choices[0]
    return ChatReply(
        content=choice.message.content or "",
        function_calls=_collect_calls(choice.message),
        finish_reason=choice.finish_reason,
        usage=resp.usage,
    )


def raw_extractor(chunks: Iterable[bytes]) -> ChatReply:
    """整个响应体原样作为 content 返回，不解析调用，也不校验结构。

    非 UTF-8 字节以 surrogateescape 保留，
    content.encode("utf-8", "surrogateescape") 可还原原始字节。
    """

    return ChatReply(content=_read_all(chunks).decode("utf-8", errors="surrogateescape"))


def qna_json_extractor(chunks: Iterable[bytes]) -> List[QnAResponse]:
    """解析问答候选数组；空数组表示未找到答案，不视为错误。"""

    return _decode(_QNA_RESPONSE, _read_all(chunks), "qna response")


def _log_chunk(chunk: bytes) -> None:
    logger.info("response.chunk", extra={"extra": {"data": chunk.decode("utf-8", errors="replace")}})


class DebugExtractor:
    """调试用包装：读取的每个字节块先写入 sink，再交给被包装的解码器。

    解码语义与被包装的解码器完全一致。sink 缺省写入 hf_adaptor 日志（INFO 级别），
    只要使用了 DebugExtractor 就会输出，不依赖日志级别配置。
    """

    def __init__(self, inner: Callable[[Iterable[bytes]], T], sink: Optional[ChunkSink] = None):
        self._inner = inner
        self._sink = sink or _log_chunk

    def __call__(self, chunks: Iterable[bytes]) -> T:
        return self._inner(self._echo(chunks))

    def _echo(self, chunks: Iterable[bytes]) -> Iterator[bytes]:
        for chunk in chunks:
            self._sink(chunk)
            yield chunk


def debug_extractor(inner: Callable[[Iterable[bytes]], T], sink: Optional[ChunkSink] = None) -> DebugExtractor:
    return DebugExtractor(inner, sink)


CHAT_EXTRACTORS: Dict[str, ChatExtractor] = {
    "openai": openai_json_extractor,
    "raw": raw_extractor,
}


def get_chat_extractor(name: str, debug: bool = False) -> ChatExtractor:
    """按名称选择 chat 解码器，名称不区分大小写。"""

    extractor = CHAT_EXTRACTORS.get((name or "").lower())
    if extractor is None:
        raise ValidationError(code="UNKNOWN_EXTRACTOR", message=f"Unknown extractor: {name!r}")
    if debug:
        return DebugExtractor(extractor)
    return extractor
