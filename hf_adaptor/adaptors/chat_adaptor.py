"""Chat 适配器。

负责对话的组织方式：

1. 固定的 system 指令始终放在最前面。
2. 调用方提供的历史消息按原顺序插入其后。
3. 最后追加本次消息（user 或 system 角色）。
4. 仅当调用方提供了非空的工具列表时才在请求体中携带 tools 字段。

请求通过 BaseSender 发送，响应交给构造时选定的解码器处理。
"""

import html
from typing import Optional, Sequence

import httpx

from hf_adaptor.adaptors.base import DEFAULT_RETRY_BACKOFF, BaseSender, CancelToken, decode_response
from hf_adaptor.adaptors.extractors import ChatExtractor, raw_extractor
from hf_adaptor.domain.models import (
    ROLE_SYSTEM,
    ROLE_USER,
    ChatReply,
    ChatRequest,
    Message,
    Role,
    chat_request_to_payload,
)
from hf_adaptor.infrastructure.logging.logger import logger
from hf_adaptor.tools.definitions import Tool


class ChatAdaptor:
    """面向 chat 端点的长生命周期客户端。

    - model: 发送给端点的模型标识（TGI 端点通常为 "tgi"）。
    - base_instruction: 每次请求开头的 system 指令。
    - extractor: 响应解码器，缺省为 raw_extractor（原样返回响应体）。
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        base_instruction: str = "",
        extractor: Optional[ChatExtractor] = None,
        max_retries: int = 1,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model
        self.base_instruction = base_instruction
        self.extractor: ChatExtractor = extractor or raw_extractor
        self._sender = BaseSender(
            api_url=api_url,
            api_key=api_key,
            max_retries=max_retries,
            retry_backoff=retry_backoff,
            client=client,
            timeout=timeout,
        )

    @property
    def sender(self) -> BaseSender:
        return self._sender

    def send_request(self, message: str, cancel: Optional[CancelToken] = None) -> str:
        """发送一条用户消息（无历史、无工具），只返回文本内容。"""
        reply = self._send_with_role(message, ROLE_USER, [], None, cancel)
        return reply.content

    def send_request_with_history(
        self,
        message: str,
        history: Sequence[Message],
        tools: Optional[Sequence[Tool]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ChatReply:
        """带历史的用户消息，返回文本与模型发起的函数调用。"""
        return self._send_with_role(message, ROLE_USER, history, tools, cancel)

    def send_system_request_with_history(
        self,
        message: str,
        history: Sequence[Message],
        tools: Optional[Sequence[Tool]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ChatReply:
        """以 system 角色追加本次消息，用于注入高层引导而非用户发言。"""
        return self._send_with_role(message, ROLE_SYSTEM, history, tools, cancel)

    def build_request(
        self,
        message: str,
        role: Role = ROLE_USER,
        history: Optional[Sequence[Message]] = None,
        tools: Optional[Sequence[Tool]] = None,
    ) -> ChatRequest:
        """组装 [system 指令] + history + [role: message]。

        上游传来的文本可能经过 HTML 转义，这里统一反转义后再发送。
        """
        messages = [Message(role=ROLE_SYSTEM, content=html.unescape(self.base_instruction))]
        messages.extend(history or [])
        messages.append(Message(role=role, content=html.unescape(message)))
        return ChatRequest(
            model=self.model,
            messages=messages,
            tools=list(tools) if tools else None,
        )

    def close(self) -> None:
        self._sender.close()

    def __enter__(self) -> "ChatAdaptor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _send_with_role(
        self,
        message: str,
        role: Role,
        history: Optional[Sequence[Message]],
        tools: Optional[Sequence[Tool]],
        cancel: Optional[CancelToken],
    ) -> ChatReply:
        req = self.build_request(message, role, history, tools)
        resp = self._sender.send(chat_request_to_payload(req), cancel=cancel)
        reply = decode_response(resp, self.extractor)
        logger.info(
            "chat.reply",
            extra={
                "extra": {
                    "model": self.model,
                    "role": role,
                    "history": len(req.messages) - 2,
                    "function_calls": len(reply.function_calls),
                }
            },
        )
        return reply
