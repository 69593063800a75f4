"""推理端点适配层。

该包下的模块负责：
- 发送请求并处理重试 (base)。
- 将响应体解码为结构化结果 (extractors)。
- 组织对话 / 问答请求 (chat_adaptor、qna_adaptor)。

create_chat_adaptor / create_qna_adaptor 根据配置构造默认实例。
"""

from typing import Optional

import httpx

from hf_adaptor.config.settings import settings
from hf_adaptor.adaptors.base import BaseSender
from hf_adaptor.adaptors.chat_adaptor import ChatAdaptor
from hf_adaptor.adaptors.extractors import DebugExtractor, get_chat_extractor, qna_json_extractor
from hf_adaptor.adaptors.qna_adaptor import QnAAdaptor
from hf_adaptor.domain.exceptions import ValidationError


def create_chat_adaptor(client: Optional[httpx.Client] = None) -> ChatAdaptor:
    """根据配置创建 ChatAdaptor。"""

    if not getattr(settings, "hf_api_key", None):
        raise ValidationError(code="MISSING_API_KEY", message="HF_API_KEY not set")
    extractor = get_chat_extractor(settings.hf_extractor, debug=settings.hf_debug_extractor)
    return ChatAdaptor(
        api_url=settings.hf_api_url,
        api_key=settings.hf_api_key,
        model=settings.hf_model,
        base_instruction=settings.hf_base_instruction,
        extractor=extractor,
        max_retries=settings.hf_max_retries,
        retry_backoff=settings.hf_retry_backoff,
        client=client,
        timeout=settings.http_timeout,
    )


def create_qna_adaptor(client: Optional[httpx.Client] = None) -> QnAAdaptor:
    """根据配置创建 QnAAdaptor，未单独配置 key 时复用 hf_api_key。"""

    api_key = getattr(settings, "qna_api_key", None) or getattr(settings, "hf_api_key", None)
    if not api_key:
        raise ValidationError(code="MISSING_API_KEY", message="QNA_API_KEY not set")
    extractor = DebugExtractor(qna_json_extractor) if settings.hf_debug_extractor else qna_json_extractor
    return QnAAdaptor(
        api_url=settings.qna_api_url,
        api_key=api_key,
        model=settings.qna_model,
        extractor=extractor,
        max_retries=settings.hf_max_retries,
        retry_backoff=settings.hf_retry_backoff,
        client=client,
        timeout=settings.http_timeout,
    )


__all__ = ["BaseSender", "ChatAdaptor", "QnAAdaptor", "create_chat_adaptor", "create_qna_adaptor"]
