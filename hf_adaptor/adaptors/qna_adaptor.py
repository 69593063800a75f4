"""抽取式问答适配器。

请求体为 {"inputs": {"context", "question"}, "parameters": {...}}，
parameters 原样透传给端点，不做任何校验；
返回的候选答案保持端点给出的顺序，不重新排序、打分或过滤。
"""

from typing import Any, Dict, List, Optional

import httpx

from hf_adaptor.adaptors.base import DEFAULT_RETRY_BACKOFF, BaseSender, CancelToken, decode_response
from hf_adaptor.adaptors.extractors import QnAExtractor, qna_json_extractor
from hf_adaptor.domain.models import QnAInputs, QnARequest, QnAResponse, qna_request_to_payload


class QnAAdaptor:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        extractor: Optional[QnAExtractor] = None,
        max_retries: int = 1,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model
        self.extractor: QnAExtractor = extractor or qna_json_extractor
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

    def send_question(
        self,
        context: str,
        question: str,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[QnAResponse]:
        """针对 context 提问，返回候选答案列表；空列表表示未找到答案。"""
        req = QnARequest(inputs=QnAInputs(context=context, question=question), parameters=params)
        resp = self._sender.send(qna_request_to_payload(req), cancel=cancel)
        return decode_response(resp, self.extractor)

    def close(self) -> None:
        self._sender.close()

    def __enter__(self) -> "QnAAdaptor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
