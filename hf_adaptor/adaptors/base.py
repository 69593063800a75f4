"""基础请求发送器。

BaseSender 负责一次逻辑请求的完整 HTTP 交互：

1. 将请求体序列化为 JSON。
2. POST 到配置的端点，带上 Accept / Content-Type / Authorization 头。
3. 503 视为端点尚未就绪：关闭响应，固定间隔等待后重试，直到次数耗尽。
4. 其他非 200 状态读取响应体用于诊断，立即失败，不重试。
5. 传输层错误（连接失败、DNS 等）立即失败，不重试。

成功时返回尚未读取的 httpx.Response，由调用方解码并关闭。
"""

import json
import threading
import time
from typing import Any, Callable, Optional, TypeVar

import httpx

from hf_adaptor.config.settings import settings
from hf_adaptor.domain.exceptions import (
    ApiError,
    DecodeError,
    NetworkError,
    RequestCancelledError,
    RetriesExceededError,
    ValidationError,
)
from hf_adaptor.infrastructure.logging.logger import logger


T = TypeVar("T")

# 503 后的固定等待时间（秒），无指数退避、无抖动
DEFAULT_RETRY_BACKOFF = 30.0

# 调用方传入的取消令牌；置位后不再发起新的尝试，并中断退避等待
CancelToken = threading.Event


class BaseSender:
    """带有限次重试的 POST 发送器，可被多个调用方并发复用。"""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        max_retries: int = 1,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        if not api_url:
            raise ValidationError(code="MISSING_API_URL", message="api url not set")
        if max_retries < 1:
            raise ValidationError(code="INVALID_RETRIES", message=f"max_retries must be >= 1, got {max_retries}")
        if retry_backoff < 0:
            raise ValidationError(code="INVALID_BACKOFF", message=f"retry_backoff must be >= 0, got {retry_backoff}")
        self.api_url = api_url
        self.api_key = api_key or ""
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout or settings.http_timeout, trust_env=False)

    def send(self, payload: Any, cancel: Optional[CancelToken] = None) -> httpx.Response:
        """发送请求并返回状态码为 200 的流式响应。

        Raises:
            ValidationError: 请求体无法序列化为 JSON。
            NetworkError: 传输层错误。
            ApiError: 非 200 且非 503 的响应。
            RetriesExceededError: 所有尝试都返回 503。
            RequestCancelledError: 发送前或退避等待期间 cancel 被置位。
        """
        body = self._encode(payload)
        log_ctx = {"url": self.api_url, "max_retries": self.max_retries}
        for attempt in range(1, self.max_retries + 1):
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError(code="CANCELLED", message="request cancelled before attempt")
            request = self._client.build_request("POST", self.api_url, content=body, headers=self._headers())
            try:
                resp = self._client.send(request, stream=True)
            except httpx.RequestError as e:
                logger.error("request.transport_error", extra={"extra": {**log_ctx, "attempt": attempt, "error": str(e)}})
                raise NetworkError(code="NETWORK_ERROR", message=f"error sending request: {e}")

            if resp.status_code == 503:
                resp.close()
                logger.warning(
                    "request.service_unavailable",
                    extra={"extra": {**log_ctx, "attempt": attempt, "backoff": self.retry_backoff}},
                )
                if attempt < self.max_retries:
                    self._wait(cancel)
                continue

            if resp.status_code != 200:
                text = self._read_error_body(resp)
                logger.error(
                    "request.failed",
                    extra={"extra": {**log_ctx, "attempt": attempt, "status": resp.status_code, "body": text}},
                )
                raise ApiError(
                    code="API_ERROR",
                    message=f"API request failed with status {resp.status_code}",
                    http_status=resp.status_code,
                    body=text,
                )

            return resp

        raise RetriesExceededError(
            code="RETRIES_EXCEEDED",
            message=f"Num retries exceeded ({self.max_retries} attempts)",
            http_status=503,
            attempts=self.max_retries,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "BaseSender":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- 辅助方法 ----

    def _headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    @staticmethod
    def _encode(payload: Any) -> bytes:
        try:
            return json.dumps(payload, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ValidationError(code="REQUEST_ENCODE_ERROR", message=f"error encoding request: {e}")

    def _wait(self, cancel: Optional[CancelToken]) -> None:
        if cancel is None:
            time.sleep(self.retry_backoff)
            return
        if cancel.wait(self.retry_backoff):
            raise RequestCancelledError(code="CANCELLED", message="request cancelled during retry backoff")

    @staticmethod
    def _read_error_body(resp: httpx.Response) -> str:
        # 仅用于诊断，读取失败时记为空字符串，错误本身仍按状态码抛出
        try:
            return resp.read().decode("utf-8", errors="replace")
        except httpx.HTTPError as e:
            logger.warning("request.error_body_unreadable", extra={"extra": {"error": str(e)}})
            return ""
        finally:
            resp.close()


def decode_response(resp: Optional[httpx.Response], extractor: Callable[..., T]) -> T:
    """用 extractor 解码响应体，结束后总是关闭响应。"""

    if resp is None:
        raise DecodeError(code="EMPTY_BODY", message="no response returned by sender")
    try:
        return extractor(resp.iter_bytes())
    except httpx.RequestError as e:
        raise NetworkError(code="READ_ERROR", message=f"error reading response: {e}")
    finally:
        resp.close()
