import threading

import httpx
import pytest

from hf_adaptor.adaptors.base import BaseSender, decode_response
from hf_adaptor.adaptors.extractors import raw_extractor
from hf_adaptor.domain.exceptions import (
    ApiError,
    DecodeError,
    NetworkError,
    RequestCancelledError,
    RetriesExceededError,
    ValidationError,
)


URL = "http://hf.test/generate"


def make_sender(statuses, max_retries=3, seen=None, retry_backoff=30.0):
    """按顺序返回 statuses 中的状态码，200 时返回 {"ok": true}。"""
    queue = list(statuses)
    seen = seen if seen is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status = queue.pop(0)
        if status == 200:
            return httpx.Response(200, content=b'{"ok": true}')
        return httpx.Response(status, content=f"status {status}".encode())

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return BaseSender(URL, "secret", max_retries=max_retries, retry_backoff=retry_backoff, client=client)


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr("hf_adaptor.adaptors.base.time.sleep", lambda s: calls.append(s))
    return calls


def test_send_sets_headers_and_json_body(sleeps):
    seen = []
    sender = make_sender([200], seen=seen)
    resp = sender.send({"model": "tgi", "messages": []})
    assert resp.status_code == 200
    resp.close()
    req = seen[0]
    assert req.method == "POST"
    assert str(req.url) == URL
    assert req.headers["Accept"] == "application/json"
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["Authorization"] == "Bearer secret"
    assert req.content == b'{"model": "tgi", "messages": []}'


def test_retry_503_then_success(sleeps):
    seen = []
    sender = make_sender([503, 503, 200], max_retries=3, seen=seen)
    resp = sender.send({"x": 1})
    assert decode_response(resp, raw_extractor).content == '{"ok": true}'
    assert len(seen) == 3
    assert sleeps == [30.0, 30.0]


def test_retries_exceeded_makes_exactly_max_attempts(sleeps):
    seen = []
    sender = make_sender([503] * 4, max_retries=4, seen=seen)
    with pytest.raises(RetriesExceededError) as ei:
        sender.send({"x": 1})
    assert ei.value.code == "RETRIES_EXCEEDED"
    assert ei.value.extra["attempts"] == 4
    assert len(seen) == 4
    # 最后一次尝试之后不再等待
    assert len(sleeps) == 3


def test_non_retryable_status_fails_after_one_attempt(sleeps):
    seen = []
    sender = make_sender([404, 200], max_retries=3, seen=seen)
    with pytest.raises(ApiError) as ei:
        sender.send({"x": 1})
    assert ei.value.http_status == 404
    assert "404" in str(ei.value)
    assert ei.value.extra["body"] == "status 404"
    assert len(seen) == 1
    assert sleeps == []


def test_transport_error_is_not_retried(sleeps):
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    sender = BaseSender(URL, "secret", max_retries=3, client=client)
    with pytest.raises(NetworkError) as ei:
        sender.send({"x": 1})
    assert ei.value.code == "NETWORK_ERROR"
    assert len(attempts) == 1


def test_cancel_during_backoff():
    cancel = threading.Event()
    seen = []

    def handler(request):
        seen.append(request)
        # 端点返回 503 的同时调用方取消
        cancel.set()
        return httpx.Response(503)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    sender = BaseSender(URL, "secret", max_retries=3, client=client)
    with pytest.raises(RequestCancelledError) as ei:
        sender.send({"x": 1}, cancel=cancel)
    assert ei.value.code == "CANCELLED"
    assert len(seen) == 1


def test_cancelled_token_sends_nothing(sleeps):
    cancel = threading.Event()
    cancel.set()
    seen = []
    sender = make_sender([200], max_retries=3, seen=seen)
    with pytest.raises(RequestCancelledError) as ei:
        sender.send({"x": 1}, cancel=cancel)
    assert ei.value.code == "CANCELLED"
    assert seen == []


def test_cancel_between_attempts_without_backoff(monkeypatch):
    cancel = threading.Event()
    # 退避等待本身不观察令牌，取消发生在等待结束之后
    monkeypatch.setattr(BaseSender, "_wait", lambda self, token: cancel.set())
    seen = []
    sender = make_sender([503, 200], max_retries=2, seen=seen)
    with pytest.raises(RequestCancelledError):
        sender.send({"x": 1}, cancel=cancel)
    assert len(seen) == 1


def test_backoff_waits_on_cancel_token_when_given():
    cancel = threading.Event()
    sender = make_sender([503, 200], max_retries=2, retry_backoff=0.0)
    resp = sender.send({"x": 1}, cancel=cancel)
    assert resp.status_code == 200
    resp.close()


def test_invalid_construction():
    with pytest.raises(ValidationError) as ei:
        BaseSender("", "k")
    assert ei.value.code == "MISSING_API_URL"
    with pytest.raises(ValidationError) as ei:
        BaseSender(URL, "k", max_retries=0)
    assert ei.value.code == "INVALID_RETRIES"
    with pytest.raises(ValidationError) as ei:
        BaseSender(URL, "k", retry_backoff=-1.0)
    assert ei.value.code == "INVALID_BACKOFF"


def test_unserializable_payload(sleeps):
    sender = make_sender([200])
    with pytest.raises(ValidationError) as ei:
        sender.send({"x": object()})
    assert ei.value.code == "REQUEST_ENCODE_ERROR"


def test_decode_response_without_response():
    with pytest.raises(DecodeError) as ei:
        decode_response(None, raw_extractor)
    assert ei.value.code == "EMPTY_BODY"


def test_decode_response_wraps_read_errors():
    class BrokenResponse:
        closed = False

        def iter_bytes(self):
            yield b"partial"
            raise httpx.ReadError("connection reset")

        def close(self):
            self.closed = True

    resp = BrokenResponse()
    with pytest.raises(NetworkError) as ei:
        decode_response(resp, raw_extractor)
    assert ei.value.code == "READ_ERROR"
    assert resp.closed
