import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from hf_adaptor.config.settings import settings


# 可能包含完整响应体的字段，开启脱敏时与 msg 一起截断
_CONTENT_FIELDS = ("body", "data")
_REDACT_LIMIT = 64


class JsonFormatter(logging.Formatter):
    """每条记录输出一行 JSON；url / attempt / status 等请求上下文经 extra={"extra": {...}} 传入。"""

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if settings.log_redact_content:
            msg = (msg or "")[:_REDACT_LIMIT]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
            if settings.log_redact_content:
                for key in _CONTENT_FIELDS:
                    if isinstance(payload.get(key), str):
                        payload[key] = payload[key][:_REDACT_LIMIT]
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("hf_adaptor")
    logger.setLevel(logging.INFO)
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "hf_adaptor.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


logger = setup_logger()
