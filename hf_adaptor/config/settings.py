"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
核心适配器本身只接收构造参数，这里的配置仅供 create_chat_adaptor /
create_qna_adaptor 等工厂函数以及日志模块使用。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("HF_ADAPTOR_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class PydanticSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- chat 端点 ----
    hf_api_url: Optional[str] = Field(default=None, description="chat 推理端点完整 URL")
    hf_api_key: Optional[str] = Field(default=None, description="Bearer 令牌")
    hf_model: str = Field(default="tgi", description="模型标识，例如 TGI 端点使用 tgi")
    hf_base_instruction: str = Field(
        default="You are a helpful assistant.",
        description="每次请求开头固定的 system 指令",
    )
    hf_max_retries: int = Field(default=3, ge=1, description="最大尝试次数（含首次）")
    hf_retry_backoff: float = Field(default=30.0, ge=0.0, description="503 后的固定等待秒数")
    hf_extractor: Literal["openai", "raw"] = Field(
        default="openai",
        description="响应解码策略：openai 结构化解析，raw 原样返回",
    )
    hf_debug_extractor: bool = Field(default=False, description="是否把原始响应字节写入调试日志")

    # ---- QnA 端点 ----
    qna_api_url: Optional[str] = Field(default=None, description="问答推理端点完整 URL")
    qna_api_key: Optional[str] = Field(default=None, description="问答端点令牌，缺省复用 hf_api_key")
    qna_model: str = Field(default="qna", description="问答模型标识")

    http_timeout: float = Field(default=120.0, ge=1.0, description="HTTP 超时时间（秒）")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否截断日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("hf_api_key", "qna_api_key")
    @classmethod
    def strip_api_key(cls, v: Optional[str]) -> Optional[str]:
        # 从文件读出的 key 常带换行
        if v is None:
            return v
        return v.strip() or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = PydanticSettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = PydanticSettings
