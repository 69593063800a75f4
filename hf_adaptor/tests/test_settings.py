import pydantic
import pytest

from hf_adaptor.config.settings import PydanticSettings


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("HF_API_URL", "http://hf.test/generate")
    monkeypatch.setenv("HF_API_KEY", "  hf_secret\n")
    monkeypatch.setenv("HF_MAX_RETRIES", "5")
    monkeypatch.setenv("HF_EXTRACTOR", "raw")
    cfg = PydanticSettings()
    assert cfg.hf_api_url == "http://hf.test/generate"
    assert cfg.hf_api_key == "hf_secret"
    assert cfg.hf_max_retries == 5
    assert cfg.hf_extractor == "raw"
    assert cfg.hf_retry_backoff == 30.0


def test_settings_from_yaml(monkeypatch, tmp_path):
    path = tmp_path / "hf.yaml"
    path.write_text("hf_model: mistral\nhf_retry_backoff: 2.5\nqna_model: squad\n", encoding="utf-8")
    monkeypatch.setenv("HF_ADAPTOR_CONFIG_FILE", str(path))
    monkeypatch.setenv("QNA_MODEL", "from-env")
    cfg = PydanticSettings()
    assert cfg.hf_model == "mistral"
    assert cfg.hf_retry_backoff == 2.5
    # 环境变量优先于 config.yaml
    assert cfg.qna_model == "from-env"


def test_settings_reject_zero_retries(monkeypatch):
    monkeypatch.setenv("HF_MAX_RETRIES", "0")
    with pytest.raises(pydantic.ValidationError):
        PydanticSettings()
