import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from medistock.ai.provider_factory import build_ocr_arbiter, build_provider_router
from medistock.config.providers import ProviderConfig, load_provider_config


def test_defaults_without_env_or_file(tmp_path):
    cfg = load_provider_config(env={}, yaml_path=tmp_path / "missing.yaml")
    assert cfg == ProviderConfig()
    assert not cfg.completion_enabled
    assert not cfg.knowledge_base_enabled
    assert cfg.retry_max_attempts == 3
    assert cfg.poll_max_attempts == 30


def test_env_overrides_file(tmp_path):
    path = tmp_path / "ai.yaml"
    path.write_text(
        "providers:\n"
        "  groq_model: file-model\n"
        "  retry_base_ms: 250  # faster in staging\n"
        "  local_ocr_enabled: false\n"
        "other:\n"
        "  groq_model: ignored\n",
        encoding="utf-8",
    )
    env = {
        "GROQ_API_KEY": "gk",
        "GROQ_MODEL": "env-model",
        "GROQ_BASE_URL": "https://llm.example/v1/",
        "AZURE_VISION_API_KEY": "ak",
        "AZURE_VISION_ENDPOINT": "https://azure.example/",
    }
    cfg = load_provider_config(env=env, yaml_path=path)

    assert cfg.groq_model == "env-model"
    assert cfg.groq_base_url == "https://llm.example/v1"
    assert cfg.retry_base_ms == 250
    assert cfg.local_ocr_enabled is False
    assert cfg.azure_vision_endpoint == "https://azure.example"
    assert cfg.completion_enabled
    assert cfg.azure_vision_enabled


@pytest.mark.parametrize(
    "raw, expected",
    [("off", False), ("no", False), ("0", False), ("on", True), ("1", True), ("maybe", True)],
)
def test_file_flags_use_the_same_words_as_env(tmp_path, raw, expected):
    path = tmp_path / "ai.yaml"
    path.write_text(f"providers:\n  local_ocr_enabled: {raw}\n", encoding="utf-8")
    cfg = load_provider_config(env={}, yaml_path=path)
    # Unrecognized words leave the default (on).
    assert cfg.local_ocr_enabled is expected


def test_blank_credentials_disable_providers(tmp_path):
    cfg = load_provider_config(env={"GROQ_API_KEY": "  ", "DIFY_API_KEY": ""}, yaml_path=tmp_path / "none.yaml")
    assert cfg.groq_api_key is None
    assert cfg.dify_api_key is None


def test_invalid_attempt_count_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_provider_config(env={"AI_RETRY_MAX_ATTEMPTS": "0"}, yaml_path=tmp_path / "none.yaml")


def test_router_wiring_follows_credentials():
    bare = build_provider_router(ProviderConfig())
    assert bare.provider_for("knowledge-base") is None
    assert bare.provider_for("general-completion") is None

    full = build_provider_router(ProviderConfig(groq_api_key="g", dify_api_key="d", retry_max_attempts=4))
    assert full.provider_for("knowledge-base").descriptor.name == "dify"
    assert full.provider_for("general-completion").descriptor.name == "groq"
    assert full.completion_attempts == 4


def test_ocr_wiring_always_has_a_provider():
    names = [p.descriptor.name for p in build_ocr_arbiter(ProviderConfig(local_ocr_enabled=False)).providers]
    assert names == ["local"]

    cfg = ProviderConfig(google_vision_api_key="g", azure_vision_api_key="a", azure_vision_endpoint="https://a")
    names = [p.descriptor.name for p in build_ocr_arbiter(cfg).providers]
    assert names == ["google-vision", "azure-read", "local"]
