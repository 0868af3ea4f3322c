from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True)
class ProviderConfig:
    # General-purpose completion (OpenAI-compatible, Groq by default)
    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.1-70b-versatile"
    groq_temperature: float = 0.3
    groq_max_tokens: int = 800

    # Knowledge base (Dify chat-messages API)
    dify_api_key: str | None = None
    dify_base_url: str = "https://api.dify.ai/v1"

    # OCR
    google_vision_api_key: str | None = None
    google_vision_url: str = "https://vision.googleapis.com/v1/images:annotate"
    azure_vision_api_key: str | None = None
    azure_vision_endpoint: str | None = None
    local_ocr_enabled: bool = True

    # Transport / resilience
    http_timeout_s: float = 30.0
    retry_max_attempts: int = 3
    retry_base_ms: int = 1000
    poll_interval_s: float = 1.0
    poll_max_attempts: int = 30

    @property
    def completion_enabled(self) -> bool:
        return bool(self.groq_api_key)

    @property
    def knowledge_base_enabled(self) -> bool:
        return bool(self.dify_api_key)

    @property
    def google_vision_enabled(self) -> bool:
        return bool(self.google_vision_api_key)

    @property
    def azure_vision_enabled(self) -> bool:
        return bool(self.azure_vision_api_key and self.azure_vision_endpoint)


def _repo_backend_root() -> Path:
    # backend/medistock/config/providers.py -> backend/
    return Path(__file__).resolve().parents[2]


def _coerce(val: str) -> Any:
    if val.lower() in {"true", "false"}:
        return val.lower() == "true"
    try:
        return int(val)
    except ValueError:
        pass
    try:
        return float(val)
    except ValueError:
        return val.strip("\"'")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8")
    if not raw.strip():
        return {}

    # Minimal reader for `backend/config/ai.yaml`: a top-level `providers:`
    # mapping of scalar `key: value` pairs.
    section: dict[str, Any] = {}
    in_section = False
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not in_section and stripped == "providers:":
            in_section = True
            continue
        if in_section:
            if not line.startswith("  "):
                in_section = False
                continue
            kv = stripped.split(":", 1)
            if len(kv) != 2:
                continue
            key = kv[0].strip()
            val = kv[1].strip()
            if " #" in val:
                val = val.split(" #", 1)[0].strip()
            section[key] = _coerce(val)
    return {"providers": section} if section else {}


def _env_str(env: Mapping[str, str], key: str) -> str | None:
    val = (env.get(key) or "").strip()
    return val or None


_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _as_bool(value: Any) -> bool | None:
    val = str(value).strip().lower()
    if val in _TRUTHY:
        return True
    if val in _FALSY:
        return False
    return None


def _env_bool(env: Mapping[str, str], key: str) -> bool | None:
    if key not in env:
        return None
    return _as_bool(env.get(key) or "")


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    if key not in env:
        return None
    try:
        return int(env.get(key) or "")
    except ValueError:
        return None


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    if key not in env:
        return None
    try:
        return float(env.get(key) or "")
    except ValueError:
        return None


def _pick(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def load_provider_config(env: Mapping[str, str] | None = None, yaml_path: Path | None = None) -> ProviderConfig:
    env = os.environ if env is None else env
    path = yaml_path or (_repo_backend_root() / "config" / "ai.yaml")
    data = _load_yaml(path).get("providers", {})
    defaults = ProviderConfig()

    def file_value(key: str, kind: type) -> Any:
        val = data.get(key)
        if val is None:
            return None
        if kind is bool:
            return _as_bool(val)
        try:
            return kind(val)
        except (TypeError, ValueError):
            return None

    cfg = ProviderConfig(
        groq_api_key=_env_str(env, "GROQ_API_KEY"),
        groq_base_url=(
            _pick(_env_str(env, "GROQ_BASE_URL"), file_value("groq_base_url", str), defaults.groq_base_url)
        ).rstrip("/"),
        groq_model=_pick(_env_str(env, "GROQ_MODEL"), file_value("groq_model", str), defaults.groq_model),
        groq_temperature=_pick(
            _env_float(env, "GROQ_TEMPERATURE"), file_value("groq_temperature", float), defaults.groq_temperature
        ),
        groq_max_tokens=_pick(
            _env_int(env, "GROQ_MAX_TOKENS"), file_value("groq_max_tokens", int), defaults.groq_max_tokens
        ),
        dify_api_key=_env_str(env, "DIFY_API_KEY"),
        dify_base_url=(
            _pick(_env_str(env, "DIFY_BASE_URL"), file_value("dify_base_url", str), defaults.dify_base_url)
        ).rstrip("/"),
        google_vision_api_key=_env_str(env, "GOOGLE_VISION_API_KEY"),
        google_vision_url=_pick(
            _env_str(env, "GOOGLE_VISION_URL"), file_value("google_vision_url", str), defaults.google_vision_url
        ),
        azure_vision_api_key=_env_str(env, "AZURE_VISION_API_KEY"),
        azure_vision_endpoint=(_env_str(env, "AZURE_VISION_ENDPOINT") or "").rstrip("/") or None,
        local_ocr_enabled=_pick(
            _env_bool(env, "OCR_LOCAL_FALLBACK"), file_value("local_ocr_enabled", bool), defaults.local_ocr_enabled
        ),
        http_timeout_s=_pick(
            _env_float(env, "AI_HTTP_TIMEOUT_S"), file_value("http_timeout_s", float), defaults.http_timeout_s
        ),
        retry_max_attempts=_pick(
            _env_int(env, "AI_RETRY_MAX_ATTEMPTS"), file_value("retry_max_attempts", int), defaults.retry_max_attempts
        ),
        retry_base_ms=_pick(_env_int(env, "AI_RETRY_BASE_MS"), file_value("retry_base_ms", int), defaults.retry_base_ms),
        poll_interval_s=_pick(
            _env_float(env, "OCR_POLL_INTERVAL_S"), file_value("poll_interval_s", float), defaults.poll_interval_s
        ),
        poll_max_attempts=_pick(
            _env_int(env, "OCR_POLL_MAX_ATTEMPTS"), file_value("poll_max_attempts", int), defaults.poll_max_attempts
        ),
    )
    if cfg.retry_max_attempts < 1 or cfg.poll_max_attempts < 1:
        raise ValueError("retry_max_attempts and poll_max_attempts must be >= 1")
    return cfg


@lru_cache(maxsize=1)
def get_provider_config() -> ProviderConfig:
    return load_provider_config()
