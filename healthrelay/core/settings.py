from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_yaml_config() -> dict:
    root = Path(__file__).resolve().parents[2]  # project root
    cfg_path = root / "config.yaml"
    if not cfg_path.exists():
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _yaml_overrides(cfg: dict) -> dict:
    """Flatten the llm / rate_limit / server sections of config.yaml into field names."""
    llm = cfg.get("llm") or {}
    rate_limit = cfg.get("rate_limit") or {}
    server = cfg.get("server") or {}

    mapping = {
        "llm_provider": llm.get("provider"),
        "GEMINI_MODEL": llm.get("model"),
        "llm_temperature": llm.get("temperature"),
        "llm_max_tokens": llm.get("max_tokens"),
        "upstream_timeout_seconds": llm.get("timeout_seconds"),
        "rate_limit_points": rate_limit.get("points"),
        "rate_limit_duration_seconds": rate_limit.get("duration_seconds"),
        "allowed_origins": server.get("allowed_origins"),
        "max_body_bytes": server.get("max_body_bytes"),
        "log_level": server.get("log_level"),
        "trust_forwarded_for": server.get("trust_forwarded_for"),
        "prompt_translations": llm.get("translations"),
    }
    return {k: v for k, v in mapping.items() if v is not None}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM
    llm_provider: str = "gemini"
    GEMINI_MODEL: str = "gemini-2.0-flash"
    llm_temperature: float = 0.0
    llm_max_tokens: int = 400
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)
    upstream_detail_chars: int = Field(default=1000, ge=1)
    prompt_input_chars: int = Field(default=2000, ge=1)
    # comma-separated language codes for an optional "translations" block, e.g. "hi,or"
    prompt_translations: str = ""

    # API keys / endpoints (optional so the server can boot and report misconfiguration)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_ENDPOINT: Optional[str] = None

    # Rate limiting (per client IP)
    rate_limit_points: int = Field(default=10, ge=1)
    rate_limit_duration_seconds: int = Field(default=60, ge=1)

    # Server
    allowed_origins: str = "*"
    max_body_bytes: int = Field(default=1024 * 1024, ge=1)
    log_level: str = "INFO"
    # key rate limits on X-Forwarded-For only behind a proxy that sets it
    trust_forwarded_for: bool = False

    def __init__(self, **kwargs):
        overrides = _yaml_overrides(_load_yaml_config())
        overrides.update(kwargs)
        super().__init__(**overrides)

    @property
    def gemini_configured(self) -> bool:
        if self.llm_provider.lower().strip() == "endpoint":
            return bool(self.GEMINI_API_KEY and self.GEMINI_ENDPOINT)
        return bool(self.GEMINI_API_KEY)

    @property
    def translation_langs(self) -> list[str]:
        return [c.strip().lower() for c in self.prompt_translations.split(",") if c.strip()]

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
