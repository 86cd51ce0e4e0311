"""Shared fixtures: settings built in-process and a scripted stand-in for Gemini."""

import pytest
from fastapi.testclient import TestClient

from healthrelay.core.settings import Settings
from healthrelay.main import create_app
from healthrelay.services.analysis import AnalysisService
from healthrelay.services.rate_limiter import RateLimiter


class FakeLLM:
    """Returns canned text (or raises) and records every prompt it receives."""

    def __init__(self, text: str = '{"summary": "ok"}', exc: Exception | None = None):
        self.text = text
        self.exc = exc
        self.prompts: list[str] = []

    def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.exc is not None:
            raise self.exc
        return self.text


@pytest.fixture
def settings(monkeypatch) -> Settings:
    monkeypatch.setattr("healthrelay.core.settings._load_yaml_config", lambda: {})
    return Settings(
        llm_provider="gemini",
        GEMINI_API_KEY="test-key",
        GEMINI_ENDPOINT=None,
        rate_limit_points=3,
        rate_limit_duration_seconds=60,
        max_body_bytes=4096,
        allowed_origins="*",
        log_level="WARNING",
    )


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def service(settings, fake_llm) -> AnalysisService:
    return AnalysisService(settings, llm_factory=lambda cfg: fake_llm)


@pytest.fixture
def limiter(settings) -> RateLimiter:
    return RateLimiter(points=settings.rate_limit_points, duration=settings.rate_limit_duration_seconds)


@pytest.fixture
def client(settings, service, limiter) -> TestClient:
    app = create_app(settings, service=service, limiter=limiter)
    return TestClient(app)
