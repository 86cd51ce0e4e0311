from __future__ import annotations

import json
import threading
from typing import Any, Callable, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from healthrelay.core.errors import (
    MethodNotAllowedError,
    RelayError,
    RequestError,
    unexpected_error_envelope,
)
from healthrelay.core.settings import Settings
from healthrelay.schemas.analysis import AnalysisRequest
from healthrelay.services.llm_client import LLMConfig, build_llm
from healthrelay.services.normalizer import NormalizedResult, parse_upstream_text
from healthrelay.services.prompt_builder import build_prompt
from healthrelay.services.rate_limiter import RateLimiter


def llm_config_from_settings(settings: Settings) -> LLMConfig:
    return LLMConfig(
        provider=settings.llm_provider,
        model=settings.GEMINI_MODEL,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        gemini_api_key=settings.GEMINI_API_KEY,
        gemini_endpoint=settings.GEMINI_ENDPOINT,
        timeout_seconds=settings.upstream_timeout_seconds,
        detail_chars=settings.upstream_detail_chars,
    )


class AnalysisService:
    """Prompt → Gemini → normalized result. Shared by the server and the serverless handler."""

    def __init__(self, settings: Settings, llm_factory: Callable[[LLMConfig], Any] = build_llm):
        self.settings = settings
        self._llm_factory = llm_factory
        self._llm = None
        self._lock = threading.Lock()

    def _get_llm(self):
        # built on first use so a missing key fails the request, not the process
        with self._lock:
            if self._llm is None:
                self._llm = self._llm_factory(llm_config_from_settings(self.settings))
            return self._llm

    def analyze(self, req: AnalysisRequest) -> NormalizedResult:
        llm = self._get_llm()
        prompt = build_prompt(
            req,
            max_input_chars=self.settings.prompt_input_chars,
            translation_langs=self.settings.translation_langs,
        )
        text = llm.generate_text(prompt)
        result = parse_upstream_text(text)
        logger.debug(f"Upstream text normalized as {type(result).__name__}")
        return result


def resolve_client_ip(
    peer: Optional[str],
    forwarded_for: Optional[str] = None,
    trust_forwarded_for: bool = False,
) -> str:
    """Rate-limit key: the socket peer, or the first X-Forwarded-For hop behind a trusted proxy."""
    if trust_forwarded_for:
        first_hop = (forwarded_for or "").split(",")[0].strip()
        if first_hop:
            return first_hop
    return peer or "unknown"


def success_envelope(result: NormalizedResult) -> dict[str, Any]:
    return {"ok": True, "data": result.data}


def parse_request_body(body: Union[bytes, str, dict, None]) -> AnalysisRequest:
    if body is None or body == b"" or body == "":
        payload: Any = {}
    elif isinstance(body, (bytes, str)):
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise RequestError(detail=str(e)) from e
    else:
        payload = body

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise RequestError(detail="Request body must be a JSON object")

    try:
        return AnalysisRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestError(detail=str(e)) from e


def handle_analyze_request(
    method: str,
    body: Union[bytes, str, dict, None],
    client_ip: Optional[str],
    service: AnalysisService,
    limiter: Optional[RateLimiter] = None,
) -> Tuple[int, dict[str, Any]]:
    """Transport-agnostic /analyze: returns (status_code, json_body)."""
    try:
        if method.upper() != "POST":
            raise MethodNotAllowedError()
        if limiter is not None:
            limiter.consume(client_ip or "unknown")
        req = parse_request_body(body)
        return 200, success_envelope(service.analyze(req))
    except RelayError as e:
        return e.status_code, e.to_envelope()
    except Exception as e:
        logger.exception("Server error /analyze")
        return 500, unexpected_error_envelope(e)
