from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from loguru import logger

from healthrelay.core.errors import ConfigurationError, UpstreamError


@dataclass
class LLMConfig:
    provider: str
    model: str
    temperature: float = 0.0
    max_tokens: int = 400
    gemini_api_key: Optional[str] = None
    gemini_endpoint: Optional[str] = None
    timeout_seconds: float = 30.0
    detail_chars: int = 1000


class GeminiLLM:
    """Gemini through the google-genai SDK (generateContent)."""

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float = 30.0,
        detail_chars: int = 1000,
    ):
        from google import genai
        from google.genai import types

        self._types = types
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.detail_chars = detail_chars

    def generate_text(self, prompt: str) -> str:
        from google.genai import errors

        try:
            resp = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                ),
            )
        except errors.APIError as e:
            logger.error(f"Gemini error {e.code}: {str(e)[:self.detail_chars]}")
            raise UpstreamError(str(e), status=e.code, max_detail_chars=self.detail_chars) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini transport error: {type(e).__name__}: {e}")
            raise UpstreamError(f"{type(e).__name__}: {e}", max_detail_chars=self.detail_chars) from e

        text = resp.text
        if text:
            return text
        # no text part (blocked, empty candidates): hand back the whole response
        return resp.model_dump_json(exclude_none=True)


class EndpointLLM:
    """
    Custom Gemini-compatible endpoint: POST {prompt, max_tokens, temperature}
    with a Bearer token, text read from choices[0].text or output.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float = 30.0,
        detail_chars: int = 1000,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.detail_chars = detail_chars
        self._transport = transport

    def generate_text(self, prompt: str) -> str:
        body = {"prompt": prompt, "max_tokens": self.max_tokens, "temperature": self.temperature}
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                r = client.post(
                    self.endpoint,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Gemini endpoint transport error: {type(e).__name__}: {e}")
            raise UpstreamError(f"{type(e).__name__}: {e}", max_detail_chars=self.detail_chars) from e

        if r.status_code < 200 or r.status_code >= 300:
            logger.error(f"Gemini endpoint error {r.status_code}: {r.text[:self.detail_chars]}")
            raise UpstreamError(r.text, status=r.status_code, max_detail_chars=self.detail_chars)

        try:
            jr = r.json()
        except ValueError:
            # 2xx with a non-JSON body: the body itself is the model text
            return r.text
        return _extract_endpoint_text(jr)


def _extract_endpoint_text(jr: Any) -> str:
    if isinstance(jr, dict):
        choices = jr.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            text = choices[0].get("text")
            if text:
                return str(text)
        output = jr.get("output")
        if output:
            return output if isinstance(output, str) else json.dumps(output)
    return json.dumps(jr)


def build_llm(cfg: LLMConfig):
    provider = (cfg.provider or "").lower().strip()

    if provider == "gemini":
        if not cfg.gemini_api_key:
            raise ConfigurationError("Server not configured: GEMINI_API_KEY missing")
        return GeminiLLM(
            api_key=cfg.gemini_api_key,
            model=cfg.model,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout_seconds=cfg.timeout_seconds,
            detail_chars=cfg.detail_chars,
        )

    if provider == "endpoint":
        if not cfg.gemini_api_key or not cfg.gemini_endpoint:
            raise ConfigurationError("Server not configured. Set GEMINI_API_KEY and GEMINI_ENDPOINT.")
        return EndpointLLM(
            api_key=cfg.gemini_api_key,
            endpoint=cfg.gemini_endpoint,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout_seconds=cfg.timeout_seconds,
            detail_chars=cfg.detail_chars,
        )

    raise ConfigurationError(f"Unsupported llm provider: {cfg.provider}. Use provider: gemini or endpoint")
