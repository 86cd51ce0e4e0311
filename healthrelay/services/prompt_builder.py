from __future__ import annotations

import json
from typing import Sequence

from healthrelay.schemas.analysis import AnalysisRequest

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "or": "Odia",
    "bn": "Bengali",
    "ta": "Tamil",
    "te": "Telugu",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
}


def _language_label(code: str) -> str:
    code = (code or "en").strip().lower()
    return LANGUAGE_NAMES.get(code, code)


def serialize_input(req: AnalysisRequest, max_chars: int = 2000) -> str:
    """Compact JSON of the caller's findings, cut to max_chars."""
    payload = {"findingsText": req.findingsText, "numericScores": req.numericScores}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)[:max_chars]


def _translations_block(langs: Sequence[str]) -> str:
    if not langs:
        return ""
    entries = ", ".join(
        f'"{code}": {{"summary": "...", "suggestions": ["..."], "disclaimer": "...", "action": "..."}}'
        for code in langs
    )
    names = ", ".join(_language_label(code) for code in langs)
    return f',\n  "translations": {{ {entries} }}  (optional: the same keys translated to {names})'


def build_prompt(
    req: AnalysisRequest,
    max_input_chars: int = 2000,
    translation_langs: Sequence[str] = (),
) -> str:
    lang = _language_label(req.preferredLang)
    return f"""
You are a concise, friendly health-assistant for an educational demo.
Input (json): {serialize_input(req, max_input_chars)}

Task: Return ONLY valid JSON with keys:
{{
  "summary": "1-2 sentence summary in {lang}",
  "suggestions": ["3 short prioritized home-care suggestions in {lang}"],
  "disclaimer": "One-line disclaimer in {lang}",
  "action": "One-sentence call to action (thermometer / consult a doctor) in {lang}"{_translations_block(translation_langs)}
}}
Respond ONLY with JSON.
"""
