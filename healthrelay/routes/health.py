from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def home():
    return "Face health backend is running. POST /analyze to call Gemini."


@router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "provider": settings.llm_provider,
        "model": settings.GEMINI_MODEL,
        "gemini_configured": settings.gemini_configured,
    }
