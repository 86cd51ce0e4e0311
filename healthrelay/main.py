from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from healthrelay.api_routes import router as api_router
from healthrelay.core.errors import (
    PayloadTooLargeError,
    RateLimitError,
    RelayError,
    RequestError,
    unexpected_error_envelope,
)
from healthrelay.core.logging import configure_logging
from healthrelay.core.settings import Settings, get_settings
from healthrelay.services.analysis import AnalysisService
from healthrelay.services.rate_limiter import RateLimiter

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}

_HTTP_ERROR_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


def _error_response(exc: RelayError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(max(1, int(exc.retry_after + 0.999)))}
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
        )
        return _error_response(RequestError(detail=detail))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = _HTTP_ERROR_MESSAGES.get(exc.status_code, str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=unexpected_error_envelope(exc))


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[AnalysisService] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if not settings.gemini_configured:
        logger.warning("GEMINI_API_KEY not set; backend will fail to call Gemini until env var is configured.")

    app = FastAPI(title="Health Analysis Relay (Gemini)")
    app.state.settings = settings
    app.state.analysis_service = service or AnalysisService(settings)
    app.state.rate_limiter = limiter or RateLimiter(
        points=settings.rate_limit_points,
        duration=settings.rate_limit_duration_seconds,
    )

    @app.middleware("http")
    async def limit_body_and_secure_headers(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            response = _error_response(PayloadTooLargeError())
        else:
            response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
