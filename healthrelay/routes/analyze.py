from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool

from healthrelay.core.errors import PayloadTooLargeError, RelayError, unexpected_error_envelope
from healthrelay.schemas.analysis import AnalysisRequest, AnalysisResponse, ErrorResponse
from healthrelay.services.analysis import (
    AnalysisService,
    parse_request_body,
    resolve_client_ip,
    success_envelope,
)
from healthrelay.services.rate_limiter import RateLimiter

router = APIRouter(tags=["analyze"])


def client_ip(request: Request) -> str:
    settings = request.app.state.settings
    peer = request.client.host if request.client else None
    return resolve_client_ip(peer, request.headers.get("x-forwarded-for"), settings.trust_forwarded_for)


def get_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def enforce_rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    limiter.consume(client_ip(request))


async def read_body(request: Request, max_bytes: int) -> bytes:
    """Collect the request body, counting received bytes (chunked bodies carry no Content-Length)."""
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise PayloadTooLargeError()
        chunks.append(chunk)
    return b"".join(chunks)


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {"application/json": {"schema": AnalysisRequest.model_json_schema()}},
        }
    },
    dependencies=[Depends(enforce_rate_limit)],
)
async def analyze(request: Request, service: AnalysisService = Depends(get_service)):
    body = await read_body(request, request.app.state.settings.max_body_bytes)
    req = parse_request_body(body)
    try:
        result = await run_in_threadpool(service.analyze, req)
    except RelayError:
        raise
    except Exception as e:
        logger.exception("Server error /analyze")
        return JSONResponse(status_code=500, content=unexpected_error_envelope(e))
    return success_envelope(result)
