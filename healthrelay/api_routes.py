from __future__ import annotations
from fastapi import APIRouter
from healthrelay.routes.analyze import router as analyze_router
from healthrelay.routes.health import router as health_router

router = APIRouter()
router.include_router(health_router)
router.include_router(analyze_router)
