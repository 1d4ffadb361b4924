from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

logger = logging.getLogger(__name__)

SERVICE_NAME = "clinical-notes-backend"

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={
                "code": 503,
                "message": "Service unhealthy",
                "data": {"status": "unhealthy", "timestamp": timestamp, "service": SERVICE_NAME},
            },
        )
    return JSONResponse(
        status_code=200,
        content={
            "code": 200,
            "data": {"status": "healthy", "timestamp": timestamp, "service": SERVICE_NAME},
        },
    )
