from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from api import api_router, health_router
from config import Settings, settings as default_settings
from database import build_engine, build_session_factory
from models import Base
from services import AIClient, BlobStore, NoteService, PatientService

logger = logging.getLogger(__name__)

# pydantic error types that mean "a required value was not supplied"
REQUIRED_FIELD_ERRORS = {"missing", "string_too_short"}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        required = any(error.get("type") in REQUIRED_FIELD_ERRORS for error in exc.errors())
        status_code = 422 if required else 400
        message = _validation_message(exc)
        logger.info("Rejected %s %s (%d): %s", request.method, request.url.path, status_code, message)
        return JSONResponse(status_code=status_code, content={"message": message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error during %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ---- App creation ----
def create_app(
    settings: Optional[Settings] = None,
    ai_client: Optional[AIClient] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    settings = settings or default_settings
    ai_client = ai_client or AIClient(settings)
    blob_store = blob_store or BlobStore(settings.upload_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(settings)
        if settings.database_auto_create:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured.")
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("Database engine disposed.")

    app = FastAPI(title="Clinical Notes API", version="1.0.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.blob_store = blob_store
    app.state.patient_service = PatientService()
    app.state.note_service = NoteService(ai_client=ai_client, blob_store=blob_store)

    app.add_middleware(GZipMiddleware, minimum_size=512)

    allowed = settings.allowed_origins or ["*"]
    allow_credentials = False if "*" in allowed else True
    logger.info("CORS allow_origins: %s | allow_credentials=%s", allowed, allow_credentials)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    # Avoid automatic trailing-slash redirect responses which can break CORS preflight flows
    app.router.redirect_slashes = False

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(health_router)
    return app


configure_logging(default_settings.log_level)
app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
