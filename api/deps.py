from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Optional, TypeVar

from fastapi import HTTPException, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from services import (
    AIServiceError,
    AudioUpload,
    BlobStore,
    BlobStoreError,
    ConflictError,
    NotFoundError,
    NoteService,
    PatientService,
    ServiceError,
    ValidationError,
)
from services.blob_store import validate_audio_upload

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_patient_service(request: Request) -> PatientService:
    return request.app.state.patient_service


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


async def guard_service(call: Awaitable[T]) -> T:
    try:
        return await call
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except (AIServiceError, BlobStoreError) as exc:
        logger.error("Service dependency failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except ServiceError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


async def read_audio_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[AudioUpload]:
    """Read and validate a multipart audio part; ``None`` when no file was chosen."""
    if upload is None:
        return None
    data = await upload.read(max_bytes + 1)
    if not upload.filename and not data:
        return None
    audio = AudioUpload(filename=upload.filename, content_type=upload.content_type, data=data)
    try:
        validate_audio_upload(audio, max_bytes)
    except ValidationError as exc:
        logger.info("Rejected upload %r (%s): %s", upload.filename, upload.content_type, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return audio
