from __future__ import annotations

import json
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    get_blob_store,
    get_note_service,
    get_session,
    get_settings,
    guard_service,
    read_audio_upload,
)
from config import Settings
from schemas.note import (
    AudioUploadRead,
    NoteDetail,
    NoteUpdate,
    NoteWithPatient,
    SoapFormat,
)
from services import BlobStore, NotFoundError, NoteService
from services.blob_store import media_type_for

router = APIRouter()


def _parse_soap_form(raw: Optional[str]) -> Optional[dict]:
    if raw is None or not raw.strip():
        return None
    try:
        soap = SoapFormat.model_validate(json.loads(raw))
    except (ValueError, SchemaValidationError):
        raise HTTPException(status_code=400, detail="soapFormat must be a JSON object")
    return soap.model_dump(exclude_none=True) or None


@router.get("", response_model=List[NoteWithPatient])
async def list_notes(
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
) -> List[NoteWithPatient]:
    return await guard_service(service.list_all(session))


@router.post("", response_model=NoteWithPatient, status_code=status.HTTP_201_CREATED)
async def create_note(
    patient_id: str = Form(..., alias="patientId", min_length=1),
    raw_text: Optional[str] = Form(None, alias="rawText"),
    transcribed_text: Optional[str] = Form(None, alias="transcribedText"),
    ai_summary: Optional[str] = Form(None, alias="aiSummary"),
    soap_format: Optional[str] = Form(None, alias="soapFormat"),
    audio_file: Optional[UploadFile] = File(None, alias="audioFile"),
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
    settings: Settings = Depends(get_settings),
) -> NoteWithPatient:
    audio = await read_audio_upload(audio_file, settings.max_upload_bytes)
    if audio is None and not (raw_text or "").strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Either rawText or audioFile is required",
        )
    return await guard_service(
        service.create(
            session,
            patient_id=patient_id,
            raw_text=raw_text,
            transcribed_text=transcribed_text,
            ai_summary=ai_summary,
            soap_format=_parse_soap_form(soap_format),
            audio=audio,
        )
    )


@router.post("/upload", response_model=AudioUploadRead)
async def upload_audio(
    audio_file: Optional[UploadFile] = File(None, alias="audioFile"),
    service: NoteService = Depends(get_note_service),
    settings: Settings = Depends(get_settings),
) -> AudioUploadRead:
    audio = await read_audio_upload(audio_file, settings.max_upload_bytes)
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")
    file_path = await guard_service(service.store_audio(audio))
    return AudioUploadRead(
        file_path=file_path,
        original_name=audio.filename,
        size=audio.size,
        mimetype=audio.content_type,
    )


@router.get("/audio/{file_path:path}", response_class=FileResponse)
async def serve_audio(
    file_path: str,
    blob_store: BlobStore = Depends(get_blob_store),
) -> FileResponse:
    try:
        full_path = blob_store.path(file_path)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return FileResponse(
        full_path,
        media_type=media_type_for(file_path),
        headers={"Accept-Ranges": "bytes"},
    )


@router.get("/{note_id}", response_model=NoteDetail)
async def get_note(
    note_id: UUID,
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
) -> NoteDetail:
    return await guard_service(service.get(session, note_id))


@router.put("/{note_id}", response_model=NoteWithPatient)
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
) -> NoteWithPatient:
    return await guard_service(service.update(session, note_id, payload))


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    await guard_service(service.delete(session, note_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{note_id}/process-ai", response_model=NoteWithPatient)
async def process_note_with_ai(
    note_id: UUID,
    session: AsyncSession = Depends(get_session),
    service: NoteService = Depends(get_note_service),
) -> NoteWithPatient:
    return await guard_service(service.reprocess(session, note_id))
