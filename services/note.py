from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import repositories
from models import Note, NoteType
from schemas.note import NoteCreate, NoteUpdate
from services.ai import AIClient, AudioProcessingResult, SummaryResult
from services.base import KeyedLock, end_transaction
from services.blob_store import AudioUpload, BlobStore
from services.exceptions import AIServiceError, BlobStoreError, NotFoundError, ServiceError, ValidationError

logger = logging.getLogger(__name__)

NOT_FOUND = "Note not found."
NOTHING_TO_PROCESS = "Note already processed or no content to process"


def derive_note_type(has_text: bool, has_audio: bool) -> NoteType:
    if has_audio and has_text:
        return NoteType.MIXED
    if has_audio:
        return NoteType.AUDIO
    return NoteType.TEXT


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _as_uuid(value: Union[str, UUID], message: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise NotFoundError(message) from exc


def _summary_fields(summary: Optional[SummaryResult]) -> Dict[str, Any]:
    if summary is None:
        return {}
    fields: Dict[str, Any] = {"ai_summary": summary.summary_text}
    if summary.soap:
        fields["soap_format"] = summary.soap
    return fields


class NoteService:
    """Orchestrates note creation, partial updates and on-demand AI processing.

    Audio is always written to the blob store before any AI call. On creation
    AI failures degrade to saving whatever fields are available; on reprocess
    they propagate to the caller.
    """

    def __init__(self, ai_client: AIClient, blob_store: BlobStore) -> None:
        self.ai_client = ai_client
        self.blob_store = blob_store
        self._locks = KeyedLock()

    async def list_all(self, session: AsyncSession) -> List[Note]:
        notes = await repositories.list_notes(session)
        if not notes:
            raise NotFoundError(NOT_FOUND)
        return notes

    async def get(self, session: AsyncSession, note_id: UUID) -> Note:
        note = await repositories.get_note(session, note_id, include_patient=True)
        if not note:
            raise NotFoundError(NOT_FOUND)
        return note

    async def store_audio(self, audio: AudioUpload) -> str:
        return await self.blob_store.store(audio.data, audio.filename)

    async def create(
        self,
        session: AsyncSession,
        patient_id: Union[str, UUID],
        raw_text: Optional[str] = None,
        transcribed_text: Optional[str] = None,
        ai_summary: Optional[str] = None,
        soap_format: Optional[Dict[str, Any]] = None,
        audio: Optional[AudioUpload] = None,
    ) -> Note:
        raw_text = _clean_text(raw_text)
        if raw_text is None and audio is None:
            raise ValidationError("Either rawText or audioFile is required")

        patient_uuid = _as_uuid(patient_id, "Patient not found")
        patient = await repositories.get_patient(session, patient_uuid)
        if not patient:
            logger.info("Note creation rejected, patient %s does not exist", patient_id)
            raise NotFoundError("Patient not found")
        await end_transaction(session)

        audio_file_path = None
        if audio is not None:
            try:
                audio_file_path = await self.store_audio(audio)
            except BlobStoreError as exc:
                raise ServiceError("Error creating note: audio could not be stored") from exc

        draft = NoteCreate(
            patient_id=patient_uuid,
            raw_text=raw_text,
            transcribed_text=_clean_text(transcribed_text),
            ai_summary=_clean_text(ai_summary),
            note_type=derive_note_type(raw_text is not None, audio is not None),
            audio_file_path=audio_file_path,
            soap_format=soap_format or None,
        )
        draft = await self._enrich(draft, audio)

        try:
            note = await repositories.create_note(session, draft)
            await end_transaction(session)
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist note for patient %s", patient_uuid)
            raise ServiceError("Error creating note") from exc

        logger.info(
            "Created %s note %s for patient %s (summary=%s)",
            note.note_type.value,
            note.id,
            patient_uuid,
            note.ai_summary is not None,
        )
        return note

    async def _enrich(self, draft: NoteCreate, audio: Optional[AudioUpload]) -> NoteCreate:
        """Fill missing transcription/summary fields; caller-supplied values always win."""
        try:
            if audio is not None and (not draft.transcribed_text or not draft.ai_summary):
                result = await self.ai_client.transcribe_and_summarize(
                    audio.data,
                    audio.filename,
                    draft.raw_text,
                )
                generated = self._audio_fields(result)
            elif audio is None and draft.raw_text and not draft.ai_summary:
                summary = await self.ai_client.summarize_text(draft.raw_text, draft.note_type.value)
                generated = _summary_fields(summary)
            else:
                return draft
        except AIServiceError as exc:
            logger.warning(
                "AI enrichment failed for new note of patient %s, saving without it: %s",
                draft.patient_id,
                exc,
            )
            return draft

        current = draft.model_dump()
        missing = {field: value for field, value in generated.items() if not current.get(field)}
        return draft.model_copy(update=missing)

    @staticmethod
    def _audio_fields(result: AudioProcessingResult) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"transcribed_text": result.transcribed_text}
        fields.update(_summary_fields(result.summary))
        return fields

    async def update(self, session: AsyncSession, note_id: UUID, payload: NoteUpdate) -> Note:
        note = await repositories.get_note(session, note_id)
        if not note:
            raise NotFoundError(NOT_FOUND)
        updated = await repositories.update_note(session, note, payload)
        await end_transaction(session)
        return updated

    async def delete(self, session: AsyncSession, note_id: UUID) -> None:
        note = await repositories.get_note(session, note_id)
        if not note:
            raise NotFoundError(NOT_FOUND)
        await repositories.delete_note(session, note)
        await end_transaction(session)
        logger.info("Deleted note %s", note_id)

    async def reprocess(self, session: AsyncSession, note_id: UUID) -> Note:
        async with self._locks(note_id):
            note = await repositories.get_note(session, note_id)
            if not note:
                raise NotFoundError(NOT_FOUND)
            await end_transaction(session)

            if note.audio_file_path and not note.transcribed_text:
                data = await self.blob_store.read(note.audio_file_path)
                result = await self.ai_client.transcribe_and_summarize(
                    data,
                    PurePosixPath(note.audio_file_path).name,
                    note.raw_text,
                )
                fields = self._audio_fields(result)
            elif note.raw_text and not note.ai_summary:
                summary = await self.ai_client.summarize_text(note.raw_text, note.note_type.value)
                fields = _summary_fields(summary)
            else:
                raise ValidationError(NOTHING_TO_PROCESS)

            updated = await repositories.apply_note_fields(session, note, fields)
            await end_transaction(session)
            logger.info("Reprocessed note %s, updated %s", note_id, sorted(fields))
            return updated
