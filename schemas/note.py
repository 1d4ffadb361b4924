from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from models import NoteType
from schemas.patient import CamelModel, PatientRead, PatientSummary


class SoapFormat(CamelModel):
    subjective: Optional[str] = None
    objective: Optional[str] = None
    assessment: Optional[str] = None
    plan: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class NoteCreate(BaseModel):
    """Assembled note draft handed to the record store."""

    patient_id: UUID
    raw_text: Optional[str] = None
    transcribed_text: Optional[str] = None
    ai_summary: Optional[str] = None
    note_type: NoteType = NoteType.TEXT
    audio_file_path: Optional[str] = None
    soap_format: Optional[dict] = None


class NoteUpdate(CamelModel):
    raw_text: Optional[str] = None
    transcribed_text: Optional[str] = None
    ai_summary: Optional[str] = None
    note_type: Optional[NoteType] = None
    audio_file_path: Optional[str] = None
    soap_format: Optional[SoapFormat] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("note_type")
    @classmethod
    def _note_type_not_null(cls, value: Optional[NoteType]) -> NoteType:
        if value is None:
            raise ValueError("noteType cannot be null")
        return value


class NoteRead(CamelModel):
    id: UUID
    patient_id: UUID
    raw_text: Optional[str] = None
    transcribed_text: Optional[str] = None
    ai_summary: Optional[str] = None
    note_type: NoteType
    audio_file_path: Optional[str] = None
    soap_format: Optional[SoapFormat] = None
    created_at: datetime
    updated_at: datetime


class NoteWithPatient(NoteRead):
    patient: PatientSummary


class NoteDetail(NoteRead):
    patient: PatientRead


class PatientDetail(PatientRead):
    notes: List[NoteRead] = []


class AudioUploadRead(CamelModel):
    message: str = "Audio file uploaded successfully"
    file_path: str
    original_name: Optional[str] = None
    size: int
    mimetype: Optional[str] = None
