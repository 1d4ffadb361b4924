from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr, field_validator
from pydantic.alias_generators import to_camel

from models import NoteType

PatientName = constr(min_length=2, max_length=255)
BusinessId = constr(min_length=1, max_length=100)
PhoneStr = constr(max_length=50)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PatientBase(CamelModel):
    name: PatientName = Field(description="Patient full name, at least 2 characters")
    date_of_birth: date
    patient_id: BusinessId = Field(description="Externally assigned identifier, e.g. PAT-001")
    phone: Optional[PhoneStr] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("phone", "email", "address", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PatientCreate(PatientBase):
    pass


class PatientUpdate(PatientBase):
    """Full-field replace; same contract as creation."""


class PatientSummary(CamelModel):
    id: UUID
    name: str
    patient_id: str
    date_of_birth: date


class NoteBrief(CamelModel):
    id: UUID
    note_type: NoteType
    created_at: datetime


class PatientRead(PatientBase):
    id: UUID
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PatientListItem(PatientRead):
    notes: List[NoteBrief] = []
