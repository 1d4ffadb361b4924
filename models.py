# models.py
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NoteType(str, enum.Enum):
    TEXT = "TEXT"
    AUDIO = "AUDIO"
    MIXED = "MIXED"


note_type_enum = Enum(
    NoteType,
    name="note_type_enum",
    values_callable=lambda members: [member.value for member in members],
)

SoapJSON = JSON().with_variant(JSONB(), "postgresql")


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    patient_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date(), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    notes: Mapped[List["Note"]] = relationship(
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="Note.created_at.desc()",
    )


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    raw_text: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    transcribed_text: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    note_type: Mapped[NoteType] = mapped_column(
        note_type_enum,
        nullable=False,
        default=NoteType.TEXT,
    )
    audio_file_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    soap_format: Mapped[Optional[dict]] = mapped_column(SoapJSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    patient: Mapped["Patient"] = relationship(back_populates="notes")
