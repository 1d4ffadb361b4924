from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import Note
from schemas.note import NoteCreate, NoteUpdate


async def _load_with_patient(session: AsyncSession, note_id: UUID) -> Note:
    stmt = (
        select(Note)
        .options(selectinload(Note.patient))
        .where(Note.id == note_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def create_note(session: AsyncSession, payload: NoteCreate) -> Note:
    note = Note(**payload.model_dump())
    session.add(note)
    await session.flush()
    return await _load_with_patient(session, note.id)


async def get_note(
    session: AsyncSession,
    note_id: UUID,
    include_patient: bool = False,
) -> Optional[Note]:
    stmt = select(Note).where(Note.id == note_id)
    if include_patient:
        stmt = stmt.options(selectinload(Note.patient))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_notes(
    session: AsyncSession,
    patient_id: Optional[UUID] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Note]:
    stmt = (
        select(Note)
        .options(selectinload(Note.patient))
        .order_by(Note.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if patient_id:
        stmt = stmt.where(Note.patient_id == patient_id)
    result = await session.execute(stmt)
    return result.scalars().all()


async def update_note(
    session: AsyncSession,
    note: Note,
    payload: NoteUpdate,
) -> Note:
    return await apply_note_fields(session, note, payload.model_dump(exclude_unset=True))


async def apply_note_fields(
    session: AsyncSession,
    note: Note,
    fields: Dict[str, Any],
) -> Note:
    for field, value in fields.items():
        setattr(note, field, value)
    await session.flush()
    return await _load_with_patient(session, note.id)


async def delete_note(session: AsyncSession, note: Note) -> None:
    await session.delete(note)
    await session.flush()
