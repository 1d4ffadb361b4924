from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import Patient
from schemas.patient import PatientCreate, PatientUpdate


async def create_patient(session: AsyncSession, payload: PatientCreate) -> Patient:
    patient = Patient(**payload.model_dump())
    session.add(patient)
    await session.flush()
    await session.refresh(patient)
    return patient


async def get_patient(
    session: AsyncSession,
    patient_id: UUID,
    include_notes: bool = False,
) -> Optional[Patient]:
    stmt = select(Patient).where(Patient.id == patient_id)
    if include_notes:
        stmt = stmt.options(selectinload(Patient.notes))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_patient_by_business_id(
    session: AsyncSession,
    business_id: str,
) -> Optional[Patient]:
    result = await session.execute(select(Patient).where(Patient.patient_id == business_id))
    return result.scalar_one_or_none()


async def list_patients(
    session: AsyncSession,
    limit: int = 100,
    offset: int = 0,
    include_notes: bool = False,
) -> List[Patient]:
    stmt = (
        select(Patient)
        .order_by(Patient.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if include_notes:
        stmt = stmt.options(selectinload(Patient.notes))
    result = await session.execute(stmt)
    return result.scalars().all()


async def update_patient(session: AsyncSession, patient: Patient, payload: PatientUpdate) -> Patient:
    for field, value in payload.model_dump().items():
        setattr(patient, field, value)
    await session.flush()
    await session.refresh(patient)
    return patient


async def delete_patient(session: AsyncSession, patient: Patient) -> None:
    await session.delete(patient)
    await session.flush()
