from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_patient_service, get_session, guard_service
from schemas.note import PatientDetail
from schemas.patient import (
    PatientCreate,
    PatientListItem,
    PatientRead,
    PatientUpdate,
)
from services import PatientService

router = APIRouter()


@router.get("", response_model=List[PatientListItem])
async def list_patients(
    session: AsyncSession = Depends(get_session),
    service: PatientService = Depends(get_patient_service),
) -> List[PatientListItem]:
    return await guard_service(service.list_all(session))


@router.post("", response_model=PatientRead, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    session: AsyncSession = Depends(get_session),
    service: PatientService = Depends(get_patient_service),
) -> PatientRead:
    return await guard_service(service.create(session, payload))


@router.get("/{patient_id}", response_model=PatientDetail)
async def get_patient(
    patient_id: UUID,
    session: AsyncSession = Depends(get_session),
    service: PatientService = Depends(get_patient_service),
) -> PatientDetail:
    return await guard_service(service.get(session, patient_id))


@router.put("/{patient_id}", response_model=PatientRead)
async def update_patient(
    patient_id: UUID,
    payload: PatientUpdate,
    session: AsyncSession = Depends(get_session),
    service: PatientService = Depends(get_patient_service),
) -> PatientRead:
    return await guard_service(service.update(session, patient_id, payload))


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: UUID,
    session: AsyncSession = Depends(get_session),
    service: PatientService = Depends(get_patient_service),
) -> Response:
    await guard_service(service.delete(session, patient_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
