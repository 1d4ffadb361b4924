from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import repositories
from models import Patient
from schemas.patient import PatientCreate, PatientUpdate
from services.base import end_transaction
from services.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

NOT_FOUND = "Patient not found."
DUPLICATE_ID = "Patient ID already exists"


class PatientService:
    async def list_all(self, session: AsyncSession) -> List[Patient]:
        patients = await repositories.list_patients(session, include_notes=True)
        if not patients:
            raise NotFoundError(NOT_FOUND)
        return patients

    async def get(self, session: AsyncSession, patient_id: UUID) -> Patient:
        patient = await repositories.get_patient(session, patient_id, include_notes=True)
        if not patient:
            raise NotFoundError(NOT_FOUND)
        return patient

    async def create(self, session: AsyncSession, payload: PatientCreate) -> Patient:
        existing = await repositories.get_patient_by_business_id(session, payload.patient_id)
        if existing:
            logger.info("Rejected duplicate patientId %s", payload.patient_id)
            raise ConflictError(DUPLICATE_ID)
        try:
            patient = await repositories.create_patient(session, payload)
            await end_transaction(session)
        except IntegrityError as exc:
            # lost a race against a concurrent insert of the same patientId
            await session.rollback()
            raise ConflictError(DUPLICATE_ID) from exc
        logger.info("Created patient %s (%s)", patient.id, patient.patient_id)
        return patient

    async def update(self, session: AsyncSession, patient_id: UUID, payload: PatientUpdate) -> Patient:
        patient = await repositories.get_patient(session, patient_id)
        if not patient:
            raise NotFoundError(NOT_FOUND)
        owner = await repositories.get_patient_by_business_id(session, payload.patient_id)
        if owner and owner.id != patient.id:
            logger.info("Rejected patientId change of %s to taken %s", patient_id, payload.patient_id)
            raise ConflictError(DUPLICATE_ID)
        try:
            patient = await repositories.update_patient(session, patient, payload)
            await end_transaction(session)
        except IntegrityError as exc:
            await session.rollback()
            logger.info("Concurrent write took patientId %s before update of %s", payload.patient_id, patient_id)
            raise ConflictError(DUPLICATE_ID) from exc
        logger.info("Updated patient %s (%s)", patient.id, patient.patient_id)
        return patient

    async def delete(self, session: AsyncSession, patient_id: UUID) -> None:
        patient = await repositories.get_patient(session, patient_id)
        if not patient:
            raise NotFoundError(NOT_FOUND)
        await repositories.delete_patient(session, patient)
        await end_transaction(session)
        logger.info("Deleted patient %s", patient_id)
