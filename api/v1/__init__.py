from fastapi import APIRouter

from . import health, notes, patients

api_router = APIRouter()

api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])

health_router = health.router
