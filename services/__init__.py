from services.ai import AIClient
from services.blob_store import AudioUpload, BlobStore
from services.exceptions import (
    AIConfigurationError,
    AIResponseError,
    AIServiceError,
    BlobStoreError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from services.note import NoteService
from services.patient import PatientService

__all__ = [
    "AIClient",
    "AIConfigurationError",
    "AIResponseError",
    "AIServiceError",
    "AudioUpload",
    "BlobStore",
    "BlobStoreError",
    "ConflictError",
    "NotFoundError",
    "NoteService",
    "PatientService",
    "ServiceError",
    "ValidationError",
]
