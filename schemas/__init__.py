from .note import (
    AudioUploadRead,
    NoteCreate,
    NoteDetail,
    NoteRead,
    NoteUpdate,
    NoteWithPatient,
    PatientDetail,
    SoapFormat,
)
from .patient import (
    NoteBrief,
    PatientBase,
    PatientCreate,
    PatientListItem,
    PatientRead,
    PatientSummary,
    PatientUpdate,
)

__all__ = [
    "AudioUploadRead",
    "NoteBrief",
    "NoteCreate",
    "NoteDetail",
    "NoteRead",
    "NoteUpdate",
    "NoteWithPatient",
    "PatientBase",
    "PatientCreate",
    "PatientDetail",
    "PatientListItem",
    "PatientRead",
    "PatientSummary",
    "PatientUpdate",
    "SoapFormat",
]
