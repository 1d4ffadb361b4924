from .patient import (
    create_patient,
    delete_patient,
    get_patient,
    get_patient_by_business_id,
    list_patients,
    update_patient,
)
from .note import (
    apply_note_fields,
    create_note,
    delete_note,
    get_note,
    list_notes,
    update_note,
)

__all__ = [
    # patients
    "create_patient",
    "delete_patient",
    "get_patient",
    "get_patient_by_business_id",
    "list_patients",
    "update_patient",
    # notes
    "apply_note_fields",
    "create_note",
    "delete_note",
    "get_note",
    "list_notes",
    "update_note",
]
