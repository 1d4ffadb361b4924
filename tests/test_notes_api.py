import asyncio
from pathlib import Path
from uuid import UUID

from services import AIServiceError, ValidationError
from services.note import NOTHING_TO_PROCESS
from services.ai import UnstructuredSummary

MP3_BYTES = b"ID3\x03\x00\x00\x00\x00\x00\x00fake-mpeg-frames"


def _audio(name="visit.mp3", data=MP3_BYTES, content_type="audio/mpeg"):
    return {"audioFile": (name, data, content_type)}


def test_example_scenario(client, ai_client):
    patient = client.post(
        "/api/patients",
        json={"name": "Sarah Johnson", "dateOfBirth": "1985-03-15", "patientId": "PAT-001"},
    )
    assert patient.status_code == 201

    resp = client.post(
        "/api/notes",
        data={"patientId": patient.json()["id"], "rawText": "Patient reports fatigue"},
    )
    assert resp.status_code == 201
    note = resp.json()
    assert note["noteType"] == "TEXT"
    assert note["aiSummary"] == "Fatigue noted"
    assert note["soapFormat"]["plan"] == "CBC and thyroid panel"
    assert note["patient"]["name"] == "Sarah Johnson"
    before = client.get(f"/api/notes/{note['id']}").json()

    again = client.post(f"/api/notes/{note['id']}/process-ai")
    assert again.status_code == 400
    assert again.json()["message"] == "Note already processed or no content to process"
    assert client.get(f"/api/notes/{note['id']}").json() == before


def test_list_notes_empty_is_404(client):
    resp = client.get("/api/notes")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Note not found."}


def test_list_notes_newest_first(client, patient):
    first = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "First visit"})
    second = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Second visit"})

    resp = client.get("/api/notes")
    assert resp.status_code == 200
    ids = [note["id"] for note in resp.json()]
    assert ids == [second.json()["id"], first.json()["id"]]
    assert resp.json()[0]["patient"]["patientId"] == "PAT-001"


def test_create_note_requires_text_or_audio(client, patient):
    resp = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "   "})
    assert resp.status_code == 422
    assert resp.json()["message"] == "Either rawText or audioFile is required"


def test_create_note_requires_patient_id(client):
    resp = client.post("/api/notes", data={"rawText": "Patient reports fatigue"})
    assert resp.status_code == 422


def test_create_note_for_unknown_patient_is_404(client, ai_client):
    resp = client.post(
        "/api/notes",
        data={"patientId": "00000000-0000-0000-0000-000000000000", "rawText": "Orphan note"},
    )
    assert resp.status_code == 404
    assert ai_client.calls == []
    assert client.get("/api/notes").status_code == 404


def test_create_note_with_malformed_patient_id_is_404(client):
    resp = client.post("/api/notes", data={"patientId": "PAT-001", "rawText": "Wrong id kind"})
    assert resp.status_code == 404


def test_caller_supplied_summary_skips_ai(client, patient, ai_client):
    resp = client.post(
        "/api/notes",
        data={
            "patientId": patient["id"],
            "rawText": "Patient reports fatigue",
            "aiSummary": "Written by the clinician",
            "soapFormat": '{"subjective": "Tired", "plan": "Rest"}',
        },
    )
    assert resp.status_code == 201
    note = resp.json()
    assert note["aiSummary"] == "Written by the clinician"
    assert note["soapFormat"]["subjective"] == "Tired"
    assert ai_client.calls == []


def test_malformed_soap_form_field_is_400(client, patient):
    resp = client.post(
        "/api/notes",
        data={"patientId": patient["id"], "rawText": "Fatigue", "soapFormat": "{not json"},
    )
    assert resp.status_code == 400


def test_create_note_degrades_when_ai_fails(client, patient, ai_client):
    ai_client.fail_with = AIServiceError("Bedrock unavailable")

    resp = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Patient reports fatigue"})
    assert resp.status_code == 201
    note = resp.json()
    assert note["rawText"] == "Patient reports fatigue"
    assert note["aiSummary"] is None
    assert note["soapFormat"] is None


def test_unstructured_summary_is_stored_without_soap(client, patient, ai_client):
    ai_client.summary = UnstructuredSummary(raw_text="Fatigue, likely viral.")

    resp = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Patient reports fatigue"})
    assert resp.status_code == 201
    assert resp.json()["aiSummary"] == "Fatigue, likely viral."
    assert resp.json()["soapFormat"] is None


def test_audio_note_is_stored_then_transcribed(client, patient, ai_client, blob_store):
    resp = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio())
    assert resp.status_code == 201
    note = resp.json()
    assert note["noteType"] == "AUDIO"
    assert note["transcribedText"] == ai_client.transcript
    assert note["aiSummary"] == "Fatigue noted"
    assert note["audioFilePath"].endswith(".mp3")
    assert blob_store.path(note["audioFilePath"]).read_bytes() == MP3_BYTES

    [call] = ai_client.calls
    assert call[0] == "transcribe_and_summarize"
    assert call[2] is None


def test_mixed_note_passes_text_as_context(client, patient, ai_client):
    resp = client.post(
        "/api/notes",
        data={"patientId": patient["id"], "rawText": "Follow-up on cough"},
        files=_audio(),
    )
    assert resp.status_code == 201
    assert resp.json()["noteType"] == "MIXED"
    [call] = ai_client.calls
    assert call[2] == "Follow-up on cough"


def test_audio_note_is_saved_when_transcription_fails(client, patient, ai_client, blob_store):
    ai_client.fail_with = AIServiceError("OpenAI API key not configured")

    resp = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio())
    assert resp.status_code == 201
    note = resp.json()
    assert note["transcribedText"] is None
    assert note["aiSummary"] is None
    assert blob_store.exists(note["audioFilePath"])


def test_non_audio_upload_is_rejected(client, patient):
    resp = client.post(
        "/api/notes",
        data={"patientId": patient["id"]},
        files=_audio(name="notes.txt", data=b"hello", content_type="text/plain"),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Only audio files are allowed (mp3, wav, m4a, aac, ogg, webm)"


def test_oversized_upload_is_rejected(client, patient, settings):
    big = b"\x00" * (settings.max_upload_bytes + 1)
    resp = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio(data=big))
    assert resp.status_code == 400
    assert resp.json()["message"] == "File too large. Maximum size is 1MB."


def test_upload_endpoint_stores_file(client, blob_store):
    resp = client.post("/api/notes/upload", files=_audio(name="dictation.wav", content_type="audio/wav"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Audio file uploaded successfully"
    assert body["originalName"] == "dictation.wav"
    assert body["size"] == len(MP3_BYTES)
    assert body["mimetype"] == "audio/wav"
    assert blob_store.exists(body["filePath"])


def test_upload_endpoint_without_file_is_400(client):
    resp = client.post("/api/notes/upload", data={"something": "else"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "No audio file provided"


def test_audio_is_served_with_range_support(client, patient):
    note = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio()).json()

    resp = client.get(f"/api/notes/audio/{note['audioFilePath']}")
    assert resp.status_code == 200
    assert resp.content == MP3_BYTES
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["accept-ranges"] == "bytes"


def test_missing_audio_is_404(client):
    resp = client.get("/api/notes/audio/2024-01-01/audio-missing.mp3")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Audio file not found"}


def test_get_note_includes_full_patient(client, patient):
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()

    resp = client.get(f"/api/notes/{note['id']}")
    assert resp.status_code == 200
    assert resp.json()["patient"]["dateOfBirth"] == "1985-03-15"
    assert "createdAt" in resp.json()["patient"]


def test_update_note_is_partial_and_skips_ai(client, patient, ai_client):
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()
    ai_client.calls.clear()

    resp = client.put(f"/api/notes/{note['id']}", json={"aiSummary": "Edited summary"})
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["aiSummary"] == "Edited summary"
    assert updated["rawText"] == "Fatigue"
    assert updated["soapFormat"] == note["soapFormat"]
    assert ai_client.calls == []


def test_update_unknown_note_is_404(client):
    resp = client.put("/api/notes/00000000-0000-0000-0000-000000000000", json={"rawText": "x"})
    assert resp.status_code == 404


def test_delete_note(client, patient):
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()

    assert client.delete(f"/api/notes/{note['id']}").status_code == 204
    assert client.get(f"/api/notes/{note['id']}").status_code == 404
    assert client.delete(f"/api/notes/{note['id']}").status_code == 404


def test_reprocess_summarizes_text_note_after_degraded_create(client, patient, ai_client):
    ai_client.fail_with = AIServiceError("Bedrock unavailable")
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()

    failed = client.post(f"/api/notes/{note['id']}/process-ai")
    assert failed.status_code == 500
    assert failed.json()["message"] == "Bedrock unavailable"
    assert client.get(f"/api/notes/{note['id']}").json()["aiSummary"] is None

    ai_client.fail_with = None
    resp = client.post(f"/api/notes/{note['id']}/process-ai")
    assert resp.status_code == 200
    assert resp.json()["aiSummary"] == "Fatigue noted"
    assert resp.json()["rawText"] == "Fatigue"


def test_reprocess_transcribes_stored_audio(client, patient, ai_client):
    ai_client.fail_with = AIServiceError("OpenAI API key not configured")
    note = client.post(
        "/api/notes",
        data={"patientId": patient["id"], "rawText": "Follow-up on cough"},
        files=_audio(),
    ).json()
    ai_client.fail_with = None
    ai_client.calls.clear()

    resp = client.post(f"/api/notes/{note['id']}/process-ai")
    assert resp.status_code == 200
    body = resp.json()
    assert body["transcribedText"] == ai_client.transcript
    assert body["aiSummary"] == "Fatigue noted"
    assert body["rawText"] == "Follow-up on cough"

    [call] = ai_client.calls
    assert call[0] == "transcribe_and_summarize"
    assert call[2] == "Follow-up on cough"
    assert call[3] == MP3_BYTES


def test_reprocess_with_vanished_audio_is_404(client, patient, ai_client, blob_store):
    ai_client.fail_with = AIServiceError("OpenAI API key not configured")
    note = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio()).json()
    ai_client.fail_with = None
    Path(blob_store.path(note["audioFilePath"])).unlink()

    resp = client.post(f"/api/notes/{note['id']}/process-ai")
    assert resp.status_code == 404


def test_reprocess_unknown_note_is_404(client):
    resp = client.post("/api/notes/00000000-0000-0000-0000-000000000000/process-ai")
    assert resp.status_code == 404


def test_create_note_fails_with_400_when_audio_cannot_be_stored(client, patient, blob_store, ai_client, monkeypatch):
    def unwritable(data, suggested_name):
        raise OSError("disk full")

    monkeypatch.setattr(blob_store, "_write", unwritable)

    resp = client.post("/api/notes", data={"patientId": patient["id"]}, files=_audio())
    assert resp.status_code == 400
    assert ai_client.calls == []
    assert client.get("/api/notes").status_code == 404


def test_update_rejects_null_note_type(client, patient):
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()

    resp = client.put(f"/api/notes/{note['id']}", json={"noteType": None})
    assert resp.status_code == 400
    assert "noteType" in resp.json()["message"]
    assert client.get(f"/api/notes/{note['id']}").json()["noteType"] == "TEXT"

    changed = client.put(f"/api/notes/{note['id']}", json={"noteType": "MIXED"})
    assert changed.status_code == 200
    assert changed.json()["noteType"] == "MIXED"


def test_caller_transcript_survives_audio_enrichment(client, patient, ai_client):
    resp = client.post(
        "/api/notes",
        data={"patientId": patient["id"], "transcribedText": "Clinician's own transcript"},
        files=_audio(),
    )
    assert resp.status_code == 201
    note = resp.json()
    assert note["transcribedText"] == "Clinician's own transcript"
    assert note["aiSummary"] == "Fatigue noted"
    assert [call[0] for call in ai_client.calls] == ["transcribe_and_summarize"]


def test_reprocess_without_text_or_audio_is_400_and_leaves_note(client, patient, ai_client):
    ai_client.fail_with = AIServiceError("Bedrock unavailable")
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()
    ai_client.fail_with = None
    cleared = client.put(f"/api/notes/{note['id']}", json={"rawText": None})
    assert cleared.json()["rawText"] is None
    before = client.get(f"/api/notes/{note['id']}").json()
    ai_client.calls.clear()

    resp = client.post(f"/api/notes/{note['id']}/process-ai")
    assert resp.status_code == 400
    assert resp.json()["message"] == NOTHING_TO_PROCESS
    assert client.get(f"/api/notes/{note['id']}").json() == before
    assert ai_client.calls == []


def test_concurrent_reprocess_runs_ai_once(client, app, patient, ai_client):
    ai_client.fail_with = AIServiceError("Bedrock unavailable")
    note = client.post("/api/notes", data={"patientId": patient["id"], "rawText": "Fatigue"}).json()
    ai_client.fail_with = None
    ai_client.calls.clear()
    ai_client.delay = 0.05

    service = app.state.note_service
    note_id = UUID(note["id"])

    async def reprocess_once():
        async with app.state.session_factory() as session:
            try:
                updated = await service.reprocess(session, note_id)
            except ValidationError as exc:
                return str(exc)
            return updated.ai_summary

    async def reprocess_concurrently():
        return await asyncio.gather(reprocess_once(), reprocess_once())

    results = client.portal.call(reprocess_concurrently)

    assert sorted(results) == sorted(["Fatigue noted", NOTHING_TO_PROCESS])
    assert [call[0] for call in ai_client.calls] == ["summarize_text"]
