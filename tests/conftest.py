import asyncio
import os
import sys
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

# Ensure the repository root is on sys.path so tests can import the backend modules
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config import Settings  # noqa: E402
from main import create_app  # noqa: E402
from services import BlobStore  # noqa: E402
from services.ai import AudioProcessingResult, StructuredSummary  # noqa: E402

FATIGUE_SOAP = {
    "subjective": "Reports fatigue for two weeks",
    "objective": "Not documented",
    "assessment": "Fatigue, cause unclear",
    "plan": "CBC and thyroid panel",
}
TRANSCRIPT = "Patient says the cough started last week and is worse at night."


class FakeAIClient:
    """Stands in for AIClient; records calls and can be told to fail."""

    def __init__(self) -> None:
        self.summary = StructuredSummary(summary="Fatigue noted", soap=dict(FATIGUE_SOAP))
        self.transcript = TRANSCRIPT
        self.fail_with: Optional[Exception] = None
        self.delay = 0.0
        self.calls: List[Tuple] = []

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def transcribe(self, data: bytes, filename: Optional[str] = None) -> str:
        self.calls.append(("transcribe", filename))
        self._maybe_fail()
        return self.transcript

    async def summarize_text(self, text: str, note_type: str = "TEXT"):
        self.calls.append(("summarize_text", text, note_type))
        await asyncio.sleep(self.delay)
        self._maybe_fail()
        return self.summary

    async def transcribe_and_summarize(
        self,
        data: bytes,
        filename: Optional[str] = None,
        context_text: Optional[str] = None,
    ) -> AudioProcessingResult:
        self.calls.append(("transcribe_and_summarize", filename, context_text, data))
        self._maybe_fail()
        return AudioProcessingResult(transcribed_text=self.transcript, summary=self.summary)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        database_auto_create=True,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024 * 1024,
        api_prefix="/api",
    )


@pytest.fixture
def ai_client():
    return FakeAIClient()


@pytest.fixture
def blob_store(settings):
    return BlobStore(settings.upload_dir)


@pytest.fixture
def app(settings, ai_client, blob_store):
    return create_app(settings, ai_client=ai_client, blob_store=blob_store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def patient(client):
    resp = client.post(
        "/api/patients",
        json={"name": "Sarah Johnson", "dateOfBirth": "1985-03-15", "patientId": "PAT-001"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
