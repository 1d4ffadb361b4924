from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from services.base import run_in_thread
from services.exceptions import BlobStoreError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".webm": "audio/webm",
}
DEFAULT_AUDIO_MIME_TYPE = "audio/mpeg"

ALLOWED_UPLOAD_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/m4a",
    "audio/aac",
    "audio/ogg",
    "audio/webm",
}


@dataclass(frozen=True)
class AudioUpload:
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def media_type_for(path: str) -> str:
    return AUDIO_MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_AUDIO_MIME_TYPE)


def validate_audio_upload(upload: AudioUpload, max_bytes: int) -> None:
    extension = Path(upload.filename or "").suffix.lower()
    if upload.content_type not in ALLOWED_UPLOAD_MIME_TYPES and extension not in AUDIO_MIME_TYPES:
        raise ValidationError("Only audio files are allowed (mp3, wav, m4a, aac, ogg, webm)")
    if upload.size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {limit_mb}MB.")


class BlobStore:
    """Upload directory addressed by paths relative to its root.

    Files land in one sub-directory per UTC upload date and are named
    ``audio-<epoch ms>-<random><ext>``.
    """

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, relative_path: str) -> Path:
        full_path = (self.root / relative_path).resolve()
        if full_path != self.root and self.root not in full_path.parents:
            raise NotFoundError("Audio file not found")
        return full_path

    @staticmethod
    def _new_filename(suggested_name: Optional[str]) -> str:
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        extension = Path(suggested_name or "").suffix.lower()
        return f"audio-{unique_suffix}{extension}"

    def _write(self, data: bytes, suggested_name: Optional[str]) -> str:
        date_dir = datetime.now(timezone.utc).date().isoformat()
        directory = self.root / date_dir
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self._new_filename(suggested_name)
        target.write_bytes(data)
        return target.relative_to(self.root).as_posix()

    async def store(self, data: bytes, suggested_name: Optional[str] = None) -> str:
        try:
            relative_path = await run_in_thread(self._write, data, suggested_name)
        except OSError as exc:
            logger.exception("Failed to store upload %r in %s", suggested_name, self.root)
            raise BlobStoreError("Failed to store audio file") from exc
        logger.info("Stored %d bytes as %s", len(data), relative_path)
        return relative_path

    def exists(self, relative_path: str) -> bool:
        try:
            return self._resolve(relative_path).is_file()
        except NotFoundError:
            return False

    def path(self, relative_path: str) -> Path:
        """Absolute path of an existing blob; raises NotFoundError otherwise."""
        full_path = self._resolve(relative_path)
        if not full_path.is_file():
            raise NotFoundError("Audio file not found")
        return full_path

    async def read(self, relative_path: str) -> bytes:
        full_path = self.path(relative_path)
        return await run_in_thread(full_path.read_bytes)

    def size(self, relative_path: str) -> int:
        return self.path(relative_path).stat().st_size

    @staticmethod
    def extension(relative_path: str) -> str:
        return Path(relative_path).suffix.lower()
