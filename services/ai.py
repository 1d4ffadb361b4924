"""
Adapter around the speech-to-text and summarization providers.

Transcription goes to the OpenAI audio API, summaries to a Bedrock text model.
Provider failures are raised as ``AIServiceError`` subclasses; deciding whether a
failure is fatal is left to the caller.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, Optional, Tuple, Union

import boto3
import openai
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import Settings
from prompts import NOT_DOCUMENTED, SOAP_KEYS, SYSTEM_PROMPT, generate_summary_prompt
from services.base import run_in_thread
from services.exceptions import AIConfigurationError, AIResponseError, AIServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructuredSummary:
    summary: str
    soap: Optional[Dict[str, str]] = None

    @property
    def summary_text(self) -> str:
        return self.summary


@dataclass(frozen=True)
class UnstructuredSummary:
    raw_text: str

    @property
    def summary_text(self) -> str:
        return self.raw_text

    @property
    def soap(self) -> None:
        return None


SummaryResult = Union[StructuredSummary, UnstructuredSummary]


@dataclass(frozen=True)
class AudioProcessingResult:
    transcribed_text: str
    summary: Optional[SummaryResult] = None


# ---- model output parsing ----
def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        lines = stripped.split("\n")
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        stripped = "\n".join(lines[1:])
    return stripped


def _find_json_substring(text: str) -> Tuple[str, Optional[str]]:
    """
    Attempt to extract the main JSON object from model output; returns (substring, error_message)
    """
    if not text:
        return "", "Empty model output"

    candidate = _strip_code_fence(text)
    start_index = candidate.find("{")
    if start_index == -1:
        return "", "Could not find JSON object in model output."

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start_index, len(candidate)):
        ch = candidate[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return candidate[start_index : idx + 1], None

    return "", "Unbalanced JSON object in model output."


def _coerce_section(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        parts = [
            str(item.get("text", "")).strip() if isinstance(item, dict) else str(item).strip()
            for item in value
        ]
        return "\n".join(part for part in parts if part)
    if isinstance(value, dict):
        return "\n".join(f"{key}: {val}" for key, val in value.items())
    return str(value)


def _coerce_soap(raw: Any) -> Optional[Dict[str, str]]:
    if not isinstance(raw, dict):
        return None
    lowered = {str(key).strip().lower(): value for key, value in raw.items()}
    if not any(key in lowered for key in SOAP_KEYS):
        return None
    soap = {}
    for key in SOAP_KEYS:
        section = _coerce_section(lowered.get(key))
        soap[key] = section if section else NOT_DOCUMENTED
    return soap


def parse_summary_output(model_output: Optional[str]) -> SummaryResult:
    """Turn raw model text into a tagged summary result."""
    text = (model_output or "").strip()
    if not text:
        raise AIResponseError("No response from AI service")

    json_substring, find_err = _find_json_substring(text)
    if find_err:
        logger.warning("Summary output is not JSON (%s); keeping raw text.", find_err)
        return UnstructuredSummary(raw_text=text)

    try:
        parsed = json.loads(json_substring)
    except ValueError as exc:
        logger.warning("Could not parse summary JSON: %s; keeping raw text.", exc)
        return UnstructuredSummary(raw_text=text)

    summary = parsed.get("summary") if isinstance(parsed, dict) else None
    if not isinstance(summary, str) or not summary.strip():
        logger.warning("Summary JSON has no 'summary' string; keeping raw text.")
        return UnstructuredSummary(raw_text=text)

    return StructuredSummary(summary=summary.strip(), soap=_coerce_soap(parsed.get("soap")))


def combine_for_summary(transcribed_text: str, context_text: Optional[str]) -> str:
    if context_text:
        return f"{context_text}\n\nTranscribed: {transcribed_text}"
    return transcribed_text


class AIClient:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # ---- provider clients, created lazily ----
    @cached_property
    def _openai(self) -> openai.OpenAI:
        return openai.OpenAI(
            api_key=self.settings.openai_api_key,
            timeout=self.settings.ai_timeout_seconds,
        )

    @cached_property
    def _boto_session(self) -> boto3.session.Session:
        # explicit keys only when configured; otherwise boto3's default credential chain
        kwargs: Dict[str, Any] = {"region_name": self.settings.aws_region}
        if self.settings.aws_access_key_id and self.settings.aws_secret_access_key:
            kwargs["aws_access_key_id"] = self.settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = self.settings.aws_secret_access_key
        if self.settings.aws_session_token:
            kwargs["aws_session_token"] = self.settings.aws_session_token
        return boto3.session.Session(**kwargs)

    @cached_property
    def _bedrock(self):
        timeout = self.settings.ai_timeout_seconds
        return self._boto_session.client(
            "bedrock-runtime",
            config=Config(read_timeout=timeout, connect_timeout=min(timeout, 10)),
        )

    @property
    def transcription_configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    @property
    def summarization_configured(self) -> bool:
        return self._boto_session.get_credentials() is not None

    # ---- blocking provider calls ----
    def _transcribe_sync(self, data: bytes, filename: str) -> str:
        try:
            transcription = self._openai.audio.transcriptions.create(
                model=self.settings.openai_transcription_model,
                file=(filename, data),
                response_format="text",
            )
        except openai.OpenAIError as exc:
            raise AIServiceError(f"Error transcribing audio file: {exc}") from exc
        return transcription if isinstance(transcription, str) else getattr(transcription, "text", "")

    def _invoke_bedrock(self, user_prompt: str, max_tokens: int = 1000, temperature: float = 0.3) -> str:
        if not self.summarization_configured:
            raise AIConfigurationError("AWS credentials not found for Bedrock")
        composed_prompt = f"System: {SYSTEM_PROMPT}\n\nUser: {user_prompt}\n\nAssistant:"
        body = json.dumps(
            {"prompt": composed_prompt, "max_tokens": max_tokens, "temperature": temperature},
            ensure_ascii=False,
        )
        try:
            response = self._bedrock.invoke_model(
                body=body,
                modelId=self.settings.bedrock_model_id,
                accept="application/json",
                contentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise AIServiceError(f"Bedrock invocation failed: {exc}") from exc

        try:
            response_body = json.loads(response.get("body").read())
            model_output = response_body.get("outputs", [{}])[0].get("text", "")
        except (AttributeError, IndexError, ValueError) as exc:
            raise AIResponseError(f"Failed to read Bedrock response: {exc}") from exc

        logger.debug("MODEL OUTPUT (truncated 500 chars): %s", (model_output or "")[:500])
        return model_output

    # ---- operations used by the note orchestrator ----
    async def transcribe(self, data: bytes, filename: Optional[str] = None) -> str:
        if not self.transcription_configured:
            raise AIConfigurationError("OpenAI API key not configured")
        text = await run_in_thread(self._transcribe_sync, data, filename or "audio.mp3")
        text = (text or "").strip()
        if not text:
            raise AIResponseError("Transcription returned no text")
        logger.info("Transcribed %d bytes of audio into %d chars.", len(data), len(text))
        return text

    async def summarize_text(self, text: str, note_type: str = "TEXT") -> SummaryResult:
        model_output = await run_in_thread(
            self._invoke_bedrock,
            generate_summary_prompt(text, note_type),
        )
        result = parse_summary_output(model_output)
        logger.info(
            "Summarized %d chars of %s note (%s).",
            len(text),
            note_type,
            type(result).__name__,
        )
        return result

    async def transcribe_and_summarize(
        self,
        data: bytes,
        filename: Optional[str] = None,
        context_text: Optional[str] = None,
    ) -> AudioProcessingResult:
        transcribed_text = await self.transcribe(data, filename)
        note_type = "MIXED" if context_text else "AUDIO"
        try:
            summary = await self.summarize_text(
                combine_for_summary(transcribed_text, context_text),
                note_type,
            )
        except AIServiceError as exc:
            logger.warning("Summary after transcription failed, keeping transcript only: %s", exc)
            return AudioProcessingResult(transcribed_text=transcribed_text)
        return AudioProcessingResult(transcribed_text=transcribed_text, summary=summary)
