from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import httpx

from ...errors import BackendNotConfiguredError, TranscriptionServiceFailure
from ..types import TranscriptionRequest
from .base import TranscriptionBackend

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "mp4": "audio/mp4",
}


class HttpTranscriptionBackend(TranscriptionBackend):
    """Multipart POST to any OpenAI-compatible ``/audio/transcriptions`` endpoint."""

    name = "http"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        model: str = "whisper-1",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise BackendNotConfiguredError("an API key is required for the http transcription backend")
        self._api_key = api_key
        self._url = f"{(base_url or DEFAULT_BASE_URL).rstrip('/')}/audio/transcriptions"
        self._model = model
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transcribe(self, *, filename: str, audio: bytes, request: TranscriptionRequest) -> str:
        form: Dict[str, str] = {
            "model": self._model,
            "response_format": request.response_format,
            "temperature": f"{request.temperature:g}",
        }
        if request.language:
            form["language"] = request.language
        if request.prompt:
            form["prompt"] = request.prompt

        extension = filename.rsplit(".", 1)[-1].lower()
        files: Dict[str, Tuple[str, bytes, str]] = {
            "file": (filename, audio, _CONTENT_TYPES.get(extension, "application/octet-stream")),
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            resp = await self._client.post(self._url, headers=headers, data=form, files=files)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("asr.http.failed", extra={"url": self._url, "error": str(exc)})
            raise TranscriptionServiceFailure(f"transcription request failed: {exc}") from exc

        if request.response_format == "text":
            return resp.text
        try:
            return str(resp.json().get("text", ""))
        except ValueError as exc:
            raise TranscriptionServiceFailure("transcription service returned invalid JSON") from exc
