from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from ...errors import BackendNotConfiguredError, TranscriptionServiceFailure
from ...settings import OpenAISettings
from ..types import TranscriptionRequest
from .base import TranscriptionBackend

logger = logging.getLogger(__name__)


class OpenAIWhisperBackend(TranscriptionBackend):
    """Transcription through the official AsyncOpenAI client."""

    name = "openai"

    def __init__(
        self,
        openai_cfg: Optional[OpenAISettings] = None,
        *,
        model: str = "whisper-1",
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._model = model
        self._timeout = timeout
        if client is None:
            api_key = openai_cfg.api_key if openai_cfg is not None else None
            if not api_key:
                raise BackendNotConfiguredError("OPENAI_API_KEY is required for the openai transcription backend")
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=openai_cfg.base_url,
                organization=openai_cfg.organization,
                timeout=timeout,
            )
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def transcribe(self, *, filename: str, audio: bytes, request: TranscriptionRequest) -> str:
        params: Dict[str, Any] = {
            "model": self._model,
            "file": (filename, audio),
            "response_format": request.response_format,
            "temperature": request.temperature,
        }
        if request.language:
            params["language"] = request.language
        if request.prompt:
            params["prompt"] = request.prompt

        try:
            response = await self._client.audio.transcriptions.create(**params)
        except OpenAIError as exc:
            logger.error("asr.openai.failed", extra={"model": self._model, "error": str(exc)})
            raise TranscriptionServiceFailure(f"transcription request failed: {exc}") from exc

        if isinstance(response, str):
            return response
        return getattr(response, "text", "") or ""
