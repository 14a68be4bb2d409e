from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..audio.types import AudioArtifact
from ..errors import BackendNotConfiguredError, TranscriptionServiceFailure
from ..settings import OpenAISettings, TranscriptionSettings
from .providers.base import TranscriptionBackend
from .providers.http import HttpTranscriptionBackend
from .providers.mock import MockTranscriptionBackend
from .providers.openai_whisper import OpenAIWhisperBackend
from .types import TranscriptionRequest, TranscriptionResult

logger = logging.getLogger(__name__)

# Shorter transcriptions are treated as degenerate and retried once.
MIN_TEXT_LENGTH = 10


def build_backend(cfg: TranscriptionSettings, openai_cfg: OpenAISettings) -> TranscriptionBackend:
    provider_name = (cfg.provider or "openai").strip().lower()
    if provider_name in {"mock", "fake"}:
        return MockTranscriptionBackend()
    if provider_name in {"openai", "whisper", "openai_whisper"}:
        return OpenAIWhisperBackend(openai_cfg, model=cfg.model, timeout=cfg.timeout)
    if provider_name in {"http", "openai_compatible"}:
        return HttpTranscriptionBackend(
            api_key=openai_cfg.api_key,
            base_url=openai_cfg.base_url,
            model=cfg.model,
            timeout=cfg.timeout,
        )
    raise BackendNotConfiguredError(f"unsupported transcription provider: {cfg.provider}")


class TranscriptionInvoker:
    """Sends an artifact to the backend and hedges against degenerate output.

    The first call runs near-deterministic, or slightly warmer when the audio
    is already known to be degraded. A suspiciously short result on good audio
    earns one retry with a warmer decode and an alternate prompt; the longer of
    the two texts wins. Never more than two calls.

    Lengths are measured on the text exactly as returned, surrounding
    whitespace included.
    """

    def __init__(
        self,
        backend: TranscriptionBackend,
        *,
        language: Optional[str] = "pt",
        prompt: Optional[str] = None,
        retry_prompt: Optional[str] = None,
        temperature: float = 0.0,
        degraded_temperature: float = 0.2,
        retry_temperature: float = 0.3,
        min_text_length: int = MIN_TEXT_LENGTH,
    ) -> None:
        self._backend = backend
        self._language = language
        self._prompt = prompt
        self._retry_prompt = retry_prompt or prompt
        self._temperature = temperature
        self._degraded_temperature = degraded_temperature
        self._retry_temperature = retry_temperature
        self._min_text_length = min_text_length

    @classmethod
    def from_settings(cls, cfg: TranscriptionSettings, openai_cfg: OpenAISettings) -> "TranscriptionInvoker":
        return cls(
            build_backend(cfg, openai_cfg),
            language=cfg.language,
            prompt=cfg.prompt,
            retry_prompt=cfg.retry_prompt,
            temperature=cfg.temperature,
            degraded_temperature=cfg.degraded_temperature,
            retry_temperature=cfg.retry_temperature,
            min_text_length=cfg.min_text_length,
        )

    @property
    def backend(self) -> TranscriptionBackend:
        return self._backend

    async def close(self) -> None:
        await self._backend.close()

    def is_degenerate(self, text: str) -> bool:
        return len(text) < self._min_text_length

    async def invoke(self, artifact: AudioArtifact) -> TranscriptionResult:
        audio = await asyncio.to_thread(artifact.read_bytes)
        first_request = TranscriptionRequest(
            language=self._language,
            prompt=self._prompt,
            temperature=self._degraded_temperature if artifact.degraded else self._temperature,
        )
        text = await self._call(artifact, audio, first_request, attempt=1)

        if artifact.degraded or not self.is_degenerate(text):
            return self._result(text, attempts=1, artifact=artifact)

        logger.info("asr.retry.degenerate", extra={"length": len(text), "artifact": artifact.filename})
        retry_request = TranscriptionRequest(
            language=self._language,
            prompt=self._retry_prompt,
            temperature=self._retry_temperature,
        )
        try:
            retry_text = await self._call(artifact, audio, retry_request, attempt=2)
        except TranscriptionServiceFailure:
            logger.warning("asr.retry.failed_keeping_first", extra={"artifact": artifact.filename})
            return self._result(text, attempts=2, artifact=artifact)

        if len(retry_text) > len(text):
            logger.info("asr.retry.accepted", extra={"length": len(retry_text)})
            text = retry_text
        return self._result(text, attempts=2, artifact=artifact)

    async def _call(
        self,
        artifact: AudioArtifact,
        audio: bytes,
        request: TranscriptionRequest,
        *,
        attempt: int,
    ) -> str:
        logger.info(
            "asr.request",
            extra={
                "provider": self._backend.name,
                "artifact": artifact.filename,
                "bytes": len(audio),
                "temperature": request.temperature,
                "attempt": attempt,
            },
        )
        text = await self._backend.transcribe(filename=artifact.filename, audio=audio, request=request)
        logger.info("asr.response", extra={"attempt": attempt, "length": len(text)})
        return text

    def _result(self, text: str, *, attempts: int, artifact: AudioArtifact) -> TranscriptionResult:
        return TranscriptionResult(
            text=text,
            attempts_made=attempts,
            used_degraded_audio=artifact.degraded,
            provider=self._backend.name,
        )
