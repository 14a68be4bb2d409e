from __future__ import annotations

"""End-to-end ingestion: raw bytes in, transcription out."""

import functools
import logging
from pathlib import Path
from typing import Optional

from .asr.service import TranscriptionInvoker
from .asr.types import TranscriptionResult
from .audio.detector import detect_format
from .audio.fabricator import SyntheticContainerFabricator
from .audio.ffmpeg import FfmpegRunner
from .audio.tracker import TempResourceTracker
from .audio.transcoder import Transcoder
from .audio.types import AudioArtifact, DetectedFormat
from .errors import ConversionExhausted, InvalidInput
from .settings import Settings, settings as runtime_settings

logger = logging.getLogger(__name__)

MIN_PAYLOAD_BYTES = 1000
MAX_PAYLOAD_BYTES = 10 * 1024 * 1024


class TranscriptionPipeline:
    """Coordinates detection, normalization and transcription for one payload at a time.

    Instances hold only read-only collaborators and may serve concurrent
    ``run`` calls; all per-run state lives in the run's tracker.
    """

    def __init__(
        self,
        *,
        transcoder: Transcoder,
        fabricator: SyntheticContainerFabricator,
        invoker: TranscriptionInvoker,
        temp_dir: str | Path,
        min_bytes: int = MIN_PAYLOAD_BYTES,
        max_bytes: Optional[int] = MAX_PAYLOAD_BYTES,
    ) -> None:
        self._transcoder = transcoder
        self._fabricator = fabricator
        self._invoker = invoker
        self._temp_dir = Path(temp_dir)
        self._min_bytes = min_bytes
        self._max_bytes = max_bytes

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "TranscriptionPipeline":
        cfg = cfg or runtime_settings
        runner = FfmpegRunner.from_settings(cfg.transcoder)
        return cls(
            transcoder=Transcoder.from_settings(runner, cfg.transcoder, cfg.pipeline),
            fabricator=SyntheticContainerFabricator(
                runner,
                sample_rate=cfg.pipeline.synthetic_sample_rate,
                silence_seconds=cfg.transcoder.silence_seconds,
                min_viable_bytes=cfg.pipeline.min_viable_bytes,
            ),
            invoker=TranscriptionInvoker.from_settings(cfg.transcription, cfg.openai),
            temp_dir=cfg.pipeline.temp_dir,
            min_bytes=cfg.pipeline.min_bytes,
            max_bytes=cfg.pipeline.max_bytes,
        )

    @property
    def invoker(self) -> TranscriptionInvoker:
        return self._invoker

    async def close(self) -> None:
        await self._invoker.close()

    def validate(self, payload: Optional[bytes]) -> bytes:
        if not payload:
            raise InvalidInput("audio payload is empty")
        if len(payload) < self._min_bytes:
            raise InvalidInput(f"audio payload too small: {len(payload)} bytes (minimum {self._min_bytes})")
        if self._max_bytes is not None and len(payload) > self._max_bytes:
            raise InvalidInput(f"audio payload too large: {len(payload)} bytes (maximum {self._max_bytes})")
        return bytes(payload)

    async def run(self, payload: Optional[bytes]) -> TranscriptionResult:
        data = self.validate(payload)
        logger.info("pipeline.start", extra={"bytes": len(data)})

        detected, effective = detect_format(data)

        with TempResourceTracker(self._temp_dir) as tracker:
            artifact = await self._prepare_artifact(detected, effective, tracker)
            result = await self._invoker.invoke(artifact)

        logger.info(
            "pipeline.finished",
            extra={
                "format": detected.value,
                "degraded": result.used_degraded_audio,
                "attempts_made": result.attempts_made,
                "length": len(result.text),
            },
        )
        return result

    async def transcribe(self, payload: Optional[bytes]) -> str:
        result = await self.run(payload)
        return result.text

    async def _prepare_artifact(
        self,
        detected: DetectedFormat,
        data: bytes,
        tracker: TempResourceTracker,
    ) -> AudioArtifact:
        try:
            raw_path = tracker.write_bytes("raw_audio", detected.suffix, data)
        except OSError as exc:
            logger.error("pipeline.raw_write_failed", extra={"error": str(exc)})
            return await self._fabricator.fabricate(data, tracker)

        try:
            outcome = await self._transcoder.convert(raw_path, detected, tracker)
        except ConversionExhausted as exc:
            logger.warning("pipeline.conversion_exhausted", extra={"attempts": len(exc.attempts)})
            return await self._fabricator.fabricate(data, tracker)
        return outcome.artifact


@functools.lru_cache(maxsize=1)
def default_pipeline() -> TranscriptionPipeline:
    return TranscriptionPipeline.from_settings(runtime_settings)


async def transcribe(payload: Optional[bytes], *, pipeline: Optional[TranscriptionPipeline] = None) -> str:
    """Transcribe ``payload`` and return the text.

    Raises ``InvalidInput`` for unusable payloads and
    ``TranscriptionServiceFailure`` when the remote service fails; every other
    problem is absorbed by degrading the audio.
    """

    return await (pipeline or default_pipeline()).transcribe(payload)


__all__ = ["TranscriptionPipeline", "default_pipeline", "transcribe"]
