"""Exception hierarchy shared by the ingestion and transcription stages."""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .audio.types import ConversionAttempt


class AudioPipelineError(RuntimeError):
    """Base class for every failure the pipeline reports to its caller."""


class InvalidInput(AudioPipelineError):
    """Raised when the payload is absent, too short or too large."""


class TranscoderError(AudioPipelineError):
    """Raised when a single ffmpeg invocation fails, times out or cannot start."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ConversionExhausted(AudioPipelineError):
    """Raised when every transcoding strategy failed.

    Never surfaced to callers of the pipeline: it routes the run to the
    synthetic container fabricator.
    """

    def __init__(self, message: str, *, attempts: Sequence["ConversionAttempt"] = ()) -> None:
        super().__init__(message)
        self.attempts = list(attempts)


class TranscriptionServiceFailure(AudioPipelineError):
    """Raised when the remote transcription service call itself fails."""


class BackendNotConfiguredError(AudioPipelineError):
    """Raised when a transcription backend is selected without usable configuration."""


__all__ = [
    "AudioPipelineError",
    "InvalidInput",
    "TranscoderError",
    "ConversionExhausted",
    "TranscriptionServiceFailure",
    "BackendNotConfiguredError",
]
