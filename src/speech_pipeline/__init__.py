"""Best-effort speech transcription for arbitrary, possibly malformed audio payloads."""

from .asr import TranscriptionInvoker, TranscriptionResult
from .errors import (
    AudioPipelineError,
    BackendNotConfiguredError,
    ConversionExhausted,
    InvalidInput,
    TranscoderError,
    TranscriptionServiceFailure,
)
from .pipeline import TranscriptionPipeline, transcribe

__all__ = [
    "AudioPipelineError",
    "BackendNotConfiguredError",
    "ConversionExhausted",
    "InvalidInput",
    "TranscoderError",
    "TranscriptionInvoker",
    "TranscriptionPipeline",
    "TranscriptionResult",
    "TranscriptionServiceFailure",
    "transcribe",
]
