"""Transcription invocation with degeneracy-driven retry."""

from .service import TranscriptionInvoker, build_backend
from .types import TranscriptionRequest, TranscriptionResult

__all__ = ["TranscriptionInvoker", "TranscriptionRequest", "TranscriptionResult", "build_backend"]
