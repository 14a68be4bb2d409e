"""Transcription backend implementations."""

from .base import TranscriptionBackend
from .http import HttpTranscriptionBackend
from .mock import MockTranscriptionBackend
from .openai_whisper import OpenAIWhisperBackend

__all__ = [
    "HttpTranscriptionBackend",
    "MockTranscriptionBackend",
    "OpenAIWhisperBackend",
    "TranscriptionBackend",
]
