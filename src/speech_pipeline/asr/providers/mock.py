from __future__ import annotations

from ..types import TranscriptionRequest
from .base import TranscriptionBackend


class MockTranscriptionBackend(TranscriptionBackend):
    name = "mock"

    def __init__(self, text: str = "mock transcription") -> None:
        self._text = text

    async def transcribe(self, *, filename: str, audio: bytes, request: TranscriptionRequest) -> str:
        return self._text
