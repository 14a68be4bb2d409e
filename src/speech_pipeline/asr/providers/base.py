from __future__ import annotations

import abc

from ..types import TranscriptionRequest


class TranscriptionBackend(abc.ABC):
    """Interface for remote speech-to-text services."""

    name: str

    async def close(self) -> None:
        return None

    @abc.abstractmethod
    async def transcribe(self, *, filename: str, audio: bytes, request: TranscriptionRequest) -> str:
        """Return the plain-text transcription of ``audio``.

        Implementations raise ``TranscriptionServiceFailure`` when the service
        cannot be reached or rejects the request.
        """
        raise NotImplementedError
