from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal, Optional


class DetectedFormat(str, Enum):
    """Container family guessed from the payload bytes."""

    WEBM = "webm"
    WAV = "wav"
    MP3 = "mp3"
    OGG = "ogg"
    MP4 = "mp4"
    UNKNOWN = "unknown"

    @property
    def suffix(self) -> str:
        return ".bin" if self is DetectedFormat.UNKNOWN else f".{self.value}"


AttemptOutcome = Literal["accepted", "low_quality", "undersized", "failed"]


@dataclass(frozen=True, slots=True)
class ConversionAttempt:
    """One ffmpeg invocation made by the transcoder."""

    input_hypothesis: str
    target: str
    outcome: AttemptOutcome
    output_size: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in ("accepted", "low_quality")


@dataclass(slots=True)
class AudioArtifact:
    """Audio ready to be sent to the transcription backend.

    ``content`` is only set when the artifact could not be written to disk
    (the last-resort placeholder); otherwise the bytes live at ``path``.
    """

    filename: str
    format: str
    degraded: bool = False
    path: Optional[Path] = None
    content: Optional[bytes] = None

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise FileNotFoundError(f"artifact {self.filename} has no backing file")
        return self.path.read_bytes()

    @classmethod
    def from_path(cls, path: Path, fmt: str, *, degraded: bool = False) -> "AudioArtifact":
        return cls(filename=path.name, format=fmt, degraded=degraded, path=path)
