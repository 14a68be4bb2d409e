from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


@dataclass(slots=True)
class TranscriptionRequest:
    language: Optional[str] = None
    prompt: Optional[str] = None
    temperature: float = 0.0
    response_format: str = "text"


class TranscriptionResult(BaseModel):
    text: str = ""
    attempts_made: int = Field(default=1, ge=1, le=2)
    used_degraded_audio: bool = False
    provider: Optional[str] = None
