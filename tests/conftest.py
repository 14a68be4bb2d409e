"""
pytest configuration
Shared fakes and sample payloads for the unit tests
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from speech_pipeline.asr.providers.base import TranscriptionBackend
from speech_pipeline.asr.service import TranscriptionInvoker
from speech_pipeline.asr.types import TranscriptionRequest
from speech_pipeline.audio.fabricator import SyntheticContainerFabricator
from speech_pipeline.audio.transcoder import Transcoder
from speech_pipeline.errors import TranscoderError
from speech_pipeline.pipeline import TranscriptionPipeline


class FakeRunner:
    """Stands in for ffmpeg.

    ``outcomes`` is consumed one entry per call: an int writes that many bytes
    to the output path (the last argument), ``None`` simulates a failure.
    Once exhausted, ``default`` applies.
    """

    def __init__(self, outcomes: Optional[Sequence[Optional[int]]] = None, default: Optional[int] = None) -> None:
        self.calls: List[List[str]] = []
        self._outcomes = list(outcomes or [])
        self._default = default

    async def run(self, args: Sequence[str]) -> None:
        self.calls.append(list(args))
        outcome = self._outcomes.pop(0) if self._outcomes else self._default
        if outcome is None:
            raise TranscoderError("simulated ffmpeg failure", returncode=1)
        Path(args[-1]).write_bytes(b"\x00" * outcome)


class RecordingBackend(TranscriptionBackend):
    """Returns queued responses and remembers every request."""

    name = "recording"

    def __init__(self, responses: Optional[Sequence[Any]] = None) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._responses = list(responses or ["Agendar reunião com a Ana amanhã às dez"])

    async def transcribe(self, *, filename: str, audio: bytes, request: TranscriptionRequest) -> str:
        self.calls.append({"filename": filename, "audio": audio, "request": request})
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture
def make_backend():
    return RecordingBackend


@pytest.fixture
def work_dir(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def make_pipeline(work_dir):
    def _build(runner: FakeRunner, backend: RecordingBackend, **invoker_kwargs: Any) -> TranscriptionPipeline:
        invoker_kwargs.setdefault("prompt", "primary prompt")
        invoker_kwargs.setdefault("retry_prompt", "retry prompt")
        return TranscriptionPipeline(
            transcoder=Transcoder(runner),
            fabricator=SyntheticContainerFabricator(runner),
            invoker=TranscriptionInvoker(backend, **invoker_kwargs),
            temp_dir=work_dir,
        )

    return _build


@pytest.fixture
def garbage_payload():
    """Bytes with no known signature, no envelope and no embedded markers."""
    return bytes(range(1, 251)) * 8


@pytest.fixture
def webm_payload():
    """50 KB starting with an EBML header."""
    header = bytes.fromhex("1a45dfa3")
    return header + b"\x42" * (50 * 1024 - len(header))


# pytest markers
pytest_plugins = []


def pytest_configure(config):
    """pytest configuration"""
    config.addinivalue_line(
        "markers", "unit: unit test"
    )
    config.addinivalue_line(
        "markers", "integration: needs external tools such as ffmpeg"
    )
