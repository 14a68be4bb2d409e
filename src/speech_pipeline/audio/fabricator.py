from __future__ import annotations

"""Last-resort audio for payloads ffmpeg could not make sense of.

Whatever happens here, the caller gets back a syntactically valid file so the
transcription backend always receives something it can decode.
"""

import base64
import logging
import struct

from ..errors import TranscoderError
from .tracker import TempResourceTracker
from .transcoder import MIN_VIABLE_BYTES, CommandRunner
from .types import AudioArtifact

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44

# Silent MP3 written verbatim when ffmpeg cannot generate one. The encoded
# form has malformed padding, which is normalized before decoding.
_PLACEHOLDER_B64 = (
    "SUQzBAAAAAAAI1RTU0UAAAAPAAADTGF2ZjU4Ljc2LjEwMAAAAAAAAAAAAAAA//tAwAAAAAAAAAAAAAAAAAAAAAAAWGluZwAAAA8A"
    "AAACAAADxAC2tra2tra2tra2tra2tra2tra2tra2tra2tra2tra2tra2tra2tra2AAAAA//tAxAAAAsUJvdQQAAtCZG+3hCAAkII"
    "ggCCMAYBgCAIBAMWH8f/+EP8fniB+H8fzB8HwQx+H54PiOH+dgEYfniCD4gGD5/B8HxAMHznBiBAP5/lAhwf4PnED//nx/UCAIfn"
    "znHBDPEB/OHEH/pTEFNRTMuMTAwVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVVV"
    "VVVVVVQ=="
)
_unpadded = _PLACEHOLDER_B64.rstrip("=")
PLACEHOLDER_MP3 = base64.b64decode(_unpadded + "=" * (-len(_unpadded) % 4))


def wav_header(data_length: int, *, sample_rate: int = 16000, channels: int = 1, bits_per_sample: int = 16) -> bytes:
    """Canonical 44-byte RIFF/WAVE header for linear PCM."""

    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    padded = data_length + (data_length % 2)
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + padded,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_length,
    )


def wrap_pcm(data: bytes, *, sample_rate: int = 16000) -> bytes:
    """Treat ``data`` as mono 16-bit PCM and wrap it in a WAV container."""

    pad = b"\x00" if len(data) % 2 else b""
    return wav_header(len(data), sample_rate=sample_rate) + data + pad


class SyntheticContainerFabricator:
    """Produces a degraded artifact when every real conversion failed."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        sample_rate: int = 16000,
        silence_seconds: float = 1.0,
        min_viable_bytes: int = MIN_VIABLE_BYTES,
    ) -> None:
        self._runner = runner
        self._sample_rate = sample_rate
        self._silence_seconds = silence_seconds
        self._min_viable_bytes = min_viable_bytes

    async def fabricate(self, data: bytes, tracker: TempResourceTracker) -> AudioArtifact:
        artifact = self._wrap_raw(data, tracker)
        if artifact is None:
            artifact = await self._silent_clip(tracker)
        if artifact is None:
            artifact = self._placeholder(tracker)
        logger.warning("audio.fabricate.used", extra={"artifact": artifact.filename, "format": artifact.format})
        return artifact

    def _wrap_raw(self, data: bytes, tracker: TempResourceTracker) -> AudioArtifact | None:
        try:
            path = tracker.write_bytes("force_wav", ".wav", wrap_pcm(data, sample_rate=self._sample_rate))
            size = path.stat().st_size
        except OSError as exc:
            logger.warning("audio.fabricate.wav_failed", extra={"error": str(exc)})
            return None
        if size < self._min_viable_bytes:
            logger.warning("audio.fabricate.wav_too_small", extra={"size": size})
            return None
        return AudioArtifact.from_path(path, "wav", degraded=True)

    async def _silent_clip(self, tracker: TempResourceTracker) -> AudioArtifact | None:
        try:
            path = tracker.allocate("empty_valid", ".mp3")
            await self._runner.run(
                [
                    "-f", "lavfi",
                    "-t", f"{self._silence_seconds:g}",
                    "-i", f"anullsrc=r={self._sample_rate}:cl=mono",
                    "-acodec", "libmp3lame",
                    "-ab", "8k",
                    str(path),
                ]
            )
            if not path.exists() or path.stat().st_size == 0:
                raise TranscoderError("silent clip was not written")
        except (TranscoderError, OSError) as exc:
            logger.warning("audio.fabricate.silence_failed", extra={"error": str(exc)})
            return None
        return AudioArtifact.from_path(path, "mp3", degraded=True)

    def _placeholder(self, tracker: TempResourceTracker) -> AudioArtifact:
        try:
            path = tracker.write_bytes("empty_valid", ".mp3", PLACEHOLDER_MP3)
        except OSError as exc:
            logger.warning("audio.fabricate.placeholder_in_memory", extra={"error": str(exc)})
            return AudioArtifact(filename="empty_valid.mp3", format="mp3", degraded=True, content=PLACEHOLDER_MP3)
        return AudioArtifact.from_path(path, "mp3", degraded=True)
