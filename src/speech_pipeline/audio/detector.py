from __future__ import annotations

"""Format sniffing for inbound speech payloads.

Only enough detection to pick a transcoding strategy: a small table of
leading-byte signatures, an optional JSON envelope carrying base64 audio, and
a content scan for embedded container markers.
"""

import base64
import binascii
import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .types import DetectedFormat

logger = logging.getLogger(__name__)

# Hex prefixes of the first four bytes, checked in order.
SIGNATURES: tuple[tuple[str, DetectedFormat], ...] = (
    ("1a45", DetectedFormat.WEBM),
    ("4949", DetectedFormat.WAV),
    ("4d4d", DetectedFormat.WAV),
    ("52494646", DetectedFormat.WAV),
    ("494433", DetectedFormat.MP3),
    ("fffb", DetectedFormat.MP3),
    ("4f676753", DetectedFormat.OGG),
)

CONTENT_MARKERS: tuple[tuple[bytes, DetectedFormat], ...] = (
    (b"ftyp", DetectedFormat.MP4),
    (b"OggS", DetectedFormat.OGG),
)

_ENVELOPE_FIELD_RE = re.compile(rb'"(?:data|audio|audioData)"\s*:\s*"([^"]+)"')
_DATA_URL_RE = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
_NON_ALPHABET_RE = re.compile(r"[^A-Za-z0-9+/]")
# Both the standard and the URL-safe alphabet are accepted.
_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


class AudioEnvelope(BaseModel):
    """JSON wrapper some clients use instead of a raw upload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    audio: Optional[str] = None
    data: Optional[str] = None
    audio_data: Optional[str] = Field(default=None, alias="audioData")

    def encoded_audio(self) -> Optional[str]:
        for value in (self.audio, self.data, self.audio_data):
            if value:
                return value
        return None


def signature_of(payload: bytes) -> str:
    return payload[:4].hex()


def match_signature(payload: bytes) -> DetectedFormat:
    signature = signature_of(payload)
    for prefix, fmt in SIGNATURES:
        if signature.startswith(prefix):
            return fmt
    return DetectedFormat.UNKNOWN


def scan_content(payload: bytes) -> DetectedFormat:
    for marker, fmt in CONTENT_MARKERS:
        if marker in payload:
            return fmt
    return DetectedFormat.UNKNOWN


def looks_like_envelope(payload: bytes) -> bool:
    return payload.lstrip()[:1] == b"{"


def _decode_base64(value: str | bytes) -> Optional[bytes]:
    text = value.decode("ascii", errors="ignore") if isinstance(value, bytes) else value
    text = _DATA_URL_RE.sub("", text.strip()).translate(_URLSAFE_TO_STANDARD)
    # Padding is recomputed once stray characters are gone; clients often drop it.
    text = _NON_ALPHABET_RE.sub("", text)
    text += "=" * (-len(text) % 4)
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded or None


def unwrap_envelope(payload: bytes) -> Optional[bytes]:
    """Return the audio carried by a JSON envelope, or ``None``.

    Full parsing is tried first; when the document is truncated or otherwise
    invalid a regex picks out a ``"data":"..."`` style value instead.
    """

    try:
        envelope = AudioEnvelope.model_validate_json(payload)
    except ValidationError:
        logger.info("audio.envelope.parse_failed")
        match = _ENVELOPE_FIELD_RE.search(payload)
        if match is None:
            return None
        return _decode_base64(match.group(1))

    encoded = envelope.encoded_audio()
    if encoded is None:
        logger.info("audio.envelope.no_audio_field")
        return None
    return _decode_base64(encoded)


def detect_format(payload: bytes) -> tuple[DetectedFormat, bytes]:
    """Guess the container of ``payload``.

    Returns the detected format together with the bytes that should be used
    from now on: the payload itself, or the audio unwrapped from an envelope.
    ``DetectedFormat.UNKNOWN`` is a routing decision, not an error.
    """

    detected = match_signature(payload)
    effective = payload

    if detected is DetectedFormat.UNKNOWN and looks_like_envelope(payload):
        unwrapped = unwrap_envelope(payload)
        if unwrapped is not None:
            logger.info(
                "audio.envelope.unwrapped",
                extra={"outer_bytes": len(payload), "inner_bytes": len(unwrapped)},
            )
            effective = unwrapped
            detected = match_signature(effective)

    if detected is DetectedFormat.UNKNOWN:
        detected = scan_content(effective)

    logger.info(
        "audio.detect",
        extra={"signature": signature_of(effective), "format": detected.value, "bytes": len(effective)},
    )
    return detected, effective


__all__ = [
    "AudioEnvelope",
    "detect_format",
    "match_signature",
    "scan_content",
    "unwrap_envelope",
]
