"""Audio ingestion: format detection, transcoding and last-resort fabrication."""

from .detector import AudioEnvelope, detect_format
from .fabricator import SyntheticContainerFabricator
from .ffmpeg import FfmpegRunner
from .tracker import TempResourceTracker
from .transcoder import Transcoder, TranscodeOutcome
from .types import AudioArtifact, ConversionAttempt, DetectedFormat

__all__ = [
    "AudioArtifact",
    "AudioEnvelope",
    "ConversionAttempt",
    "DetectedFormat",
    "FfmpegRunner",
    "SyntheticContainerFabricator",
    "TempResourceTracker",
    "TranscodeOutcome",
    "Transcoder",
    "detect_format",
]
