from __future__ import annotations

"""Runtime configuration helpers for speech-pipeline."""

import os
import tempfile
from dataclasses import dataclass

DEFAULT_PROMPT = "Este é um comando de agendamento em português brasileiro. Pode conter nomes e datas."
DEFAULT_RETRY_PROMPT = "Este é um comando para agendar uma reunião. Pode incluir nome da pessoa, data e hora."
DEFAULT_NATIVE_FORMATS = ("webm", "wav", "mp3", "ogg", "mp4")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class OpenAISettings:
    api_key: str | None
    organization: str | None
    base_url: str | None


@dataclass(frozen=True)
class TranscoderSettings:
    ffmpeg_binary: str
    timeout: float
    compressed_bitrate: str
    compressed_sample_rate: int
    pcm_sample_rate: int
    raw_input_sample_rate: int
    silence_seconds: float


@dataclass(frozen=True)
class TranscriptionSettings:
    provider: str
    model: str
    language: str
    prompt: str
    retry_prompt: str
    temperature: float
    degraded_temperature: float
    retry_temperature: float
    min_text_length: int
    timeout: float


@dataclass(frozen=True)
class PipelineSettings:
    temp_dir: str
    min_bytes: int
    max_bytes: int
    min_viable_bytes: int
    quality_bytes: int
    native_formats: tuple[str, ...]
    synthetic_sample_rate: int


@dataclass(frozen=True)
class Settings:
    openai: OpenAISettings
    transcoder: TranscoderSettings
    transcription: TranscriptionSettings
    pipeline: PipelineSettings


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""

    openai_settings = OpenAISettings(
        api_key=os.getenv("OPENAI_API_KEY"),
        organization=os.getenv("OPENAI_ORG_ID"),
        base_url=os.getenv("OPENAI_BASE_URL"),
    )

    transcoder_settings = TranscoderSettings(
        ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
        timeout=_env_float("FFMPEG_TIMEOUT_SECONDS", 60.0),
        compressed_bitrate=os.getenv("FFMPEG_MP3_BITRATE", "128k"),
        compressed_sample_rate=_env_int("FFMPEG_MP3_SAMPLE_RATE", 44100),
        pcm_sample_rate=_env_int("FFMPEG_WAV_SAMPLE_RATE", 16000),
        raw_input_sample_rate=_env_int("FFMPEG_RAW_INPUT_SAMPLE_RATE", 16000),
        silence_seconds=_env_float("FFMPEG_SILENCE_SECONDS", 1.0),
    )

    transcription_settings = TranscriptionSettings(
        provider=os.getenv("ASR_PROVIDER", "openai"),
        model=os.getenv("ASR_MODEL", "whisper-1"),
        language=os.getenv("ASR_LANGUAGE", "pt"),
        prompt=os.getenv("ASR_PROMPT", DEFAULT_PROMPT),
        retry_prompt=os.getenv("ASR_RETRY_PROMPT", DEFAULT_RETRY_PROMPT),
        temperature=_env_float("ASR_TEMPERATURE", 0.0),
        degraded_temperature=_env_float("ASR_DEGRADED_TEMPERATURE", 0.2),
        retry_temperature=_env_float("ASR_RETRY_TEMPERATURE", 0.3),
        min_text_length=_env_int("ASR_MIN_TEXT_LENGTH", 10),
        timeout=_env_float("ASR_REQUEST_TIMEOUT", 60.0),
    )

    pipeline_settings = PipelineSettings(
        temp_dir=os.getenv("AUDIO_TEMP_DIR", os.path.join(tempfile.gettempdir(), "speech-pipeline")),
        min_bytes=_env_int("AUDIO_MIN_BYTES", 1000),
        max_bytes=_env_int("AUDIO_MAX_BYTES", 10 * 1024 * 1024),
        min_viable_bytes=_env_int("AUDIO_MIN_VIABLE_BYTES", 1000),
        quality_bytes=_env_int("AUDIO_QUALITY_BYTES", 10000),
        native_formats=_env_list("AUDIO_NATIVE_FORMATS", DEFAULT_NATIVE_FORMATS),
        synthetic_sample_rate=_env_int("AUDIO_SYNTHETIC_SAMPLE_RATE", 16000),
    )

    return Settings(
        openai=openai_settings,
        transcoder=transcoder_settings,
        transcription=transcription_settings,
        pipeline=pipeline_settings,
    )


settings = load_settings()

__all__ = [
    "Settings",
    "OpenAISettings",
    "TranscoderSettings",
    "TranscriptionSettings",
    "PipelineSettings",
    "settings",
    "load_settings",
]
