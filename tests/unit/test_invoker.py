import dataclasses

import pytest

from speech_pipeline.asr.providers.mock import MockTranscriptionBackend
from speech_pipeline.asr.providers.openai_whisper import OpenAIWhisperBackend
from speech_pipeline.asr.service import TranscriptionInvoker, build_backend
from speech_pipeline.audio.types import AudioArtifact
from speech_pipeline.errors import BackendNotConfiguredError, TranscriptionServiceFailure
from speech_pipeline.settings import OpenAISettings, load_settings


def _artifact(degraded: bool = False) -> AudioArtifact:
    return AudioArtifact(filename="audio.mp3", format="mp3", degraded=degraded, content=b"\xff\xfb" + b"\x00" * 2000)


def _invoker(backend) -> TranscriptionInvoker:
    return TranscriptionInvoker(backend, language="pt", prompt="primary prompt", retry_prompt="retry prompt")


@pytest.mark.asyncio
async def test_plausible_text_needs_a_single_call(make_backend):
    backend = make_backend(["Marcar reunião com o Pedro na sexta"])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 1
    request = backend.calls[0]["request"]
    assert request.temperature == 0.0
    assert request.language == "pt"
    assert request.prompt == "primary prompt"
    assert request.response_format == "text"
    assert backend.calls[0]["filename"] == "audio.mp3"
    assert result.text == "Marcar reunião com o Pedro na sexta"
    assert result.attempts_made == 1
    assert result.used_degraded_audio is False


@pytest.mark.asyncio
async def test_short_text_triggers_exactly_one_retry_and_longer_wins(make_backend):
    backend = make_backend(["Ana", "Reunião com a Ana amanhã"])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 2
    retry = backend.calls[1]["request"]
    assert retry.temperature == 0.3
    assert retry.prompt == "retry prompt"
    assert result.text == "Reunião com a Ana amanhã"
    assert result.attempts_made == 2


@pytest.mark.asyncio
async def test_retry_result_kept_only_when_strictly_longer(make_backend):
    backend = make_backend(["Oi Ana", "Oi Bia"])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 2
    assert result.text == "Oi Ana"


@pytest.mark.asyncio
async def test_length_counts_text_as_returned(make_backend):
    backend = make_backend(["   oi    \n", "ok"])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 1
    assert result.text == "   oi    \n"


@pytest.mark.asyncio
async def test_retry_compares_unstripped_lengths(make_backend):
    backend = make_backend(["Oi Ana", "Oi Ana   "])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 2
    assert result.text == "Oi Ana   "


@pytest.mark.asyncio
async def test_degraded_audio_raises_temperature_and_skips_retry(make_backend):
    backend = make_backend(["..."])

    result = await _invoker(backend).invoke(_artifact(degraded=True))

    assert len(backend.calls) == 1
    assert backend.calls[0]["request"].temperature == 0.2
    assert result.used_degraded_audio is True
    assert result.attempts_made == 1


@pytest.mark.asyncio
async def test_first_call_failure_is_fatal(make_backend):
    backend = make_backend([TranscriptionServiceFailure("quota exceeded")])

    with pytest.raises(TranscriptionServiceFailure, match="quota"):
        await _invoker(backend).invoke(_artifact())


@pytest.mark.asyncio
async def test_retry_failure_keeps_first_result(make_backend):
    backend = make_backend(["Ana", TranscriptionServiceFailure("timeout")])

    result = await _invoker(backend).invoke(_artifact())

    assert len(backend.calls) == 2
    assert result.text == "Ana"
    assert result.attempts_made == 2


@pytest.mark.asyncio
async def test_artifact_read_from_disk(make_backend, tmp_path):
    path = tmp_path / "audio_1.wav"
    path.write_bytes(b"RIFF" + b"\x00" * 100)
    backend = make_backend()

    await _invoker(backend).invoke(AudioArtifact.from_path(path, "wav"))

    assert backend.calls[0]["audio"] == path.read_bytes()
    assert backend.calls[0]["filename"] == "audio_1.wav"


def test_build_backend_mock():
    cfg = dataclasses.replace(load_settings().transcription, provider="mock")

    backend = build_backend(cfg, OpenAISettings(api_key=None, organization=None, base_url=None))

    assert isinstance(backend, MockTranscriptionBackend)


def test_build_backend_openai_requires_api_key():
    cfg = dataclasses.replace(load_settings().transcription, provider="openai")

    with pytest.raises(BackendNotConfiguredError):
        build_backend(cfg, OpenAISettings(api_key=None, organization=None, base_url=None))


def test_build_backend_openai_with_key():
    cfg = dataclasses.replace(load_settings().transcription, provider="openai")

    backend = build_backend(cfg, OpenAISettings(api_key="sk-test", organization=None, base_url=None))

    assert isinstance(backend, OpenAIWhisperBackend)


def test_build_backend_unknown_provider():
    cfg = dataclasses.replace(load_settings().transcription, provider="unknown")

    with pytest.raises(BackendNotConfiguredError):
        build_backend(cfg, OpenAISettings(api_key="sk-test", organization=None, base_url=None))
