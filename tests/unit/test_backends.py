from types import SimpleNamespace

import httpx
import pytest
from openai import OpenAIError

from speech_pipeline.asr.providers.http import HttpTranscriptionBackend
from speech_pipeline.asr.providers.openai_whisper import OpenAIWhisperBackend
from speech_pipeline.asr.types import TranscriptionRequest
from speech_pipeline.errors import BackendNotConfiguredError, TranscriptionServiceFailure


class DummyTranscriptions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


def _dummy_client(transcriptions: DummyTranscriptions):
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))


@pytest.mark.asyncio
async def test_openai_backend_sends_request_parameters():
    transcriptions = DummyTranscriptions(result="Agendar com Bruno segunda\n")
    backend = OpenAIWhisperBackend(model="whisper-1", client=_dummy_client(transcriptions))

    text = await backend.transcribe(
        filename="audio.mp3",
        audio=b"ID3data",
        request=TranscriptionRequest(language="pt", prompt="agenda", temperature=0.2),
    )

    assert text == "Agendar com Bruno segunda\n"
    assert transcriptions.kwargs["model"] == "whisper-1"
    assert transcriptions.kwargs["file"] == ("audio.mp3", b"ID3data")
    assert transcriptions.kwargs["language"] == "pt"
    assert transcriptions.kwargs["prompt"] == "agenda"
    assert transcriptions.kwargs["temperature"] == 0.2
    assert transcriptions.kwargs["response_format"] == "text"


@pytest.mark.asyncio
async def test_openai_backend_reads_text_attribute():
    transcriptions = DummyTranscriptions(result=SimpleNamespace(text="olá"))
    backend = OpenAIWhisperBackend(client=_dummy_client(transcriptions))

    text = await backend.transcribe(filename="a.wav", audio=b"x", request=TranscriptionRequest())

    assert text == "olá"
    assert "language" not in transcriptions.kwargs
    assert "prompt" not in transcriptions.kwargs


@pytest.mark.asyncio
async def test_openai_backend_translates_sdk_errors():
    transcriptions = DummyTranscriptions(error=OpenAIError("invalid api key"))
    backend = OpenAIWhisperBackend(client=_dummy_client(transcriptions))

    with pytest.raises(TranscriptionServiceFailure, match="invalid api key"):
        await backend.transcribe(filename="a.wav", audio=b"x", request=TranscriptionRequest())


@pytest.mark.asyncio
async def test_http_backend_posts_multipart_form():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.content
        return httpx.Response(200, text="Reunião às três\n")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = HttpTranscriptionBackend(api_key="sk-test", base_url="http://stt.local/v1/", client=client)

    text = await backend.transcribe(
        filename="audio.wav",
        audio=b"RIFFdata",
        request=TranscriptionRequest(language="pt", prompt="agenda", temperature=0.3),
    )
    await client.aclose()

    assert text == "Reunião às três\n"
    assert seen["url"] == "http://stt.local/v1/audio/transcriptions"
    assert seen["auth"] == "Bearer sk-test"
    assert b'name="model"' in seen["body"] and b"whisper-1" in seen["body"]
    assert b'name="language"' in seen["body"]
    assert b'name="temperature"\r\n\r\n0.3' in seen["body"]
    assert b"audio/wav" in seen["body"] and b"RIFFdata" in seen["body"]


@pytest.mark.asyncio
async def test_http_backend_json_response_format():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"text": "olá mundo"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = HttpTranscriptionBackend(api_key="sk-test", client=client)

    text = await backend.transcribe(
        filename="audio.mp3",
        audio=b"ID3",
        request=TranscriptionRequest(response_format="json"),
    )
    await client.aclose()

    assert text == "olá mundo"


@pytest.mark.asyncio
async def test_http_backend_error_status_is_service_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "rate limited"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = HttpTranscriptionBackend(api_key="sk-test", client=client)

    with pytest.raises(TranscriptionServiceFailure):
        await backend.transcribe(filename="audio.mp3", audio=b"ID3", request=TranscriptionRequest())
    await client.aclose()


def test_http_backend_requires_api_key():
    with pytest.raises(BackendNotConfiguredError):
        HttpTranscriptionBackend(api_key=None)
