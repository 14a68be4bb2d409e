from __future__ import annotations

"""Transcoding orchestrator.

Conversion policy is data: an ordered list of codec targets, each tried with
an ordered list of input-format hypotheses. A single loop walks the resulting
strategies, records a ``ConversionAttempt`` for each, and stops at the first
output large enough to be worth transcribing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Iterator, Optional, Protocol, Sequence

from ..errors import ConversionExhausted, TranscoderError
from ..settings import PipelineSettings, TranscoderSettings
from .tracker import TempResourceTracker
from .types import AudioArtifact, ConversionAttempt, DetectedFormat

logger = logging.getLogger(__name__)

# Below this the produced file is presumed corrupt.
MIN_VIABLE_BYTES = 1000
# Below this the file is still used, but flagged as low confidence.
QUALITY_BYTES = 10000

GENERIC_CONTAINER = "matroska"

# ffmpeg demuxer names for the formats the detector can report.
DEMUXERS: dict[DetectedFormat, str] = {
    DetectedFormat.WEBM: "webm",
    DetectedFormat.WAV: "wav",
    DetectedFormat.MP3: "mp3",
    DetectedFormat.OGG: "ogg",
    DetectedFormat.MP4: "mp4",
}


class CommandRunner(Protocol):
    async def run(self, args: Sequence[str]) -> None: ...


@dataclass(frozen=True, slots=True)
class InputHypothesis:
    """How ffmpeg should interpret the source file."""

    name: str
    input_args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CodecTarget:
    name: str
    suffix: str
    output_args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ConversionStrategy:
    hypothesis: InputHypothesis
    target: CodecTarget

    def command(self, source: Path, output: Path) -> list[str]:
        return [*self.hypothesis.input_args, "-i", str(source), *self.target.output_args, str(output)]


@dataclass(slots=True)
class TranscodeOutcome:
    artifact: AudioArtifact
    attempts: list[ConversionAttempt] = field(default_factory=list)

    @property
    def fast_path(self) -> bool:
        return not self.attempts


def compressed_target(*, bitrate: str = "128k", sample_rate: int = 44100) -> CodecTarget:
    return CodecTarget(
        name="mp3",
        suffix=".mp3",
        output_args=("-vn", "-acodec", "libmp3lame", "-ab", bitrate, "-ar", str(sample_rate), "-ac", "1"),
    )


def pcm_target(*, sample_rate: int = 16000) -> CodecTarget:
    return CodecTarget(
        name="wav",
        suffix=".wav",
        output_args=("-vn", "-acodec", "pcm_s16le", "-ar", str(sample_rate), "-ac", "1"),
    )


def input_hypotheses(detected: DetectedFormat, *, raw_sample_rate: int = 16000) -> list[InputHypothesis]:
    """Hypotheses in priority order: raw PCM, detected format, generic container, auto-detect.

    Hypotheses that do not apply (no demuxer for the detected format) or that
    repeat an earlier one are dropped.
    """

    candidates: list[Optional[InputHypothesis]] = [
        InputHypothesis("raw-pcm", ("-f", "s16le", "-ar", str(raw_sample_rate), "-ac", "1")),
        InputHypothesis(f"detected:{detected.value}", ("-f", DEMUXERS[detected])) if detected in DEMUXERS else None,
        InputHypothesis(f"container:{GENERIC_CONTAINER}", ("-f", GENERIC_CONTAINER)),
        InputHypothesis("auto-detect"),
    ]
    seen: set[tuple[str, ...]] = set()
    hypotheses: list[InputHypothesis] = []
    for hypothesis in candidates:
        if hypothesis is None or hypothesis.input_args in seen:
            continue
        seen.add(hypothesis.input_args)
        hypotheses.append(hypothesis)
    return hypotheses


def build_strategies(
    detected: DetectedFormat,
    targets: Sequence[CodecTarget],
    *,
    raw_sample_rate: int = 16000,
) -> Iterator[ConversionStrategy]:
    hypotheses = input_hypotheses(detected, raw_sample_rate=raw_sample_rate)
    for target in targets:
        for hypothesis in hypotheses:
            yield ConversionStrategy(hypothesis=hypothesis, target=target)


class Transcoder:
    """Normalizes unknown or unsupported payloads with ffmpeg."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        native_formats: Collection[str] = ("webm", "wav", "mp3", "ogg", "mp4"),
        targets: Optional[Sequence[CodecTarget]] = None,
        raw_sample_rate: int = 16000,
        min_viable_bytes: int = MIN_VIABLE_BYTES,
        quality_bytes: int = QUALITY_BYTES,
    ) -> None:
        self._runner = runner
        self._native_formats = frozenset(fmt.lower() for fmt in native_formats)
        self._targets = list(targets) if targets is not None else [compressed_target(), pcm_target()]
        self._raw_sample_rate = raw_sample_rate
        self._min_viable_bytes = min_viable_bytes
        self._quality_bytes = quality_bytes

    @classmethod
    def from_settings(
        cls,
        runner: CommandRunner,
        transcoder_cfg: TranscoderSettings,
        pipeline_cfg: PipelineSettings,
    ) -> "Transcoder":
        return cls(
            runner,
            native_formats=pipeline_cfg.native_formats,
            targets=[
                compressed_target(
                    bitrate=transcoder_cfg.compressed_bitrate,
                    sample_rate=transcoder_cfg.compressed_sample_rate,
                ),
                pcm_target(sample_rate=transcoder_cfg.pcm_sample_rate),
            ],
            raw_sample_rate=transcoder_cfg.raw_input_sample_rate,
            min_viable_bytes=pipeline_cfg.min_viable_bytes,
            quality_bytes=pipeline_cfg.quality_bytes,
        )

    def is_native(self, detected: DetectedFormat) -> bool:
        return detected is not DetectedFormat.UNKNOWN and detected.value in self._native_formats

    async def convert(
        self,
        source: Path,
        detected: DetectedFormat,
        tracker: TempResourceTracker,
    ) -> TranscodeOutcome:
        """Return an artifact the transcription backend accepts.

        Raises ``ConversionExhausted`` when no strategy produced a usable file.
        """

        if self.is_native(detected):
            logger.info("audio.transcode.fast_path", extra={"format": detected.value})
            return TranscodeOutcome(artifact=AudioArtifact.from_path(source, detected.value))

        attempts: list[ConversionAttempt] = []
        for strategy in build_strategies(detected, self._targets, raw_sample_rate=self._raw_sample_rate):
            attempt, output = await self._attempt(strategy, source, tracker)
            attempts.append(attempt)
            if attempt.succeeded and output is not None:
                degraded = attempt.outcome == "low_quality"
                logger.info(
                    "audio.transcode.accepted",
                    extra={
                        "hypothesis": attempt.input_hypothesis,
                        "target": attempt.target,
                        "size": attempt.output_size,
                        "degraded": degraded,
                        "attempts": len(attempts),
                    },
                )
                artifact = AudioArtifact.from_path(output, strategy.target.name, degraded=degraded)
                return TranscodeOutcome(artifact=artifact, attempts=attempts)

        raise ConversionExhausted(
            f"all {len(attempts)} conversion attempts failed for {detected.value} input",
            attempts=attempts,
        )

    async def _attempt(
        self,
        strategy: ConversionStrategy,
        source: Path,
        tracker: TempResourceTracker,
    ) -> tuple[ConversionAttempt, Optional[Path]]:
        hypothesis = strategy.hypothesis.name
        target = strategy.target.name
        output = tracker.allocate(f"audio_{target}", strategy.target.suffix)
        try:
            await self._runner.run(strategy.command(source, output))
        except TranscoderError as exc:
            logger.warning(
                "audio.transcode.attempt_failed",
                extra={"hypothesis": hypothesis, "target": target, "error": str(exc)},
            )
            return ConversionAttempt(hypothesis, target, "failed", error=str(exc)), None

        size = output.stat().st_size if output.exists() else 0
        if size < self._min_viable_bytes:
            logger.warning(
                "audio.transcode.output_too_small",
                extra={"hypothesis": hypothesis, "target": target, "size": size},
            )
            return ConversionAttempt(hypothesis, target, "undersized", output_size=size), None
        if size < self._quality_bytes:
            logger.warning(
                "audio.transcode.low_quality",
                extra={"hypothesis": hypothesis, "target": target, "size": size},
            )
            return ConversionAttempt(hypothesis, target, "low_quality", output_size=size), output
        return ConversionAttempt(hypothesis, target, "accepted", output_size=size), output


__all__ = [
    "CodecTarget",
    "ConversionStrategy",
    "InputHypothesis",
    "Transcoder",
    "TranscodeOutcome",
    "build_strategies",
    "compressed_target",
    "input_hypotheses",
    "pcm_target",
]
