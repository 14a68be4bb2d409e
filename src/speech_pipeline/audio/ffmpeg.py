from __future__ import annotations

"""Thin asyncio wrapper around the ffmpeg command line tool."""

import asyncio
import contextlib
import logging
from typing import Sequence

from ..errors import TranscoderError
from ..settings import TranscoderSettings

logger = logging.getLogger(__name__)

_STDERR_TAIL = 1000


class FfmpegRunner:
    """Runs one ffmpeg command per call and raises ``TranscoderError`` on failure."""

    def __init__(self, *, binary: str = "ffmpeg", timeout: float | None = 60.0) -> None:
        self._binary = binary
        self._timeout = timeout

    @classmethod
    def from_settings(cls, cfg: TranscoderSettings) -> "FfmpegRunner":
        return cls(binary=cfg.ffmpeg_binary, timeout=cfg.timeout)

    @property
    def binary(self) -> str:
        return self._binary

    async def run(self, args: Sequence[str]) -> None:
        cmd = [self._binary, "-hide_banner", "-loglevel", "error", "-y", *args]
        logger.debug("ffmpeg.start", extra={"cmd": " ".join(cmd)})
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise TranscoderError(f"ffmpeg binary not found: {self._binary}") from exc
        except OSError as exc:
            raise TranscoderError(f"ffmpeg could not be started: {exc}") from exc

        try:
            async with asyncio.timeout(self._timeout):
                _, stderr = await proc.communicate()
        except TimeoutError as exc:
            raise TranscoderError(f"ffmpeg timed out after {self._timeout}s") from exc
        finally:
            # Reached on cancellation too; the child must not outlive the run.
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await asyncio.shield(proc.wait())

        if proc.returncode != 0:
            err_text = stderr.decode("utf-8", errors="ignore")[-_STDERR_TAIL:].strip()
            raise TranscoderError(
                f"ffmpeg exited with status {proc.returncode}: {err_text}",
                returncode=proc.returncode,
                stderr=err_text,
            )
