"""Transcribe a saved audio file from the command line.

Usage::

    speech-pipeline recording.webm
    python -m speech_pipeline --log-level DEBUG payload.json
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .errors import AudioPipelineError
from .pipeline import TranscriptionPipeline
from .settings import load_settings
from .utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="speech-pipeline", description="Transcribe a saved audio payload")
    parser.add_argument("path", help="file holding the raw payload (audio or JSON envelope)")
    parser.add_argument("--log-level", default="WARNING", help="logging level (default: WARNING)")
    parser.add_argument("--log-file", default=None, help="also write logs to this file")
    return parser


async def _transcribe_file(path: Path) -> str:
    pipeline = TranscriptionPipeline.from_settings(load_settings())
    try:
        return await pipeline.transcribe(path.read_bytes())
    finally:
        await pipeline.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger(args.log_level, log_file=args.log_file)

    path = Path(args.path)
    if not path.is_file():
        print(f"file not found: {path}", file=sys.stderr)
        return 1

    logger.info("cli.load", extra={"path": str(path), "bytes": path.stat().st_size})
    try:
        text = asyncio.run(_transcribe_file(path))
    except AudioPipelineError as exc:
        print(f"transcription failed: {exc}", file=sys.stderr)
        return 1

    print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
