from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from types import TracebackType
from typing import Optional

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return f"{time.time_ns()}_{uuid.uuid4().hex[:8]}"


class TempResourceTracker:
    """Owns every temporary file written during one pipeline run.

    Use as a context manager; all registered paths are removed on exit,
    whatever the outcome of the block. Removal errors are logged and never
    replace the exception already in flight.
    """

    def __init__(self, base_dir: str | Path, *, run_id: Optional[str] = None) -> None:
        self._base_dir = Path(base_dir)
        self._run_id = run_id or new_run_id()
        self._paths: list[Path] = []
        self._counter = 0

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def allocate(self, stem: str, suffix: str) -> Path:
        """Reserve a unique path for an artifact and start tracking it."""

        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._counter += 1
        path = self._base_dir / f"{stem}_{self._run_id}_{self._counter}{suffix}"
        return self.register(path)

    def register(self, path: str | Path) -> Path:
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
        return path

    def write_bytes(self, stem: str, suffix: str, data: bytes) -> Path:
        path = self.allocate(stem, suffix)
        path.write_bytes(data)
        return path

    def cleanup(self) -> None:
        removed = 0
        while self._paths:
            path = self._paths.pop()
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as exc:
                logger.warning("audio.cleanup.failed", extra={"path": str(path), "error": str(exc)})
        logger.debug("audio.cleanup.done", extra={"run_id": self._run_id, "removed": removed})

    def __enter__(self) -> "TempResourceTracker":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.cleanup()
