import logging
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the ``extra={...}`` context of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_FIELDS}
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} {pairs}"


def setup_logger(level: str = "INFO", *, log_file: Optional[str] = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configures console logging (and optionally a log file) for the package.

    Returns the ``speech_pipeline`` logger.
    """
    formatter = ContextFormatter(fmt)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logging.basicConfig(level=level.upper(), handlers=[console])

    logger = logging.getLogger("speech_pipeline")
    logger.setLevel(level.upper())

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
