"""Console and file logging for vitestgpt.

Console lines come in three shapes, picked from the CLI flags:
- human:   [INFO] Entering Write stage
- verbose: [INFO][14:02:11] Entering Write stage
- json:    {"level": "INFO", "ts": "...", "logger": "vitestgpt", "msg": "..."}

``--log-file`` adds a second handler that records everything at DEBUG level,
including every prompt sent to the LLM and every reply.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, TextIO

LOGGER_NAME = "vitestgpt"

_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[31m",
}


class LogMode(Enum):
    """Console output shape."""

    HUMAN = "human"
    VERBOSE = "verbose"
    JSON = "json"

    @classmethod
    def from_flags(cls, verbose: bool = False, ci: bool = False) -> "LogMode":
        if ci:
            return cls.JSON
        if verbose:
            return cls.VERBOSE
        return cls.HUMAN


class ConsoleFormatter(logging.Formatter):
    """``[LEVEL]`` prefixed lines, optionally timestamped and colored."""

    def __init__(self, timestamps: bool = False, use_colors: bool = False) -> None:
        super().__init__()
        self.timestamps = timestamps
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        tag = f"[{record.levelname}]"
        if self.use_colors:
            tag = f"{LEVEL_COLORS.get(record.levelno, _RESET)}{tag}{_RESET}"
        if self.timestamps:
            tag += datetime.fromtimestamp(record.created).strftime("[%H:%M:%S]")

        line = f"{tag} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per line; structured fields are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(getattr(record, "extra_data", {}))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class VitestGPTLogger(logging.Logger):
    """Logger whose records can carry structured fields for JSON output."""

    def structured(self, level: int, msg: str, **fields: Any) -> None:
        """Log ``msg`` with ``fields`` attached as ``record.extra_data``."""
        if self.isEnabledFor(level):
            self.log(level, msg, extra={"extra_data": fields}, stacklevel=2)


logging.setLoggerClass(VitestGPTLogger)


def get_logger(name: str = LOGGER_NAME) -> VitestGPTLogger:
    """Return the package logger (or a child of it)."""
    return logging.getLogger(name)  # type: ignore[return-value]


def _supports_color(stream: TextIO) -> bool:
    return hasattr(stream, "isatty") and stream.isatty()


def setup_logging(
    mode: LogMode = LogMode.HUMAN,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    log_file: Path | None = None,
) -> None:
    """Replace the package logger's handlers.

    Args:
        mode: Console output shape
        level: Minimum console level
        stream: Console stream (default: stdout)
        log_file: Optional file receiving every record at DEBUG level
    """
    stream = stream or sys.stdout
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if log_file else level)

    if mode is LogMode.JSON:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ConsoleFormatter(
            timestamps=mode is LogMode.VERBOSE,
            use_colors=_supports_color(stream),
        )

    console = logging.StreamHandler(stream)
    console.setFormatter(formatter)
    console.setLevel(level)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(ConsoleFormatter(timestamps=True))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)


def configure_from_cli(
    verbose: bool = False,
    quiet: bool = False,
    ci: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging from the global CLI flags.

    ``--quiet`` wins over ``--verbose`` for the console level.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    setup_logging(mode=LogMode.from_flags(verbose=verbose, ci=ci), level=level, log_file=log_file)
