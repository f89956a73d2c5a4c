import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

# Libraries that log through the standard library; their records are routed into loguru.
_INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "socketio", "engineio")

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"

# The chat client writes replies to stdout, so by default it logs to a file only.
_DEFAULT_SINKS: dict[str, list[dict[str, Any]]] = {
    "server": [{"type": "console"}, {"type": "file", "path": "relay-server.log"}],
    "client": [{"type": "file", "path": "relay-chat.log"}],
}


@dataclass(frozen=True)
class LogSink:
    kind: str
    level: str
    path: str = "relay.log"
    rotation: str = "10 MB"
    retention: int = 3
    colorize: bool | None = None

    @classmethod
    def from_config(cls, entry: dict[str, Any], default_level: str) -> "LogSink":
        kind = entry.get("type", "")
        if kind not in ("console", "file"):
            raise ValueError(f"Unknown log consumer type: {kind!r}")
        options = {k: v for k, v in entry.items() if k in ("path", "rotation", "retention", "colorize")}
        return cls(kind=kind, level=entry.get("level", default_level), **options)

    def attach(self) -> str:
        if self.kind == "console":
            logger.add(sys.stderr, level=self.level, colorize=self.colorize, format=_CONSOLE_FORMAT)
            return f"console (stderr, {self.level})"

        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self.path,
            level=self.level,
            format=_FILE_FORMAT,
            rotation=self.rotation,
            retention=self.retention,
        )
        return f"file ({self.path}, {self.level})"


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_stdlib_logging() -> None:
    handler = InterceptHandler()
    for name in _INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    process: str = "server",
) -> list[str]:
    """Replace loguru's default sink with the configured ones.

    ``consumers`` of ``None`` selects the defaults for ``process`` ("server" or
    "client"). Returns a description of each attached sink.
    """
    logger.remove()

    entries = consumers if consumers is not None else _DEFAULT_SINKS[process]
    descriptions: list[str] = []
    for entry in entries:
        try:
            sink = LogSink.from_config(entry, level)
        except ValueError as ex:
            logger.warning(str(ex))
            continue
        descriptions.append(sink.attach())

    intercept_stdlib_logging()
    return descriptions
