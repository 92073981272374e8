"""Logging setup and helpers for parsing the simple logging settings file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Settings

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "off": None,
}

_DEFAULT_KEYS = ("terminal", "stream", "speech")
_DEFAULT_LEVEL = "info"

# Logger namespaces controlled by each settings key
_AREA_LOGGERS = {
    "stream": ("speechstream.streaming", "speechstream.analysis_client"),
    "speech": ("speechstream.speech",),
}

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None
    stream_level: int | None
    speech_level: int | None


def _normalize_level(value: str) -> str:
    return value.strip().lower()


def _resolve_level(value: str) -> int | None:
    return _LEVEL_MAP.get(_normalize_level(value), _LEVEL_MAP[_DEFAULT_LEVEL])


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse the human-readable logging settings file."""

    levels: dict[str, int | None] = {
        key: _LEVEL_MAP[_DEFAULT_LEVEL] for key in _DEFAULT_KEYS
    }

    if path.exists():
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            normalized_key = key.lower()
            if normalized_key in _DEFAULT_KEYS:
                levels[normalized_key] = _resolve_level(value)

    return LoggingSettings(
        terminal_level=levels["terminal"],
        stream_level=levels["stream"],
        speech_level=levels["speech"],
    )


def configure_logging(settings: "Settings") -> LoggingSettings:
    """Configure root and per-area logging from settings and the levels file."""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    area_levels = parse_logging_settings(settings.logging_settings_path)

    handlers: list[logging.Handler] = []
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    if area_levels.terminal_level is None:
        console_handler.setLevel(logging.CRITICAL + 1)
    else:
        console_handler.setLevel(area_levels.terminal_level)
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    logging.getLogger("speechstream").setLevel(log_level)

    for area, level in (
        ("stream", area_levels.stream_level),
        ("speech", area_levels.speech_level),
    ):
        for name in _AREA_LOGGERS[area]:
            area_logger = logging.getLogger(name)
            area_logger.setLevel(logging.CRITICAL + 1 if level is None else level)

    # httpx logs every request at INFO
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    return area_levels


__all__ = ["LoggingSettings", "configure_logging", "parse_logging_settings"]
