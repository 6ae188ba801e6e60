"""
Log formatter rendering level colors, structured extra fields, process id,
logger name and optional code location.
"""

import logging
import os
import re

from .colors import ColorManager
from .config import LogConfig
from .constants import LogConstants

# Pattern to match ANSI escape sequences
_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def _visual_len(text: str) -> int:
    """Calculate visual width of text, excluding ANSI escape codes."""
    if "\x1b" not in text:
        return len(text)
    return len(_ANSI_PATTERN.sub("", text))


def _escape(value: object) -> str:
    """Escape % so field values survive the logging format pass."""
    return str(value).replace("%", "%%")


def _render_value(value: object) -> str:
    if isinstance(value, BaseException):
        return value.__class__.__name__ + ": " + str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class PreFormatter(logging.Formatter):
    """Standard formatter with optional microsecond timestamps."""

    def __init__(self, fmt: str, micros: bool) -> None:
        self._micros = micros
        super().__init__(fmt)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record)
        if self._micros:
            micros = int((record.created % 1) * 1000000) % 1000
            s += f".{micros:03d}"
        return s


class LogFormatter(logging.Formatter):
    """
    Log formatter with colored output and structured field formatting.

    Output layout:
        [12:34:56,789] [I] server started       [pid:4242] [1234] [/worker]

    Extra fields passed via ``extra={...}`` are rendered as ``[key:value]``
    in sorted key order, after the message, padded to a fixed column.
    """

    def __init__(self, config: LogConfig) -> None:
        self._config = config
        self._pre_formatter = PreFormatter(LogConstants.DEFAULT_FORMAT, config.micros)

    @property
    def config(self) -> LogConfig:
        return self._config

    def format(self, record: logging.LogRecord) -> str:
        width = self._calculate_width(record)
        if self._config.colors:
            fmt = self._format_colored(record, width)
        else:
            fmt = self._format_plain(record, width)

        self._pre_formatter._fmt = fmt
        self._pre_formatter._style._fmt = fmt
        return self._pre_formatter.format(record)

    def _calculate_width(self, record: logging.LogRecord) -> int:
        """Display width of "[timestamp] [L] message"."""
        timestamp_len = 16 if self._config.micros else 12
        return 1 + timestamp_len + 4 + 1 + 2 + _visual_len(record.getMessage())

    def _padding(self, width: int) -> str:
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        return " " * max(1, rule - width)

    def _fields(self, record: logging.LogRecord) -> list[tuple[str, str]]:
        extra = getattr(record, "__harness__extra", None)
        if not extra:
            return []
        return [(key, _escape(_render_value(extra[key]))) for key in sorted(extra)]

    def _format_plain(self, record: logging.LogRecord, width: int) -> str:
        fmt = LogConstants.DEFAULT_FORMAT + self._padding(width)
        fields = self._fields(record)
        if fields:
            fmt += " ".join(f"[{k}:{v}]" for k, v in fields) + " "
        fmt += "[%(process)d] [%(name)s]"
        fmt += self._render_location(record)
        return fmt

    def _format_colored(self, record: logging.LogRecord, width: int) -> str:
        col = ColorManager.get_color_for_level(record.levelno)
        bold = ColorManager.create_bold_color(col)
        col += "m"
        reset = ColorManager.RESET

        fmt = col + "[%(asctime)s] [" + bold + "%(levelname).1s" + reset + col + "] "
        fmt += bold + "%(message)s" + reset + col + self._padding(width)

        for key, value in self._fields(record):
            fmt += f"{key}[{bold}{value}{reset}{col}] "

        gray = ColorManager.create_gray_level(9) + "m"
        fmt += reset + gray + "[%(process)d] [%(name)s]"
        fmt += self._render_location(record)
        return fmt + reset

    def _render_location(self, record: logging.LogRecord) -> str:
        if not self._config.location:
            return ""
        name = "./" + os.path.relpath(record.pathname, os.getcwd())
        return f" [{name}:{record.lineno}]"
