"""
Structured Logging for the Sveti API

- Color-coded log levels (when attached to a terminal)
- Pretty printing of request/response payloads
- Section separators around each chat turn
"""

import json
import logging
import sys
from datetime import datetime
from pprint import pformat
from typing import Any, Dict, Optional


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    DEBUG = '\033[36m'      # Cyan
    INFO = '\033[32m'       # Green
    WARNING = '\033[33m'    # Yellow
    ERROR = '\033[31m'      # Red
    CRITICAL = '\033[35m'   # Magenta

    SECTION = '\033[94m'    # Bright Blue
    SUBSECTION = '\033[96m' # Bright Cyan
    KEY = '\033[93m'        # Bright Yellow
    TIMESTAMP = '\033[90m'  # Dark Gray


LEVEL_COLORS = {
    'DEBUG': Colors.DEBUG,
    'INFO': Colors.INFO,
    'WARNING': Colors.WARNING,
    'ERROR': Colors.ERROR,
    'CRITICAL': Colors.CRITICAL,
}


class ColoredFormatter(logging.Formatter):
    """Formatter with colors and an icon per logger/level."""

    ICONS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    # Keyed on the last component of the logger name
    SECTION_ICONS = {
        'main': '🌐',
        'tutor': '🎓',
        'conversation_store': '💾',
        'personalization_gate': '🎮',
        'completion_client': '🤖',
        'storage': '🗄️',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        icon = self.SECTION_ICONS.get(record.name.split('.')[-1], self.ICONS.get(record.levelname, '•'))
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        if self.use_colors:
            level_color = LEVEL_COLORS.get(record.levelname, Colors.RESET)
            reset, ts_color, bold = Colors.RESET, Colors.TIMESTAMP, Colors.BOLD
        else:
            level_color = reset = ts_color = bold = ''

        message = record.getMessage()
        stripped = message.strip()
        if stripped.startswith('{') or stripped.startswith('['):
            try:
                message = f"\n{pformat(json.loads(stripped), indent=2, width=100)}"
            except ValueError:
                pass

        formatted = (
            f"{ts_color}[{timestamp}]{reset} "
            f"{icon} {level_color}{record.levelname:8s}{reset} "
            f"{bold}{record.name}{reset} | {message}"
        )
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


def format_data(data: Any, indent: int = 2) -> str:
    """Indent nested dicts/lists for log output; long lists are truncated."""
    pad = ' ' * indent
    closing = ' ' * (indent - 2)
    if isinstance(data, dict):
        lines = [f"{pad}{key}: {format_data(value, indent + 2)}" for key, value in data.items()]
        return "{\n" + "\n".join(lines) + f"\n{closing}}}"
    if isinstance(data, list):
        items = [format_data(item, indent + 2) for item in data[:5]]
        if len(data) > 5:
            items.append(f"... ({len(data)} items total)")
        return "[\n" + ",\n".join(f"{pad}{item}" for item in items) + f"\n{closing}]"
    return str(data)


class StructuredLogger:
    """Logger wrapper with sections and optional structured data."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    def _with_data(self, message: str, data: Optional[Dict[str, Any]]) -> str:
        return f"{message}\n{format_data(data)}" if data else message

    def section(self, title: str, data: Optional[Dict[str, Any]] = None):
        """Log a visible separator block, e.g. at the start of a chat turn."""
        separator = "=" * 80
        self.logger.info(self._with_data(f"\n{separator}\n📋 {title.upper()}\n{separator}", data))

    def subsection(self, title: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(f"→ {title}", data))

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.debug(self._with_data(message, data))

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(message, data))

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.warning(self._with_data(message, data))

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        """Log an error with exception info and optional data."""
        error_info = f" Error: {type(error).__name__}: {error}" if error else ""
        self.logger.error(self._with_data(f"{message}{error_info}", data), exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(f"✅ {message}", data))

    def request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(f"📥 REQUEST: {method} {path}", data))

    def response(self, status: int, path: str, duration: Optional[float] = None, data: Optional[Dict[str, Any]] = None):
        payload = {"status": status, "duration_ms": f"{duration * 1000:.2f}" if duration is not None else None}
        if data:
            payload.update(data)
        self.logger.info(self._with_data(f"📤 RESPONSE: {status} {path}", payload))


def setup_logging(level: int = logging.INFO, use_colors: bool = True):
    """Replace root handlers with a single colored console handler."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress noisy loggers
    for noisy in ('asyncio', 'httpx', 'httpcore', 'openai', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name, logging.getLogger(name))
