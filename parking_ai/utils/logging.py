"""
Structured logging utilities for the parking pattern engine
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union


class StructuredLogger:
    """
    Structured logger that outputs human-readable logs while preserving context.

    Context passed as keyword arguments is rendered as sorted ``key=value``
    pairs after the message, e.g.::

        logger.info("Pattern reinforced", pattern_id="pattern_1a2b", frequency=4)
        # [2025-01-01 09:00:00] INFO Pattern reinforced | frequency=4 pattern_id=pattern_1a2b
    """

    def __init__(
        self,
        name: str,
        log_file: Optional[Path] = None,
        level: Union[int, str] = logging.INFO
    ):
        """
        Initialize structured logger

        Args:
            name: Logger name
            log_file: Optional log file path
            level: Logging level (int or level name)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(file_handler)

    def log(
        self,
        level: str,
        message: str,
        **context: Any
    ) -> None:
        """
        Log message with structured context

        Args:
            level: Log level ("debug", "info", "warning", "error", "critical")
            message: Log message
            **context: Additional context fields
        """
        method = getattr(self.logger, level.lower())
        if not self.logger.isEnabledFor(logging.getLevelName(level.upper())):
            return

        formatted_context = self._format_context(context)
        method(message if not formatted_context else f"{message} | {formatted_context}")

    def debug(self, message: str, **context: Any) -> None:
        self.log("debug", message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log("info", message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log("warning", message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log("error", message, **context)

    def critical(self, message: str, **context: Any) -> None:
        self.log("critical", message, **context)

    @staticmethod
    def _format_context_value(value: Any) -> str:
        """Return a readable string for context values."""
        if isinstance(value, str):
            return value if " " not in value else f"\"{value}\""
        if isinstance(value, float):
            return f"{value:.4g}"
        if isinstance(value, (int, bool)) or value is None:
            return str(value)
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except TypeError:
            return repr(value)

    def _format_context(self, context: Dict[str, Any]) -> str:
        """Return formatted key=value pairs for log context."""
        if not context:
            return ""

        return " ".join(
            f"{key}={self._format_context_value(value)}"
            for key, value in sorted(context.items())
        )


class StructuredFormatter(logging.Formatter):
    """Formatter that provides consistent human-friendly output."""

    def __init__(self) -> None:
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# Named logger cache
_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str = "parking_ai") -> StructuredLogger:
    """
    Get a cached logger instance

    The level comes from ``settings.log_level`` the first time a name is seen.

    Args:
        name: Logger name

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        from parking_ai.config.settings import settings

        _loggers[name] = StructuredLogger(name, level=settings.log_level.upper())

    return _loggers[name]
