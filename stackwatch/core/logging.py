"""Structured logging configuration with stack name tracking."""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import settings


# Context variable for the stack currently being watched
stack_name_var: ContextVar[Optional[str]] = ContextVar("stack_name", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        stack_name = stack_name_var.get()
        if stack_name:
            log_data["stack"] = stack_name

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add source location in debug mode
        if settings.debug:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for pipeline consoles."""

    def format(self, record: logging.LogRecord) -> str:
        stack_name = stack_name_var.get()
        stack = f"[{stack_name}] " if stack_name else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:8} {stack}{record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class SensitiveDataFilter(logging.Filter):
    """Filter credential material from logs."""

    SENSITIVE_KEYS = {
        "password",
        "token",
        "secret",
        "authorization",
        "docker_tls_key",
        "docker_tls_cert",
        "docker_tls_ca_cert",
    }

    PEM_BLOCK = re.compile(
        r"-----BEGIN [A-Z ]+-----.*?-----END [A-Z ]+-----", re.DOTALL
    )

    def filter(self, record: logging.LogRecord) -> bool:
        text = str(record.msg)
        if "-----BEGIN" in text:
            text = self.PEM_BLOCK.sub("[REDACTED PEM]", text)
        lowered = text.lower()
        for key in self.SENSITIVE_KEYS:
            if key in lowered:
                text = self._redact_value(text, key)
        record.msg = text
        return True

    def _redact_value(self, text: str, key: str) -> str:
        """Redact values after sensitive keys."""
        # Match patterns like "key=value" or "key: value" or "'key': 'value'"
        patterns = [
            rf'({key}\s*[=:]\s*)[^\s,}}\]]+',
            rf"('{key}'\s*:\s*)[^\s,}}\]]+",
            rf'("{key}"\s*:\s*)[^\s,}}\]]+',
        ]
        for pattern in patterns:
            text = re.sub(pattern, r"\1[REDACTED]", text, flags=re.IGNORECASE)
        return text


def setup_logging() -> None:
    """Configure watcher logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, settings.log_level))

    if settings.log_format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter())

    handler.addFilter(SensitiveDataFilter())

    root_logger.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the stackwatch prefix."""
    return logging.getLogger(f"stackwatch.{name}")
