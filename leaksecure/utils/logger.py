"""Logging configuration for Leak Secure."""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional

# Secret-shaped substrings that must never reach a log sink
_SECRET_PATTERNS = [
    re.compile(
        r"(?:password|passwd|pwd|secret|token|key|credential|api[_-]?key)\s*[=:]\s*['\"]?([^'\"\s]{8,})['\"]?",
        re.IGNORECASE,
    ),
    re.compile(r"(?:ghp_|gho_|ghu_|ghs_|ghr_)[A-Za-z0-9]{36}", re.IGNORECASE),
    re.compile(r"AKIA[0-9A-Z]{16}", re.IGNORECASE),
    re.compile(r"sk_live_[0-9a-zA-Z]{24,}", re.IGNORECASE),
    re.compile(r"AIza[0-9A-Za-z_-]{35}", re.IGNORECASE),
    re.compile(r"xox[baprs]-[0-9a-zA-Z-]{10,48}", re.IGNORECASE),
    re.compile(
        r"-----BEGIN\s+(RSA\s+)?PRIVATE\s+KEY-----[\s\S]*?-----END\s+(RSA\s+)?PRIVATE\s+KEY-----",
        re.IGNORECASE,
    ),
]

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _mask(match: re.Match) -> str:
    text = match.group(0)
    if len(text) <= 8:
        return "****"
    return f"{text[:4]}****{text[-4:]}"


def redact_secrets(message: str) -> str:
    """Mask secret-shaped substrings in a log message."""
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(_mask, message)
    return message


class SecretRedactingFilter(logging.Filter):
    """Rewrites records so that message, arguments and extras carry no secrets."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = ()
        for key, value in list(vars(record).items()):
            if key not in _RESERVED_ATTRS and isinstance(value, str):
                setattr(record, key, redact_secrets(value))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stack traces omitted."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS
        }
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            entry["error"] = {"name": type(error).__name__, "message": redact_secrets(str(error))}
        return json.dumps(entry, default=str)


def get_logger(name: str, level: Optional[str] = None, json_format: bool = False) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit structured JSON instead of readable lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if no handlers exist
    if not logger.handlers:
        log_level = getattr(logging, level.upper() if level else "INFO")
        logger.setLevel(log_level)

        # Logs go to stderr so stdout stays free for reports
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(log_level)
        handler.addFilter(SecretRedactingFilter())

        if json_format:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        logger.addHandler(handler)

    return logger


def configure_logging(level: Optional[str] = None, production: bool = True) -> logging.Logger:
    """Configure the package root logger; module loggers propagate to it."""
    if level == "WARN":
        level = "WARNING"
    return get_logger("leaksecure", level=level, json_format=production)
