from __future__ import annotations

import logging
import logging.config
import re
from pathlib import Path

LOG_FILE_NAME = "autoreply.log"
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "werkzeug")
REDACTED = "***"

SECRET_FIELD = re.compile(
    r'(?P<key>"?(?:access_token|refresh_token|id_token|client_secret)"?\s*[:=]\s*"?)(?P<value>[^"&\s,}]+)'
)
AUTH_CODE_PARAM = re.compile(r"(?P<key>[?&]code=)(?P<value>[^&\s]+)")


class TokenRedactingFilter(logging.Filter):
    """Mask OAuth secrets that end up in log lines, e.g. from token payloads or callback URLs."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = AUTH_CODE_PARAM.sub(rf"\g<key>{REDACTED}", SECRET_FIELD.sub(rf"\g<key>{REDACTED}", message))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(log_dir: Path | None, level: str = "INFO") -> Path | None:
    """Configure the stdout logger and, when a directory is given, a rotating file log."""

    handlers: dict[str, dict] = {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "filters": ["redact"],
        },
    }
    log_path = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILE_NAME
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filters": ["redact"],
            "filename": str(log_path),
            "maxBytes": 1_000_000,
            "backupCount": 3,
            "encoding": "utf-8",
        }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact": {"()": TokenRedactingFilter},
        },
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "console": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "handlers": sorted(handlers),
            "level": level.upper(),
        },
    }

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured at %s (file: %s)", level, log_path)
    return log_path
