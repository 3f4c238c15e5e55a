"""
Journalisation JSON de l'opérateur Minikura.

Un seul fichier tournant (app.log) reçoit tous les loggers, y compris
l'accès HTTP (`minikura.access`) : le champ `logger` suffit à les séparer.
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import settings

_request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "minikura_request_id", default=None
)
_configured = False


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()


def set_request_id(request_id: str) -> contextvars.Token:
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


class JsonFormatter(logging.Formatter):
    """Une ligne JSON par enregistrement; `extra_fields` est fusionné à la racine."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": get_request_id(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)

        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def setup_logging() -> None:
    """Configure les loggers une seule fois (appelé à l'import de main)."""
    global _configured
    if _configured:
        return

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: Dict[str, Dict[str, Any]] = {
        "app_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": str(log_dir / "app.log"),
            "maxBytes": settings.LOG_MAX_BYTES,
            "backupCount": settings.LOG_BACKUP_COUNT,
            "encoding": "utf-8",
        },
    }
    if settings.LOG_ENABLE_CONSOLE:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": settings.LOG_LEVEL,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "json": {"()": "minikura.logging_config.JsonFormatter"},
            },
            "handlers": handlers,
            "loggers": {
                "minikura": {"level": settings.LOG_LEVEL},
                "minikura.access": {"level": "INFO"},
                # le client kubernetes journalise chaque requête en DEBUG
                "kubernetes": {"level": "WARNING"},
                "uvicorn.access": {"level": "INFO"},
            },
            "root": {"level": settings.LOG_LEVEL, "handlers": list(handlers)},
        }
    )
    logging.captureWarnings(True)

    logging.getLogger("minikura").info(
        "logging_initialized",
        extra={
            "extra_fields": {
                "log_dir": str(log_dir),
                "level": settings.LOG_LEVEL,
                "console_enabled": settings.LOG_ENABLE_CONSOLE,
            }
        },
    )
    _configured = True


__all__ = [
    "JsonFormatter",
    "get_request_id",
    "set_request_id",
    "reset_request_id",
    "setup_logging",
]
