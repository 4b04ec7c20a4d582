import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Optional

from app.core.context import current_scope
from app.core.settings import settings

# Extra attributes copied into the JSON line when a caller passes them.
AUDIT_FIELDS = ("action", "resource_type", "resource_id")


class RequestContextFilter(logging.Filter):
    """Stamp every record with the company, request and actor of the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        scope = current_scope()
        record.company_id = scope.tenant_id
        record.request_id = scope.request_id
        record.actor_id = scope.actor_id
        return True


class JsonFormatter(logging.Formatter):
    def __init__(self, channel: str = "app") -> None:
        super().__init__()
        self.channel = channel

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "channel": self.channel,
            "logger": record.name,
            "msg": record.getMessage(),
            "company_id": getattr(record, "company_id", "-"),
            "request_id": getattr(record, "request_id", "-"),
            "actor_id": getattr(record, "actor_id", "-"),
        }
        for field in AUDIT_FIELDS:
            if hasattr(record, field):
                line[field] = getattr(record, field)
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _stdout_handler(formatter: str, level: str) -> dict:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()
    app_logger = {"handlers": ["app"], "level": log_level, "propagate": False}
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {
                "app_json": {"()": JsonFormatter, "channel": "app"},
                "audit_json": {"()": JsonFormatter, "channel": "audit"},
            },
            "handlers": {
                "app": _stdout_handler("app_json", log_level),
                "audit": _stdout_handler("audit_json", log_level),
            },
            "loggers": {
                "": app_logger,
                "leadforge.audit": {"handlers": ["audit"], "level": log_level, "propagate": False},
                "uvicorn": app_logger,
                "uvicorn.error": app_logger,
                "uvicorn.access": app_logger,
                # SQL echo stays off unless something goes wrong.
                "sqlalchemy.engine": {"handlers": ["app"], "level": "WARNING", "propagate": False},
            },
        }
    )
    logging.getLogger(__name__).info(
        "logging ready env=%s tenancy=%s level=%s",
        settings.environment,
        settings.tenancy_mode,
        log_level,
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger("leadforge.audit")
