import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Dict, Any, MutableMapping, Tuple

from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from seacan.common.config.settings import Settings


ROOT_LOGGER = "seacan"
LOG_FILE_NAME = "seacan.log"

# Extra attributes copied from records into JSON output when present.
CONTEXT_FIELDS = ("package", "build_mode", "target", "artifact", "line_number")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_record[name] = value

        if record.exc_info and "exception" not in log_record:
            log_record["exception"] = self.formatException(record.exc_info)


def _file_handler(log_dir: str, level: str, formatter: str) -> Dict[str, Any]:
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "filename": str(path / LOG_FILE_NAME),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 3,
        "formatter": formatter,
    }


def get_logging_config(
    log_level: str = "INFO",
    json_format: bool = True,
    log_dir: Optional[str] = None
) -> Dict[str, Any]:
    """Build a ``dictConfig`` mapping for the ``seacan`` logger tree.

    Records go to stderr, since stdout of the calling process may itself be
    machine-read. A rotating file handler is added when ``log_dir`` is set.
    """
    formatter = "json" if json_format else "plain"
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "stream": "ext://sys.stderr",
            "formatter": formatter,
        }
    }
    if log_dir:
        handlers["file"] = _file_handler(log_dir, log_level, formatter)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                "datefmt": "%H:%M:%S",
            },
            "json": {
                "()": CustomJsonFormatter,
                "format": "%(level)s %(name)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER: {
                "handlers": list(handlers),
                "level": log_level,
                "propagate": False,
            },
        },
    }


def configure_logging(settings: Optional["Settings"] = None) -> None:
    if settings is None:
        from seacan.common.config.settings import get_settings
        settings = get_settings()

    logging.config.dictConfig(get_logging_config(
        log_level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.log_json,
        log_dir=settings.log_dir,
    ))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose context is merged into, not replacing, per-call extras."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_build_logger(
    package: str,
    build_mode: Optional[str] = None,
    target: Optional[str] = None
) -> LoggerAdapter:
    context = {"package": package, "build_mode": build_mode, "target": target}
    return LoggerAdapter(
        get_logger(f"{ROOT_LOGGER}.build"),
        {key: value for key, value in context.items() if value},
    )


def get_listing_logger(artifact: str) -> LoggerAdapter:
    return LoggerAdapter(get_logger(f"{ROOT_LOGGER}.listing"), {"artifact": artifact})
