"""Structured logging for the certificate lifecycle library.

Modules obtain their logger through :func:`get_logger`. Nothing is emitted
beyond the host application's own logging setup until it calls
:func:`configure_logging`, which attaches handlers to the package logger
only, so the host's root logger is left alone.

Credentials never reach a handler: :func:`redact_secrets` runs in every
processor chain and masks API keys, including the service's API key header.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from pydantic import SecretStr

PACKAGE_LOGGER = "cert_lifecycle_manager"
DEFAULT_LOG_FILE = Path.home() / ".local" / "state" / "certlm" / "certlm.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

REDACTED = "**********"
SECRET_KEYS = frozenset({"api_key", "apikey", "tppl-api-key", "authorization", "password"})


def _mask(key: str, value: Any) -> Any:
    if key.lower() in SECRET_KEYS or isinstance(value, SecretStr):
        return REDACTED
    if isinstance(value, Mapping):
        return {k: _mask(str(k), v) for k, v in value.items()}
    return value


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask credential values in an event, including inside nested mappings.

    Keys are matched case-insensitively against SECRET_KEYS, so header maps
    such as ``headers={"tppl-api-key": ...}`` are covered. SecretStr values
    are masked under any key.
    """
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        event_dict[key] = _mask(key, value)
    return event_dict


_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    redact_secrets,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    try:
        return logging.getLevelNamesMapping()[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_SHARED_PROCESSORS,
    )


def configure_logging(
    level: int | str = logging.WARNING,
    json_output: bool = False,
    log_file: Path | None = None,
) -> None:
    """Route library logs to stderr and, optionally, a rotating JSON file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Minimum level, as a ``logging`` constant or a name like ``"debug"``.
        json_output: Render console logs as JSON instead of colored key/value text.
        log_file: Rotating file to also write JSON logs to (10MB max, 5 backups);
            DEFAULT_LOG_FILE is the conventional location.
    """
    log_level = _resolve_level(level)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stderr)
    if json_output:
        console_handler.setFormatter(_json_formatter())
    else:
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(
                    colors=sys.stderr.isatty(),
                    exception_formatter=structlog.dev.RichTracebackFormatter(
                        show_locals=log_level <= logging.DEBUG,
                    ),
                ),
                foreign_pre_chain=_SHARED_PROCESSORS,
            )
        )
    package_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT
        )
        file_handler.setFormatter(_json_formatter())
        package_logger.addHandler(file_handler)


def get_logger(name: str, **initial_context: Any) -> Any:
    """Get a lazily configured logger.

    Safe to call at import time: the logger picks up whatever
    :func:`configure_logging` installs later.

    Args:
        name: Dotted module name, normally ``__name__``.
        **initial_context: Key/value pairs added to every event.
    """
    return structlog.get_logger(name, **initial_context)
