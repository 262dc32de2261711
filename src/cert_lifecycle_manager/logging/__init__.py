"""Logging configuration for cert_lifecycle_manager."""

from cert_lifecycle_manager.logging.config import (
    DEFAULT_LOG_FILE,
    configure_logging,
    get_logger,
    redact_secrets,
)

__all__ = ["DEFAULT_LOG_FILE", "configure_logging", "get_logger", "redact_secrets"]
