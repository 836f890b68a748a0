# Structured logging with multi-channel support
from typing import Optional, Dict, Any

import structlog

from core.config.settings import Settings
from .channels import LogChannel
from .enhanced_logging import (
    configure_enhanced_logging,
    get_enhanced_logger,
    get_channel_logger,
    get_logging_statistics,
)


def configure_logging(settings: Settings, force: bool = False) -> None:
    """Configure logging system (idempotent unless ``force`` is set)."""
    configure_enhanced_logging(settings, force=force)


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return get_enhanced_logger(name, component)


def get_statistics() -> Dict[str, Any]:
    """Get logging system statistics."""
    return get_logging_statistics()


def get_trading_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a trading logger."""
    return get_channel_logger(name, LogChannel.TRADING)


def get_api_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an API logger."""
    return get_channel_logger(name, LogChannel.API)


def get_audit_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an audit logger."""
    return get_channel_logger(name, LogChannel.AUDIT)


def get_error_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an error logger."""
    return get_channel_logger(name, LogChannel.ERROR)


__all__ = [
    "LogChannel",
    "configure_logging",
    "get_logger",
    "get_statistics",
    "get_channel_logger",
    "get_trading_logger_safe",
    "get_api_logger_safe",
    "get_audit_logger_safe",
    "get_error_logger_safe",
]
