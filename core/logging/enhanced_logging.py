# Enhanced structured logging with multi-channel support
import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Dict, List, Optional, Any
import structlog

from core.config.settings import Settings
from .channels import (
    LogChannel,
    get_channel_for_component,
    get_channel_config,
    create_log_directory_structure,
    get_channel_statistics
)

# Global logger manager instance
_logger_manager: Optional['EnhancedLoggerManager'] = None


class ChannelFilter(logging.Filter):
    """Filter that routes records to a handler only if they match a channel.

    structlog hands the event dict to stdlib as ``record.msg``; its
    ``channel`` key must match ``expected_channel``. Records without a channel
    are accepted only from the allowed third-party logger name prefixes, or
    unconditionally when ``accept_unlabelled`` is set.
    """

    def __init__(self, expected_channel: str, allowed_logger_prefixes: Optional[list[str]] = None,
                 accept_unlabelled: bool = False):
        super().__init__()
        self.expected_channel = expected_channel
        self.allowed_logger_prefixes = allowed_logger_prefixes or []
        self.accept_unlabelled = accept_unlabelled

    def filter(self, record: logging.LogRecord) -> bool:
        ch = record.msg.get("channel") if isinstance(record.msg, dict) else getattr(record, "channel", None)
        if ch is not None:
            return str(ch) == self.expected_channel
        if self.accept_unlabelled:
            return True
        name = getattr(record, "name", "")
        for prefix in self.allowed_logger_prefixes:
            if name.startswith(prefix):
                return True
        return False


class EnhancedLoggerManager:
    """Logging manager with multi-channel support and configurable formats."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.channel_handlers: Dict[LogChannel, logging.Handler] = {}
        self._installed_handlers: List[logging.Handler] = []

        self._setup_logging()

    def _setup_logging(self) -> None:
        """Setup logging with configurable formats."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self._level(self.settings.logging.level))

        if self.settings.logging.console_enabled:
            self._setup_console_logging()

        if self.settings.logging.file_enabled:
            create_log_directory_structure(self.settings.logs_dir)
            self._setup_file_logging()
            if self.settings.logging.multi_channel_enabled:
                self._setup_multi_channel_logging()

        self._configure_structlog()

    @staticmethod
    def _level(name: str) -> int:
        return getattr(logging, name.upper(), logging.INFO)

    def _formatter(self, json_format: bool) -> logging.Formatter:
        foreign_chain = [
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
        ]
        processor = (
            structlog.processors.JSONRenderer(ensure_ascii=False)
            if json_format
            else structlog.dev.ConsoleRenderer()
        )
        return structlog.stdlib.ProcessorFormatter(
            processor=processor,
            foreign_pre_chain=foreign_chain,
        )

    def _install(self, handler: logging.Handler) -> None:
        logging.getLogger().addHandler(handler)
        self._installed_handlers.append(handler)

    def _setup_console_logging(self) -> None:
        """Setup console logging with configurable format."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self._level(self.settings.logging.level))
        console_handler.setFormatter(self._formatter(self.settings.logging.console_json_format))
        self._install(console_handler)

    def _setup_file_logging(self) -> None:
        """Setup the combined application log file."""
        log_file = Path(self.settings.logs_dir) / "team_ledger.log"

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=self._parse_size(self.settings.logging.file_max_size),
            backupCount=self.settings.logging.file_backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(self._level(self.settings.logging.level))
        file_handler.setFormatter(self._formatter(self.settings.logging.json_format))
        self._install(file_handler)

    def _setup_multi_channel_logging(self) -> None:
        """Setup multi-channel logging with dedicated files."""
        for channel in LogChannel:
            config = get_channel_config(channel)
            handler = self._create_channel_handler(channel, config)
            self.channel_handlers[channel] = handler
            self._install(handler)

    def _create_channel_handler(self, channel: LogChannel, config) -> logging.Handler:
        """Create a file handler for a specific channel."""
        handler = logging.handlers.RotatingFileHandler(
            filename=config.file_path(self.settings.logs_dir),
            maxBytes=self._parse_size(config.max_bytes),
            backupCount=config.backup_count,
            encoding="utf-8"
        )
        handler.setLevel(self._level(config.level))
        handler.setFormatter(self._formatter(self.settings.logging.json_format))

        # Error channel collects every ERROR+ record regardless of channel
        if channel != LogChannel.ERROR:
            allowed_prefixes = ["uvicorn", "fastapi", "starlette"] if channel == LogChannel.API else []
            handler.addFilter(ChannelFilter(
                expected_channel=channel.value,
                allowed_logger_prefixes=allowed_prefixes,
                accept_unlabelled=channel == LogChannel.APPLICATION,
            ))

        return handler

    def _parse_size(self, size_str: str) -> int:
        """Parse size string (e.g., '100MB') to bytes."""
        size_str = size_str.upper()

        if size_str.endswith("B"):
            size_str = size_str[:-1]

        multipliers = {
            "K": 1024,
            "M": 1024 * 1024,
            "G": 1024 * 1024 * 1024,
        }

        for suffix, multiplier in multipliers.items():
            if size_str.endswith(suffix):
                return int(float(size_str[:-1]) * multiplier)

        return int(size_str)

    def _configure_structlog(self) -> None:
        """Configure structlog with appropriate processors."""

        def add_standard_context(logger, name, event_dict):
            """Bind standard context fields once from settings."""
            event_dict.setdefault('env', self.settings.environment.value)
            event_dict.setdefault('service', self.settings.app_name)
            event_dict.setdefault('version', self.settings.version)
            return event_dict

        keys_to_redact = {key.lower() for key in self.settings.logging.redact_keys}

        def redact_sensitive(logger, name, event_dict):
            """Redact sensitive top-level fields."""
            for key in list(event_dict):
                if key.lower() in keys_to_redact:
                    event_dict[key] = '[REDACTED]'
            return event_dict

        processors = [
            add_standard_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_sensitive,
            # Defer final rendering to handlers via ProcessorFormatter
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def close(self) -> None:
        """Detach and close every handler this manager installed."""
        root_logger = logging.getLogger()
        for handler in self._installed_handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._installed_handlers.clear()
        self.channel_handlers.clear()

    def get_statistics(self) -> Dict[str, Any]:
        """Get logging statistics."""
        stats = {
            "multi_channel_enabled": self.settings.logging.multi_channel_enabled,
            "file_logging_enabled": self.settings.logging.file_enabled,
            "console_logging_enabled": self.settings.logging.console_enabled,
            "json_format": self.settings.logging.json_format,
            "logs_directory": self.settings.logs_dir,
            "installed_handlers": len(self._installed_handlers),
        }

        if self.settings.logging.multi_channel_enabled:
            stats.update(get_channel_statistics())

        stats["channel_handlers"] = {
            ch.value: {"attached": ch in self.channel_handlers} for ch in LogChannel
        }
        return stats


def configure_enhanced_logging(settings: Settings, force: bool = False) -> None:
    """Configure the logging system once; ``force`` rebuilds it from new settings."""
    global _logger_manager

    if _logger_manager is not None:
        if not force:
            return
        _logger_manager.close()

    _logger_manager = EnhancedLoggerManager(settings)


def get_enhanced_logger(name: str, component: Optional[str] = None):
    """Get a lazily-bound structured logger.

    Loggers are created lazily so module-level loggers pick up the
    configuration applied later by ``configure_enhanced_logging``.
    """
    if component:
        return structlog.get_logger(name, component=component,
                                    channel=get_channel_for_component(component).value)
    return structlog.get_logger(name)


def get_channel_logger(name: str, channel: LogChannel):
    """Get a logger for a specific channel."""
    return structlog.get_logger(name, channel=channel.value)


def get_logging_statistics() -> Dict[str, Any]:
    """Get logging system statistics."""
    if _logger_manager is None:
        return {"error": "Logger manager not initialized"}
    return _logger_manager.get_statistics()
