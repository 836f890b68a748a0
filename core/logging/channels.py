"""
Log channels for Team Ledger.

Each channel gets its own rotating file when file logging is enabled. Trade
execution and rejections go to ``trading``, committed ledger mutations to
``audit``, connection traffic to ``api``; ``error`` collects every ERROR
record whatever its channel.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict


class LogChannel(str, Enum):
    APPLICATION = "application"
    TRADING = "trading"
    API = "api"
    AUDIT = "audit"
    ERROR = "error"


@dataclass(frozen=True)
class ChannelConfig:
    filename: str
    level: str = "INFO"
    max_bytes: str = "50MB"
    backup_count: int = 5

    def file_path(self, logs_dir: str) -> Path:
        return Path(logs_dir) / self.filename


CHANNEL_CONFIGS: Dict[LogChannel, ChannelConfig] = {
    LogChannel.APPLICATION: ChannelConfig("application.log", max_bytes="100MB", backup_count=10),
    LogChannel.TRADING: ChannelConfig("trading.log", backup_count=20),
    LogChannel.API: ChannelConfig("api.log", backup_count=10),
    LogChannel.AUDIT: ChannelConfig("audit.log", max_bytes="100MB", backup_count=50),
    LogChannel.ERROR: ChannelConfig("error.log", level="ERROR", backup_count=20),
}

# Component name -> channel; anything unlisted logs to APPLICATION
COMPONENT_CHANNELS: Dict[str, LogChannel] = {
    "ledger": LogChannel.TRADING,
    "trade_processor": LogChannel.TRADING,
    "quotes": LogChannel.TRADING,
    "session": LogChannel.API,
    "broadcast": LogChannel.API,
    "api": LogChannel.API,
    "audit": LogChannel.AUDIT,
}


def get_channel_for_component(component: str) -> LogChannel:
    return COMPONENT_CHANNELS.get(component, LogChannel.APPLICATION)


def get_channel_config(channel: LogChannel) -> ChannelConfig:
    return CHANNEL_CONFIGS[channel]


def create_log_directory_structure(logs_dir: str) -> None:
    Path(logs_dir).mkdir(parents=True, exist_ok=True)


def get_channel_statistics() -> Dict[str, Any]:
    """Describe every channel's file and rotation policy."""
    return {
        "total_channels": len(LogChannel),
        "channels": {
            channel.value: {
                "filename": config.filename,
                "level": config.level,
                "max_bytes": config.max_bytes,
                "backup_count": config.backup_count,
            }
            for channel, config in CHANNEL_CONFIGS.items()
        },
    }
