# Complete settings for the Team Ledger service
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LedgerSettings(BaseModel):
    """Trade engine configuration"""
    lot_size: int = 1000  # Units per traded lot
    activity_log_limit: int = Field(
        default=500,
        description="Maximum number of activity records kept (oldest dropped first)"
    )

    @field_validator('lot_size', 'activity_log_limit')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v


class QuoteSettings(BaseModel):
    """Simulated quote lookup configuration"""
    delay_seconds: float = 0.5
    default_code: str = "2454"  # Fallback instrument for unrecognized queries


class SessionSettings(BaseModel):
    prune_on_disconnect: bool = True


class BroadcastSettings(BaseModel):
    # Per-observer outbound queue; an observer that falls this far behind is dropped
    queue_maxsize: int = 1000


class LoggingSettings(BaseModel):
    # Core logging settings
    level: str = "INFO"
    json_format: bool = True

    # Console logging
    console_enabled: bool = True
    console_json_format: bool = False  # Plain text for console by default

    # File logging
    file_enabled: bool = False
    logs_dir: str = "logs"
    file_max_size: str = "50MB"
    file_backup_count: int = 5

    # Multi-channel logging
    multi_channel_enabled: bool = True

    # Redaction
    redact_keys: list[str] = ["authorization", "password", "secret", "token"]


class APISettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3001

    # CORS settings
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )
    cors_methods: List[str] = Field(
        default=["GET", "POST"],
        description="Allowed CORS methods"
    )
    cors_credentials: bool = Field(
        default=False,
        description="Allow credentials in CORS requests"
    )

    @field_validator('cors_origins')
    def validate_cors_origins(cls, v):
        """Validate CORS origins configuration"""
        if "*" in v and len(v) > 1:
            raise ValueError("Cannot mix '*' with specific origins")
        return v


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "Team Ledger"
    version: str = "1.0.0"
    environment: Environment = Environment.DEVELOPMENT

    ledger: LedgerSettings = LedgerSettings()
    quotes: QuoteSettings = QuoteSettings()
    session: SessionSettings = SessionSettings()
    broadcast: BroadcastSettings = BroadcastSettings()
    logging: LoggingSettings = LoggingSettings()
    api: APISettings = APISettings()

    @property
    def logs_dir(self) -> str:
        """Get logs directory"""
        return self.logging.logs_dir


# No global settings instance - use dependency injection instead
