import pytest
from pydantic import ValidationError

from core.config.settings import (
    APISettings,
    BroadcastSettings,
    Environment,
    LedgerSettings,
    LoggingSettings,
    QuoteSettings,
    Settings,
)
from core.config.validator import ConfigurationValidator, validate_startup_configuration
from core.utils.exceptions import ConfigurationError


def test_defaults():
    settings = Settings()

    assert settings.ledger.lot_size == 1000
    assert settings.ledger.activity_log_limit == 500
    assert settings.quotes.delay_seconds == 0.5
    assert settings.session.prune_on_disconnect is True
    assert settings.api.port == 3001
    assert settings.logs_dir == settings.logging.logs_dir == "logs"
    assert not hasattr(settings, "base_dir")


def test_nested_env_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER__LOT_SIZE", "1")
    monkeypatch.setenv("QUOTES__DELAY_SECONDS", "0")
    monkeypatch.setenv("SESSION__PRUNE_ON_DISCONNECT", "false")
    monkeypatch.setenv("API__PORT", "8080")

    settings = Settings()

    assert settings.ledger.lot_size == 1
    assert settings.quotes.delay_seconds == 0
    assert settings.session.prune_on_disconnect is False
    assert settings.api.port == 8080


@pytest.mark.parametrize("field", ["lot_size", "activity_log_limit"])
def test_ledger_settings_must_be_positive(field):
    with pytest.raises(ValidationError):
        LedgerSettings(**{field: 0})


def test_cors_wildcard_cannot_mix_with_origins():
    with pytest.raises(ValidationError):
        APISettings(cors_origins=["*", "http://localhost:5173"])


def test_valid_configuration_passes(test_settings):
    validator = ConfigurationValidator(test_settings)

    assert validator.validate_all() is True
    assert validator.get_validation_summary()["errors"] == 0
    validate_startup_configuration(test_settings)


def test_production_rejects_cors_wildcard():
    settings = Settings(environment=Environment.PRODUCTION)

    with pytest.raises(ConfigurationError) as exc_info:
        validate_startup_configuration(settings)

    assert exc_info.value.config_field == "api"
    assert exc_info.value.details["errors"] == 1


def test_production_with_explicit_origins_passes():
    settings = Settings(
        environment=Environment.PRODUCTION,
        api=APISettings(cors_origins=["https://ledger.example.com"]),
    )
    validate_startup_configuration(settings)


def test_invalid_values_are_reported():
    settings = Settings(
        quotes=QuoteSettings(delay_seconds=-1),
        broadcast=BroadcastSettings(queue_maxsize=0),
        logging=LoggingSettings(level="VERBOSE"),
    )
    validator = ConfigurationValidator(settings)

    assert validator.validate_all() is False
    summary = validator.get_validation_summary()
    assert {d["component"] for d in summary["error_details"]} == {"quotes", "broadcast", "logging"}


def test_long_quote_delay_is_only_a_warning():
    validator = ConfigurationValidator(Settings(quotes=QuoteSettings(delay_seconds=30)))

    assert validator.validate_all() is True
    assert validator.get_validation_summary()["warnings"] == 1
