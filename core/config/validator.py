"""
Configuration validation at application startup.

Validates that critical configuration values are sane before the server
starts accepting connections, providing clear error messages for invalid
settings.
"""

import logging
from pathlib import Path
from typing import List, Dict, Any
from dataclasses import dataclass

from .settings import Settings, Environment
from core.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a configuration validation check"""
    is_valid: bool
    component: str
    message: str
    severity: str = "error"  # "error", "warning", "info"


class ConfigurationValidator:
    """Startup configuration validator."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.validation_results: List[ValidationResult] = []

    def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            bool: True if all critical validations pass
        """
        self._validate_api_settings()
        self._validate_logging_settings()
        self._validate_quote_settings()
        self._validate_broadcast_settings()

        errors = [r for r in self.validation_results if r.severity == "error"]
        warnings = [r for r in self.validation_results if r.severity == "warning"]

        if errors:
            logger.error(f"Configuration validation failed: {len(errors)} errors, {len(warnings)} warnings")
            for result in errors:
                logger.error(f"   ERROR [{result.component}]: {result.message}")

        for result in warnings:
            logger.warning(f"   WARNING [{result.component}]: {result.message}")

        return not errors

    def _validate_api_settings(self):
        if not 0 < self.settings.api.port < 65536:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="api",
                message=f"Port out of range: {self.settings.api.port}"
            ))
        if self.settings.environment == Environment.PRODUCTION and "*" in self.settings.api.cors_origins:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="api",
                message="CORS wildcard (*) not allowed in production. "
                        "Specify exact origins in API__CORS_ORIGINS."
            ))

    def _validate_logging_settings(self):
        level = self.settings.logging.level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="logging",
                message=f"Unknown log level: {self.settings.logging.level}"
            ))
        if self.settings.logging.file_enabled:
            logs_path = Path(self.settings.logs_dir)
            if logs_path.exists() and not logs_path.is_dir():
                self.validation_results.append(ValidationResult(
                    is_valid=False,
                    component="logging",
                    message=f"Logs path is not a directory: {logs_path}"
                ))

    def _validate_quote_settings(self):
        delay = self.settings.quotes.delay_seconds
        if delay < 0:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="quotes",
                message=f"Quote delay cannot be negative: {delay}"
            ))
        elif delay > 10:
            self.validation_results.append(ValidationResult(
                is_valid=True,
                component="quotes",
                message=f"Quote delay of {delay}s will make searches feel unresponsive",
                severity="warning"
            ))

    def _validate_broadcast_settings(self):
        if self.settings.broadcast.queue_maxsize <= 0:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="broadcast",
                message="Broadcast queue size must be positive"
            ))

    def get_validation_summary(self) -> Dict[str, Any]:
        """Get a summary of validation results"""
        errors = [r for r in self.validation_results if r.severity == "error"]
        warnings = [r for r in self.validation_results if r.severity == "warning"]

        return {
            "total_checks": len(self.validation_results),
            "errors": len(errors),
            "warnings": len(warnings),
            "is_valid": len(errors) == 0,
            "error_details": [{"component": r.component, "message": r.message} for r in errors],
            "warning_details": [{"component": r.component, "message": r.message} for r in warnings]
        }


def validate_startup_configuration(settings: Settings) -> None:
    """Validate settings, raising ConfigurationError on the first critical failure."""
    validator = ConfigurationValidator(settings)
    if not validator.validate_all():
        first = next(r for r in validator.validation_results if r.severity == "error")
        raise ConfigurationError(
            first.message,
            config_field=first.component,
            config_value=None,
            details=validator.get_validation_summary(),
        )
