# Structured exception hierarchy for the Team Ledger service

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class TeamLedgerException(Exception):
    """Base exception for all Team Ledger specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


class PermanentError(TeamLedgerException):
    """Base class for errors that must not be retried"""
    pass


# Configuration Errors
class ConfigurationError(PermanentError):
    """Configuration validation errors"""

    def __init__(self, message: str, config_field: str, config_value: Any,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.config_field = config_field
        self.config_value = config_value


# Trade Rejections
class TradeRejectedError(PermanentError):
    """A trade instruction was rejected; the ledger is unchanged.

    Every subclass carries a stable ``code`` so observers can react to the
    rejection without parsing the message.
    """

    code = "trade_rejected"

    def __init__(self, message: str, owner: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.owner = owner

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InsufficientFundsError(TradeRejectedError):
    """Insufficient available funds for a buy"""

    code = "insufficient_funds"

    def __init__(self, message: str, required_amount: float, available_amount: float,
                 owner: str, **kwargs):
        super().__init__(message, owner=owner, **kwargs)
        self.required_amount = required_amount
        self.available_amount = available_amount


class InsufficientHoldingsError(TradeRejectedError):
    """Sell quantity exceeds the quantity held (or nothing is held)"""

    code = "insufficient_holdings"

    def __init__(self, message: str, code_requested: str, requested_quantity: int,
                 held_quantity: int, owner: str, **kwargs):
        super().__init__(message, owner=owner, **kwargs)
        self.instrument_code = code_requested
        self.requested_quantity = requested_quantity
        self.held_quantity = held_quantity


class UnknownOwnerError(TradeRejectedError):
    """Identity is not one of the team's participants"""

    code = "unknown_owner"


class InvalidInstructionError(TradeRejectedError):
    """Malformed instruction: non-positive quantity or price"""

    code = "invalid_instruction"

    def __init__(self, message: str, field: str, value: Any, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


def create_error_context(error: Exception, operation: str,
                         additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if isinstance(error, TeamLedgerException):
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, TradeRejectedError):
            context["rejection_code"] = error.code
            if error.owner:
                context["owner"] = error.owner

        if isinstance(error, ConfigurationError):
            context["config_field"] = error.config_field

    if additional_context:
        context.update(additional_context)

    return context
