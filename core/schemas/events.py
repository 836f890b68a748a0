# Wire schema for the realtime connection
#
# Every frame in both directions is a JSON object {"event": <name>, "data": <payload>}.

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class ClientEvent(str, Enum):
    """Observer -> server"""
    IDENTIFY = "identify"
    SEARCH = "search"
    TRADE = "trade"


class ServerEvent(str, Enum):
    """Server -> observer"""
    SNAPSHOT = "snapshot"          # unicast on connect
    QUOTE_RESULT = "quoteResult"   # unicast reply to search
    TRADE_ERROR = "tradeError"     # unicast trade rejection
    ERROR = "error"                # unicast protocol error
    ACTIVITY = "activity"          # broadcast after a trade or search
    MEMBERSHIP = "membership"      # broadcast when identified members change


class ClientMessage(BaseModel):
    """Inbound frame; ``data`` is validated per event by the trading room."""

    model_config = ConfigDict(extra="ignore")

    event: ClientEvent
    data: Any = None


def server_message(event: ServerEvent, data: Any) -> Dict[str, Any]:
    return {"event": event.value, "data": data}
