from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Protocol, runtime_checkable

from core.trading.ledger_models import Quote


@runtime_checkable
class Observer(Protocol):
    """A connected viewer that can receive JSON events.

    A FastAPI ``WebSocket`` satisfies this protocol as-is.
    """

    async def send_json(self, data: Dict[str, Any]) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


class QuoteLookup(ABC):
    """Market-data collaborator used by instrument search.

    Implementations may suspend (network latency) but must never touch the
    ledger.
    """

    @abstractmethod
    async def lookup(self, query: str) -> Quote:
        ...
