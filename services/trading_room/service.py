import asyncio
from typing import Any, Optional, Set

from pydantic import ValidationError

from core.logging import get_trading_logger_safe
from core.schemas.events import ClientEvent, ClientMessage
from core.trading.interfaces import Observer, QuoteLookup
from core.trading.ledger_models import TradeInstruction
from core.utils.exceptions import InvalidInstructionError, TradeRejectedError, UnknownOwnerError
from services.broadcast.channel import BroadcastChannel
from services.ledger.store import LedgerStore
from services.session.registry import SessionRegistry


class TradingRoomService:
    """
    Connection-level coordinator for the shared ledger.

    Each inbound event is handled as one unit on the event loop: trade and
    identify handlers never await between touching the store or registry and
    queueing their broadcasts, so ledger mutations are serialized without
    locks. Search is the only handler that suspends, and it touches the
    ledger only after the quote arrives.
    """

    def __init__(self, store: LedgerStore, registry: SessionRegistry,
                 channel: BroadcastChannel, quotes: QuoteLookup):
        self.store = store
        self.registry = registry
        self.channel = channel
        self.quotes = quotes
        self.logger = get_trading_logger_safe("services.trading_room")
        self._tasks: Set[asyncio.Task] = set()
        self.channel.on_drop(self._on_dropped)

    async def on_connect(self, observer: Observer, connection_id: Optional[str] = None) -> str:
        connection_id = await self.channel.connect(observer, connection_id)
        self.channel.announce_snapshot(connection_id, self.store.snapshot())
        return connection_id

    async def on_disconnect(self, connection_id: str) -> None:
        await self.channel.disconnect(connection_id)
        if self.registry.release(connection_id):
            self.channel.announce_membership(self.registry.members())

    def _on_dropped(self, connection_id: str) -> None:
        """The channel shed this viewer; forget its identity as if it had closed."""
        self.logger.warning("Observer dropped by broadcast channel", connection_id=connection_id)
        if self.registry.release(connection_id):
            self.channel.announce_membership(self.registry.members())

    async def dispatch(self, connection_id: str, raw: Any) -> None:
        """Decode one inbound frame and route it to its handler."""
        try:
            message = ClientMessage.model_validate(raw)
        except ValidationError as e:
            self.logger.warning("Malformed message", connection_id=connection_id, error=str(e))
            self.channel.announce_error(connection_id, "Malformed message")
            return

        if message.event == ClientEvent.IDENTIFY:
            self.on_identify(connection_id, message.data)
        elif message.event == ClientEvent.SEARCH:
            # Runs detached so the connection keeps reading while the quote is pending
            task = asyncio.create_task(self.on_search(connection_id, message.data))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif message.event == ClientEvent.TRADE:
            self.on_trade(connection_id, message.data)

    def on_identify(self, connection_id: str, participant: Any) -> None:
        try:
            changed = self.registry.identify(str(participant), connection_id)
        except UnknownOwnerError as e:
            self.channel.announce_error(connection_id, e.message)
            return
        if changed:
            self.channel.announce_membership(self.registry.members())

    async def on_search(self, connection_id: str, query: Any) -> None:
        if not isinstance(query, str) or not query.strip():
            self.channel.announce_error(connection_id, "Search query must be a non-empty string")
            return

        actor = self._actor(connection_id)
        self.logger.info("Quote search", actor=actor, query=query)
        quote = await self.quotes.lookup(query)

        self.channel.announce_quote(connection_id, quote)
        record = self.store.record_search(actor, query)
        self.channel.announce_activity(record)

    def on_trade(self, connection_id: str, payload: Any) -> None:
        try:
            instruction = TradeInstruction.model_validate(payload)
        except ValidationError as e:
            rejection = InvalidInstructionError("Malformed trade instruction", field="trade", value=payload)
            self.logger.warning("Malformed trade instruction", connection_id=connection_id, error=str(e))
            self.channel.announce_trade_error(connection_id, rejection.to_payload())
            return

        actor = self._actor(connection_id) or instruction.owner
        try:
            record = self.store.apply_trade(instruction, actor)
        except TradeRejectedError as e:
            self.channel.announce_trade_error(connection_id, e.to_payload())
            return

        self.channel.announce_activity(record, self.store.snapshot())

    async def stop(self) -> None:
        """Cancel pending searches and stop all deliveries."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        await self.channel.close()

    async def wait_idle(self) -> None:
        """Wait for pending searches to finish."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _actor(self, connection_id: str) -> Optional[str]:
        participant = self.registry.participant_for(connection_id)
        return participant.value if participant is not None else None
