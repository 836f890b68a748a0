import asyncio
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from core.config.settings import BroadcastSettings
from core.logging import get_logger
from core.schemas.events import ServerEvent, server_message
from core.trading.interfaces import Observer
from core.trading.ledger_models import ActivityRecord, LedgerState, Participant, Quote


class Subscription:
    """One connected observer and its outbound queue."""

    def __init__(self, connection_id: str, observer: Observer, maxsize: int):
        self.connection_id = connection_id
        self.observer = observer
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.task: Optional[asyncio.Task] = None


class BroadcastChannel:
    """
    Publish/subscribe fan-out to connected observers.

    Announcements are queued synchronously per subscriber and drained by one
    pump task per subscriber, so publishing never suspends the caller and
    each observer receives events in the order they were published.
    Subscribers whose send fails or whose queue overflows are dropped: their
    transport is closed with ``DROPPED_CLOSE_CODE`` and every drop listener
    is called with the connection ID once the current publish has finished.
    """

    # "Try again later": the viewer could not keep up
    DROPPED_CLOSE_CODE = 1013

    def __init__(self, settings: Optional[BroadcastSettings] = None):
        self.settings = settings or BroadcastSettings()
        self._subscriptions: Dict[str, Subscription] = {}
        self._drop_listeners: List[Callable[[str], None]] = []
        self._closing: Set[asyncio.Task] = set()
        self.logger = get_logger("services.broadcast.channel", component="broadcast")

    @property
    def subscribers(self) -> List[str]:
        """Connection IDs of every current subscriber, in connection order."""
        return list(self._subscriptions)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._subscriptions

    def on_drop(self, listener: Callable[[str], None]) -> None:
        """Register a callback for subscribers the channel drops on its own."""
        self._drop_listeners.append(listener)

    async def connect(self, observer: Observer, connection_id: Optional[str] = None) -> str:
        """Register an observer and start its delivery task."""
        connection_id = connection_id or uuid.uuid4().hex
        subscription = Subscription(connection_id, observer, self.settings.queue_maxsize)
        subscription.task = asyncio.create_task(self._pump(subscription))
        self._subscriptions[connection_id] = subscription
        self.logger.info("Observer connected",
                         connection_id=connection_id,
                         total_connections=len(self._subscriptions))
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        subscription = self._subscriptions.pop(connection_id, None)
        if subscription is None:
            return
        await self._stop(subscription)
        self.logger.info("Observer disconnected",
                         connection_id=connection_id,
                         total_connections=len(self._subscriptions))

    async def drain(self) -> None:
        """Wait until every queued event has been handed to its observer."""
        for subscription in list(self._subscriptions.values()):
            await subscription.queue.join()

    async def close(self) -> None:
        """Stop all delivery tasks and wait for pending transport closes."""
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            if subscription.task is not None:
                subscription.task.cancel()
        tasks = [s.task for s in subscriptions if s.task is not None]
        tasks.extend(self._closing)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Unicast

    def announce_snapshot(self, connection_id: str, state: LedgerState) -> None:
        self._unicast(connection_id, server_message(ServerEvent.SNAPSHOT, state.to_wire()))

    def announce_quote(self, connection_id: str, quote: Quote) -> None:
        self._unicast(connection_id, server_message(
            ServerEvent.QUOTE_RESULT, quote.model_dump(mode="json", by_alias=True)))

    def announce_trade_error(self, connection_id: str, payload: Dict[str, Any]) -> None:
        self._unicast(connection_id, server_message(ServerEvent.TRADE_ERROR, payload))

    def announce_error(self, connection_id: str, message: str) -> None:
        self._unicast(connection_id, server_message(ServerEvent.ERROR, {"message": message}))

    # Broadcast

    def announce_activity(self, record: ActivityRecord, state: Optional[LedgerState] = None) -> None:
        self._broadcast(server_message(ServerEvent.ACTIVITY, {
            "activity": record.model_dump(mode="json", by_alias=True),
            "state": state.to_wire() if state is not None else None,
        }))

    def announce_membership(self, members: Iterable[Participant]) -> None:
        self._broadcast(server_message(ServerEvent.MEMBERSHIP, sorted(m.value for m in members)))

    def _unicast(self, connection_id: str, message: Dict[str, Any]) -> None:
        subscription = self._subscriptions.get(connection_id)
        if subscription is None:
            self.logger.debug("Dropping event for unknown connection",
                              connection_id=connection_id, event=message["event"])
            return
        self._enqueue(subscription, message)

    def _broadcast(self, message: Dict[str, Any]) -> None:
        for subscription in list(self._subscriptions.values()):
            self._enqueue(subscription, message)

    def _enqueue(self, subscription: Subscription, message: Dict[str, Any]) -> None:
        try:
            subscription.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.logger.warning("Observer too slow, dropping connection",
                                connection_id=subscription.connection_id,
                                queue_size=subscription.queue.qsize())
            self._drop(subscription)

    async def _pump(self, subscription: Subscription) -> None:
        while True:
            message = await subscription.queue.get()
            try:
                await subscription.observer.send_json(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Failed to send to observer",
                                  connection_id=subscription.connection_id,
                                  event=message.get("event"),
                                  error=str(e))
                self._drop(subscription)
                self._discard_pending(subscription)
                return
            finally:
                subscription.queue.task_done()

    def _drop(self, subscription: Subscription) -> None:
        if self._subscriptions.pop(subscription.connection_id, None) is None:
            return
        if subscription.task is not None and subscription.task is not asyncio.current_task():
            subscription.task.cancel()

        task = asyncio.create_task(self._close_observer(subscription))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

        # Listeners run after the current publish, so anything they announce queues behind it
        loop = asyncio.get_running_loop()
        for listener in self._drop_listeners:
            loop.call_soon(listener, subscription.connection_id)

    async def _close_observer(self, subscription: Subscription) -> None:
        try:
            await subscription.observer.close(code=self.DROPPED_CLOSE_CODE)
        except Exception as e:
            # Transport already gone; the drop itself has happened
            self.logger.debug("Closing dropped observer failed",
                              connection_id=subscription.connection_id,
                              error=str(e))

    async def _stop(self, subscription: Subscription) -> None:
        if subscription.task is None or subscription.task.done():
            return
        subscription.task.cancel()
        try:
            await subscription.task
        except asyncio.CancelledError:
            pass

    @staticmethod
    def _discard_pending(subscription: Subscription) -> None:
        while not subscription.queue.empty():
            subscription.queue.get_nowait()
            subscription.queue.task_done()
