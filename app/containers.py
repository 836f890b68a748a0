# Application dependency injection container
from dependency_injector import containers, providers

from core.config.settings import Settings
from services.broadcast.channel import BroadcastChannel
from services.ledger.store import LedgerStore
from services.quotes.lookup import SimulatedQuoteLookup
from services.session.registry import SessionRegistry
from services.trading_room.service import TradingRoomService


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # External collaborator: market data
    quote_lookup = providers.Singleton(
        SimulatedQuoteLookup,
        settings=settings.provided.quotes,
    )

    # The one in-memory ledger owned by this process
    ledger_store = providers.Singleton(
        LedgerStore,
        settings=settings.provided.ledger,
    )

    session_registry = providers.Singleton(
        SessionRegistry,
        settings=settings.provided.session,
    )

    broadcast_channel = providers.Singleton(
        BroadcastChannel,
        settings=settings.provided.broadcast,
    )

    trading_room = providers.Singleton(
        TradingRoomService,
        store=ledger_store,
        registry=session_registry,
        channel=broadcast_channel,
        quotes=quote_lookup,
    )
