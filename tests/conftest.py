"""
Pytest configuration and shared fixtures for Team Ledger tests.
"""
import pytest

from core.config.settings import (
    Settings,
    LedgerSettings,
    QuoteSettings,
    SessionSettings,
    BroadcastSettings,
    LoggingSettings,
)
from core.trading.ledger_models import Participant, TradeInstruction, TradeKind
from services.broadcast.channel import BroadcastChannel
from services.ledger.store import LedgerStore
from services.quotes.lookup import SimulatedQuoteLookup
from services.session.registry import SessionRegistry
from services.trading_room.service import TradingRoomService
from tests.mocks.observers import SteppingClock

FU_ZHONG = Participant.FU_ZHONG.value
XIN_QUAN = Participant.XIN_QUAN.value


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        ledger=LedgerSettings(lot_size=1000, activity_log_limit=500),
        quotes=QuoteSettings(delay_seconds=0.0),
        session=SessionSettings(prune_on_disconnect=True),
        broadcast=BroadcastSettings(queue_maxsize=100),
        logging=LoggingSettings(file_enabled=False, console_enabled=False),
    )


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def store(test_settings, clock):
    return LedgerStore(settings=test_settings.ledger, clock=clock)


@pytest.fixture
def registry(test_settings):
    return SessionRegistry(settings=test_settings.session)


@pytest.fixture
def channel(test_settings):
    return BroadcastChannel(settings=test_settings.broadcast)


@pytest.fixture
def quotes(test_settings):
    return SimulatedQuoteLookup(settings=test_settings.quotes)


@pytest.fixture
async def trading_room(store, registry, channel, quotes):
    room = TradingRoomService(store=store, registry=registry, channel=channel, quotes=quotes)
    yield room
    await room.stop()


@pytest.fixture
def make_trade():
    """Factory for trade instructions."""
    def _make(kind: str = "buy", code: str = "2330", quantity: int = 1,
              price: float = 550.0, owner: str = FU_ZHONG, name: str = "台積電") -> TradeInstruction:
        return TradeInstruction(
            kind=TradeKind(kind),
            code=code,
            name=name,
            quantity=quantity,
            price=price,
            owner=owner,
        )
    return _make

