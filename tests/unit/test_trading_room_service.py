"""
Unit tests for TradingRoomService event routing.

Observers here are FakeObserver instances; ``settle`` waits for pending
searches and queued deliveries before asserting on what each one received.
"""

import asyncio
import json

import pytest

from core.config.settings import QuoteSettings
from core.trading.ledger_models import Participant
from services.quotes.lookup import SimulatedQuoteLookup
from services.trading_room.service import TradingRoomService
from tests.mocks.observers import FakeObserver, settle

FU_ZHONG = Participant.FU_ZHONG.value
XIN_QUAN = Participant.XIN_QUAN.value


def _trade_payload(**overrides):
    payload = {
        "type": "buy",
        "code": "2330",
        "name": "台積電",
        "quantity": 2,
        "price": 550,
        "owner": FU_ZHONG,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_connect_sends_snapshot(trading_room):
    observer = FakeObserver()
    await trading_room.on_connect(observer)
    await settle(trading_room)

    assert observer.events() == ["snapshot"]
    snapshot = observer.of("snapshot")[0]
    assert snapshot["accounts"][FU_ZHONG]["availableFunds"] == 10_500_000
    assert len(snapshot["activities"]) == 2


@pytest.mark.asyncio
async def test_identify_broadcasts_membership(trading_room):
    alice, bob = FakeObserver(), FakeObserver()
    alice_id = await trading_room.on_connect(alice)
    bob_id = await trading_room.on_connect(bob)

    await trading_room.dispatch(alice_id, {"event": "identify", "data": FU_ZHONG})
    await trading_room.dispatch(alice_id, {"event": "identify", "data": FU_ZHONG})
    await trading_room.dispatch(bob_id, {"event": "identify", "data": XIN_QUAN})
    await settle(trading_room)

    expected = [[FU_ZHONG], sorted([FU_ZHONG, XIN_QUAN])]
    assert alice.of("membership") == expected
    assert bob.of("membership") == expected


@pytest.mark.asyncio
async def test_identify_unknown_participant_sends_error(trading_room):
    observer, other = FakeObserver(), FakeObserver()
    connection_id = await trading_room.on_connect(observer)
    await trading_room.on_connect(other)

    await trading_room.dispatch(connection_id, {"event": "identify", "data": "路人"})
    await settle(trading_room)

    assert observer.events() == ["snapshot", "error"]
    assert "membership" not in other.events()
    assert trading_room.registry.members() == frozenset()


@pytest.mark.asyncio
async def test_trade_broadcasts_activity_with_state(trading_room):
    trader, watcher = FakeObserver(), FakeObserver()
    trader_id = await trading_room.on_connect(trader)
    await trading_room.on_connect(watcher)
    await trading_room.dispatch(trader_id, {"event": "identify", "data": XIN_QUAN})

    await trading_room.dispatch(trader_id, {"event": "trade", "data": _trade_payload()})
    await settle(trading_room)

    for observer in (trader, watcher):
        (update,) = observer.of("activity")
        assert update["activity"]["actor"] == XIN_QUAN
        assert update["activity"]["description"] == "買入台積電(2330) 2張，價格550元"
        assert update["state"]["accounts"][FU_ZHONG]["availableFunds"] == 9_400_000
        assert update["state"]["activities"][0] == update["activity"]


@pytest.mark.asyncio
async def test_trade_without_identity_uses_owner_as_actor(trading_room):
    observer = FakeObserver()
    connection_id = await trading_room.on_connect(observer)

    await trading_room.dispatch(connection_id, {"event": "trade", "data": _trade_payload()})
    await settle(trading_room)

    assert observer.of("activity")[0]["activity"]["actor"] == FU_ZHONG


@pytest.mark.asyncio
async def test_rejected_trade_is_unicast(trading_room):
    trader, watcher = FakeObserver(), FakeObserver()
    trader_id = await trading_room.on_connect(trader)
    await trading_room.on_connect(watcher)
    before = trading_room.store.snapshot()

    await trading_room.dispatch(trader_id, {"event": "trade", "data": _trade_payload(quantity=100)})
    await trading_room.dispatch(trader_id, {"event": "trade", "data": _trade_payload(type="sell", quantity=50)})
    await trading_room.dispatch(trader_id, {"event": "trade", "data": _trade_payload(owner="路人")})
    await settle(trading_room)

    codes = [error["code"] for error in trader.of("tradeError")]
    assert codes == ["insufficient_funds", "insufficient_holdings", "unknown_owner"]
    assert watcher.events() == ["snapshot"]
    assert trading_room.store.snapshot() == before


@pytest.mark.asyncio
async def test_malformed_trade_is_rejected(trading_room):
    observer = FakeObserver()
    connection_id = await trading_room.on_connect(observer)

    await trading_room.dispatch(connection_id, {"event": "trade", "data": {"type": "hold", "code": "2330"}})
    await trading_room.dispatch(connection_id, {"event": "trade", "data": "buy everything"})
    await settle(trading_room)

    assert [e["code"] for e in observer.of("tradeError")] == ["invalid_instruction", "invalid_instruction"]


@pytest.mark.asyncio
async def test_malformed_message_sends_error(trading_room):
    observer = FakeObserver()
    connection_id = await trading_room.on_connect(observer)

    await trading_room.dispatch(connection_id, {"event": "launch", "data": None})
    await trading_room.dispatch(connection_id, ["not", "an", "object"])
    await settle(trading_room)

    assert observer.events() == ["snapshot", "error", "error"]


@pytest.mark.asyncio
async def test_search_replies_and_broadcasts_activity(trading_room):
    searcher, watcher = FakeObserver(), FakeObserver()
    searcher_id = await trading_room.on_connect(searcher)
    await trading_room.on_connect(watcher)
    await trading_room.dispatch(searcher_id, {"event": "identify", "data": FU_ZHONG})

    await trading_room.dispatch(searcher_id, {"event": "search", "data": "台積電"})
    await settle(trading_room)

    assert searcher.of("quoteResult")[0]["code"] == "2330"
    assert watcher.of("quoteResult") == []
    for observer in (searcher, watcher):
        (update,) = observer.of("activity")
        assert update["activity"]["description"] == "搜尋股票: 台積電"
        assert update["activity"]["actor"] == FU_ZHONG
        assert update["state"] is None


@pytest.mark.asyncio
async def test_empty_search_sends_error(trading_room):
    observer = FakeObserver()
    connection_id = await trading_room.on_connect(observer)

    await trading_room.dispatch(connection_id, {"event": "search", "data": "   "})
    await settle(trading_room)

    assert observer.events() == ["snapshot", "error"]


@pytest.mark.asyncio
async def test_search_does_not_block_trades(store, registry, channel):
    slow_quotes = SimulatedQuoteLookup(settings=QuoteSettings(delay_seconds=0.05))
    room = TradingRoomService(store=store, registry=registry, channel=channel, quotes=slow_quotes)
    observer = FakeObserver()
    connection_id = await room.on_connect(observer)

    await room.dispatch(connection_id, {"event": "search", "data": "2454"})
    await room.dispatch(connection_id, {"event": "trade", "data": _trade_payload(quantity=1)})
    await channel.drain()

    # The trade committed while the quote was still pending
    assert observer.events() == ["snapshot", "activity"]

    await settle(room)
    assert observer.events() == ["snapshot", "activity", "quoteResult", "activity"]
    await room.stop()


@pytest.mark.asyncio
async def test_disconnect_prunes_membership(trading_room):
    leaving, staying = FakeObserver(), FakeObserver()
    leaving_id = await trading_room.on_connect(leaving)
    staying_id = await trading_room.on_connect(staying)
    await trading_room.dispatch(leaving_id, {"event": "identify", "data": FU_ZHONG})
    await trading_room.dispatch(staying_id, {"event": "identify", "data": XIN_QUAN})

    await trading_room.on_disconnect(leaving_id)
    await settle(trading_room)

    assert staying.of("membership")[-1] == [XIN_QUAN]
    assert trading_room.channel.subscribers == [staying_id]


@pytest.mark.asyncio
async def test_stop_cancels_pending_searches(store, registry, channel):
    slow_quotes = SimulatedQuoteLookup(settings=QuoteSettings(delay_seconds=10))
    room = TradingRoomService(store=store, registry=registry, channel=channel, quotes=slow_quotes)
    connection_id = await room.on_connect(FakeObserver())

    await room.dispatch(connection_id, {"event": "search", "data": "2330"})
    await asyncio.sleep(0)
    await room.stop()

    assert channel.subscribers == []
    assert len(store.snapshot().activities) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
async def test_non_finite_price_frame_is_rejected(trading_room, literal):
    observer = FakeObserver()
    connection_id = await trading_room.on_connect(observer)
    before = trading_room.store.snapshot()
    frame = json.loads(
        '{"event": "trade", "data": {"kind": "buy", "code": "2330", "name": "台積電",'
        f' "quantity": 1, "price": {literal}, "owner": "{FU_ZHONG}"}}}}'
    )

    await trading_room.dispatch(connection_id, frame)
    await settle(trading_room)

    assert observer.events() == ["snapshot", "tradeError"]
    assert observer.of("tradeError")[0]["code"] == "invalid_instruction"
    assert trading_room.store.snapshot() == before


@pytest.mark.asyncio
async def test_dropped_observer_is_closed_and_leaves_membership(trading_room):
    failing, watcher = FakeObserver(), FakeObserver()
    failing_id = await trading_room.on_connect(failing)
    watcher_id = await trading_room.on_connect(watcher)
    await trading_room.dispatch(failing_id, {"event": "identify", "data": FU_ZHONG})
    await trading_room.dispatch(watcher_id, {"event": "identify", "data": XIN_QUAN})
    await settle(trading_room)

    failing.fail = True
    await trading_room.dispatch(watcher_id, {"event": "trade", "data": _trade_payload(quantity=1)})
    await settle(trading_room)

    assert failing.closed
    assert trading_room.registry.participant_for(failing_id) is None
    assert trading_room.registry.members() == frozenset({Participant.XIN_QUAN})
    assert watcher.of("membership")[-1] == [XIN_QUAN]

    # The transport closing afterwards changes nothing further
    await trading_room.on_disconnect(failing_id)
    await settle(trading_room)
    assert watcher.events().count("membership") == 3
