import json

from fastapi import APIRouter, Depends, WebSocket

from api.dependencies import get_trading_room
from core.logging import get_api_logger_safe
from services.trading_room.service import TradingRoomService

router = APIRouter(tags=["Real-time"])

logger = get_api_logger_safe("api.routers.realtime")


@router.websocket("/ws")
async def ledger_websocket(
    websocket: WebSocket,
    trading_room: TradingRoomService = Depends(get_trading_room)
):
    """Bidirectional event connection: snapshot on connect, then identify/search/trade in and broadcasts out."""
    await websocket.accept()
    connection_id = await trading_room.on_connect(websocket)
    logger.info("WebSocket connection established", connection_id=connection_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                trading_room.channel.announce_error(connection_id, "Frames must be JSON text")
                continue
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                trading_room.channel.announce_error(connection_id, "Frames must be JSON")
                continue
            await trading_room.dispatch(connection_id, payload)
    finally:
        await trading_room.on_disconnect(connection_id)
        logger.info("WebSocket connection closed", connection_id=connection_id)
