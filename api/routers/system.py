from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import get_settings, get_trading_room
from core.config.settings import Settings
from services.trading_room.service import TradingRoomService

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(
    settings: Settings = Depends(get_settings),
    trading_room: TradingRoomService = Depends(get_trading_room)
):
    """Liveness check"""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_connections": len(trading_room.channel.subscribers),
        "identified_members": sorted(m.value for m in trading_room.registry.members()),
    }
