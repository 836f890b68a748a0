from fastapi import Depends
from dependency_injector.wiring import inject, Provide

from app.containers import AppContainer
from core.config.settings import Settings
from services.trading_room.service import TradingRoomService


@inject
def get_settings(
    settings: Settings = Depends(Provide[AppContainer.settings])
) -> Settings:
    return settings


@inject
def get_trading_room(
    trading_room: TradingRoomService = Depends(Provide[AppContainer.trading_room])
) -> TradingRoomService:
    """Get the process-wide trading room"""
    return trading_room
