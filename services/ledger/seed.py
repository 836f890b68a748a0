"""Opening state of the team ledger. The ledger is in-memory only and starts here on every boot."""

from datetime import datetime, timezone, timedelta

from core.trading.ledger_models import (
    Account,
    ActivityRecord,
    Holding,
    LedgerState,
    LedgerWarning,
    Participant,
    TeamAggregate,
)

# Seed activity timestamps are local exchange time (UTC+8)
_TAIPEI = timezone(timedelta(hours=8))


def build_seed_state(lot_size: int = 1000) -> LedgerState:
    holdings = [
        Holding(
            id="1",
            code="2330",
            name="台積電",
            quantity=10,
            average_buy_price=550.0,
            current_price=580.0,
            owner=Participant.FU_ZHONG,
        ),
        Holding(
            id="2",
            code="2454",
            name="聯發科",
            quantity=5,
            average_buy_price=1050.0,
            current_price=1100.0,
            owner=Participant.XIN_QUAN,
        ),
    ]
    for holding in holdings:
        holding.recalculate_profit(lot_size)

    return LedgerState(
        accounts={
            Participant.FU_ZHONG: Account(
                allocated_capital=30_000_000,
                available_funds=10_500_000,
                invested_funds=19_500_000,
            ),
            Participant.XIN_QUAN: Account(
                allocated_capital=70_000_000,
                available_funds=15_000_000,
                invested_funds=55_000_000,
            ),
        },
        holdings=holdings,
        team=TeamAggregate(
            initial_assets=100_000_000,
            current_assets=103_500_000,
            investment_ratio=74.5,
            total_profit=3_500_000,
            # Carried over from the opening books, not len(holdings); the first trade re-derives it
            total_stock_count=12,
            total_transaction_count=28,
        ),
        activities=[
            ActivityRecord(
                id="2",
                timestamp=datetime(2025, 3, 15, 10, 15, tzinfo=_TAIPEI),
                actor=Participant.XIN_QUAN.value,
                description="買入聯發科(2454) 5張，價格1050元",
            ),
            ActivityRecord(
                id="1",
                timestamp=datetime(2025, 3, 15, 9, 30, tzinfo=_TAIPEI),
                actor=Participant.FU_ZHONG.value,
                description="買入台積電(2330) 10張，價格550元",
            ),
        ],
        warnings=[
            LedgerWarning(
                id="1",
                category="investment_ratio",
                message="團隊投資比例低於70%",
                severity="warning",
            ),
        ],
    )
