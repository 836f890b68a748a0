from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.utils.exceptions import UnknownOwnerError


class LedgerBaseModel(BaseModel):
    """Base model for ledger schemas; serializes with camelCase keys for observers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Participant(str, Enum):
    """The fixed set of team members who own accounts."""

    FU_ZHONG = "復忠"
    XIN_QUAN = "信全"

    @classmethod
    def parse(cls, value) -> "Participant":
        """Resolve a raw identity, rejecting anyone outside the team."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownOwnerError(f"Unknown participant: {value!r}", owner=str(value)) from None


class TradeKind(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Account(LedgerBaseModel):
    allocated_capital: float
    available_funds: float
    invested_funds: float


class Holding(LedgerBaseModel):
    """
    A single open position. ``profit`` and ``profit_percentage`` are derived
    from the prices and quantity and are refreshed by ``recalculate_profit``.
    """

    id: str
    code: str
    name: str
    quantity: int
    average_buy_price: float
    current_price: float
    owner: Participant
    profit: float = 0.0
    profit_percentage: float = 0.0

    def recalculate_profit(self, lot_size: int) -> None:
        """Unrealized profit at the current quoted price."""
        self.profit = (self.current_price - self.average_buy_price) * self.quantity * lot_size
        self.profit_percentage = (self.current_price / self.average_buy_price - 1) * 100


class TeamAggregate(LedgerBaseModel):
    initial_assets: float
    current_assets: float
    investment_ratio: float
    total_profit: float
    total_stock_count: int
    total_transaction_count: int


class ActivityRecord(LedgerBaseModel):
    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    actor: Optional[str] = None
    description: str


class LedgerWarning(LedgerBaseModel):
    id: str
    category: str
    message: str
    severity: str = "warning"


class LedgerState(LedgerBaseModel):
    """Complete ledger: accounts, holdings, team aggregate, activity log and warnings."""

    accounts: Dict[Participant, Account]
    holdings: List[Holding] = Field(default_factory=list)
    team: TeamAggregate
    activities: List[ActivityRecord] = Field(default_factory=list)  # newest first
    warnings: List[LedgerWarning] = Field(default_factory=list)

    def account_for(self, owner: Participant) -> Account:
        account = self.accounts.get(owner)
        if account is None:
            raise UnknownOwnerError(f"No account for participant: {owner.value}", owner=owner.value)
        return account

    def find_holding(self, owner: Participant, code: str) -> Optional[Holding]:
        for holding in self.holdings:
            if holding.owner == owner and holding.code == code:
                return holding
        return None

    def total_invested(self) -> float:
        return sum(account.invested_funds for account in self.accounts.values())

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TradeInstruction(LedgerBaseModel):
    """
    A buy/sell request as submitted by an observer. Amount and identity checks
    happen in the trade processor so rejections carry a typed reason.
    """

    kind: TradeKind = Field(validation_alias=AliasChoices("kind", "type"))
    code: str
    name: str = ""
    quantity: int
    price: float = Field(allow_inf_nan=False)
    owner: str


class Quote(LedgerBaseModel):
    code: str
    name: str
    price: float
    volume: int
