"""
Trade execution rules for the team ledger.

The processor validates a buy/sell instruction against a ``LedgerState`` and,
when valid, mutates that state in place and returns the activity record that
describes the trade. It never commits anything itself: the ledger store hands
it a working copy and swaps the copy in only after ``execute`` returns, so a
rejection (always raised before the first mutation) leaves the live ledger
untouched.
"""

import math
from datetime import datetime, timezone
from typing import Callable, Optional

from core.logging import get_trading_logger_safe
from core.trading.ledger_models import (
    Account,
    ActivityRecord,
    Holding,
    LedgerState,
    Participant,
    TradeInstruction,
    TradeKind,
)
from core.utils.exceptions import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidInstructionError,
)
from core.utils.ids import MonotonicIdGenerator

logger = get_trading_logger_safe("services.ledger.processor")


def format_price(price: float) -> str:
    """550.0 -> '550', 566.666 -> '566.67'"""
    if float(price).is_integer():
        return str(int(price))
    return f"{price:.2f}".rstrip("0").rstrip(".")


class TradeProcessor:
    """Validates and applies buy/sell instructions to a ledger state."""

    def __init__(self, lot_size: int = 1000,
                 id_generator: Optional[MonotonicIdGenerator] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.lot_size = lot_size
        self.id_generator = id_generator or MonotonicIdGenerator()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def trade_amount(self, quantity: int, price: float) -> float:
        return quantity * price * self.lot_size

    def execute(self, state: LedgerState, instruction: TradeInstruction,
                actor: Optional[str] = None) -> ActivityRecord:
        """Apply ``instruction`` to ``state`` and return the resulting activity record.

        Raises a ``TradeRejectedError`` subclass before touching ``state`` when
        the owner is unknown, the quantity or price is not positive, funds are
        insufficient (buy) or holdings are insufficient (sell).
        """
        owner = Participant.parse(instruction.owner)
        self._validate_amounts(instruction)
        account = state.account_for(owner)

        if instruction.kind == TradeKind.BUY:
            description = self._buy(state, account, owner, instruction)
        else:
            description = self._sell(state, account, owner, instruction)

        self._recompute_aggregate(state)

        return ActivityRecord(
            id=self.id_generator.next_id(),
            timestamp=self.clock(),
            actor=actor or owner.value,
            description=description,
        )

    def _validate_amounts(self, instruction: TradeInstruction) -> None:
        if instruction.quantity <= 0:
            raise InvalidInstructionError(
                f"Quantity must be positive, got {instruction.quantity}",
                field="quantity",
                value=instruction.quantity,
                owner=instruction.owner,
            )
        if not math.isfinite(instruction.price) or instruction.price <= 0:
            raise InvalidInstructionError(
                f"Price must be a positive number, got {instruction.price}",
                field="price",
                value=instruction.price,
                owner=instruction.owner,
            )

    def _buy(self, state: LedgerState, account: Account, owner: Participant,
             instruction: TradeInstruction) -> str:
        quantity, price = instruction.quantity, instruction.price
        amount = self.trade_amount(quantity, price)

        if amount > account.available_funds:
            raise InsufficientFundsError(
                "Insufficient available funds",
                required_amount=amount,
                available_amount=account.available_funds,
                owner=owner.value,
            )

        account.available_funds -= amount
        account.invested_funds += amount

        holding = state.find_holding(owner, instruction.code)
        if holding is not None:
            # Weighted by the quantity held before this buy
            old_quantity = holding.quantity
            total_cost = old_quantity * holding.average_buy_price + quantity * price
            holding.quantity = old_quantity + quantity
            holding.average_buy_price = total_cost / holding.quantity
        else:
            holding = Holding(
                id=self.id_generator.next_id(),
                code=instruction.code,
                name=instruction.name or instruction.code,
                quantity=quantity,
                average_buy_price=price,
                current_price=price,
                owner=owner,
            )
            state.holdings.append(holding)
        holding.recalculate_profit(self.lot_size)

        logger.info("Buy applied",
                    owner=owner.value,
                    code=instruction.code,
                    quantity=quantity,
                    price=price,
                    amount=amount,
                    average_buy_price=holding.average_buy_price)

        return f"買入{holding.name}({holding.code}) {quantity}張，價格{format_price(price)}元"

    def _sell(self, state: LedgerState, account: Account, owner: Participant,
              instruction: TradeInstruction) -> str:
        quantity, price = instruction.quantity, instruction.price

        holding = state.find_holding(owner, instruction.code)
        if holding is None or holding.quantity < quantity:
            raise InsufficientHoldingsError(
                "Insufficient holdings",
                code_requested=instruction.code,
                requested_quantity=quantity,
                held_quantity=holding.quantity if holding else 0,
                owner=owner.value,
            )

        sell_amount = self.trade_amount(quantity, price)
        buy_amount = self.trade_amount(quantity, holding.average_buy_price)
        realized = sell_amount - buy_amount

        account.available_funds += sell_amount
        account.invested_funds -= buy_amount

        state.team.total_profit += realized
        state.team.current_assets += realized

        if holding.quantity == quantity:
            state.holdings.remove(holding)
        else:
            holding.quantity -= quantity
            holding.recalculate_profit(self.lot_size)

        logger.info("Sell applied",
                    owner=owner.value,
                    code=instruction.code,
                    quantity=quantity,
                    price=price,
                    realized_profit=realized)

        name = instruction.name or holding.name
        return f"賣出{name}({holding.code}) {quantity}張，價格{format_price(price)}元"

    def _recompute_aggregate(self, state: LedgerState) -> None:
        team = state.team
        team.total_stock_count = len(state.holdings)
        team.total_transaction_count += 1
        team.investment_ratio = state.total_invested() / team.initial_assets * 100
