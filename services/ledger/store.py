from datetime import datetime, timezone
from typing import Callable, Optional

from core.config.settings import LedgerSettings
from core.logging import get_audit_logger_safe, get_trading_logger_safe
from core.trading.ledger_models import ActivityRecord, LedgerState, TradeInstruction
from core.utils.exceptions import TradeRejectedError, create_error_context
from core.utils.ids import MonotonicIdGenerator
from services.ledger.processor import TradeProcessor
from services.ledger.seed import build_seed_state


class LedgerStore:
    """
    Authoritative in-memory ledger.

    All reads go through ``snapshot`` (a deep copy) and the only trade write
    path is ``apply_trade``, which runs the processor against a working copy
    and swaps it in on success. Callers on the event loop therefore never
    observe a half-applied trade.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None,
                 initial_state: Optional[LedgerState] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.settings = settings or LedgerSettings()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.id_generator = MonotonicIdGenerator()
        self.processor = TradeProcessor(
            lot_size=self.settings.lot_size,
            id_generator=self.id_generator,
            clock=self.clock,
        )
        self.logger = get_trading_logger_safe("services.ledger.store")
        self.audit_logger = get_audit_logger_safe("services.ledger.audit")

        self._initial_state = (initial_state or build_seed_state(self.settings.lot_size)).model_copy(deep=True)
        self._state = self._initial_state.model_copy(deep=True)
        self._observe_ids(self._state)

    def snapshot(self) -> LedgerState:
        """Immutable full copy of the ledger."""
        return self._state.model_copy(deep=True)

    def apply_trade(self, instruction: TradeInstruction, actor: Optional[str] = None) -> ActivityRecord:
        """Validate and commit one trade atomically.

        Raises:
            TradeRejectedError: the instruction was rejected; nothing changed.
        """
        draft = self._state.model_copy(deep=True)
        try:
            record = self.processor.execute(draft, instruction, actor)
        except TradeRejectedError as e:
            self.logger.warning("Trade rejected",
                                **create_error_context(e, "apply_trade", {
                                    "kind": instruction.kind.value,
                                    "code": instruction.code,
                                    "quantity": instruction.quantity,
                                    "price": instruction.price,
                                }))
            raise

        self._prepend_activity(draft, record)
        self._state = draft

        self.audit_logger.info("Trade committed",
                               activity_id=record.id,
                               actor=record.actor,
                               description=record.description,
                               total_transactions=draft.team.total_transaction_count,
                               investment_ratio=draft.team.investment_ratio)
        return record.model_copy()

    def record_search(self, actor: Optional[str], query: str) -> ActivityRecord:
        """Log an instrument search in the activity feed."""
        record = ActivityRecord(
            id=self.id_generator.next_id(),
            timestamp=self.clock(),
            actor=actor,
            description=f"搜尋股票: {query}",
        )
        self._prepend_activity(self._state, record)
        return record.model_copy()

    def reset(self) -> None:
        """Restore the opening state."""
        self._state = self._initial_state.model_copy(deep=True)
        self.logger.info("Ledger reset to initial state")

    def _prepend_activity(self, state: LedgerState, record: ActivityRecord) -> None:
        state.activities.insert(0, record)
        limit = self.settings.activity_log_limit
        if len(state.activities) > limit:
            del state.activities[limit:]

    def _observe_ids(self, state: LedgerState) -> None:
        for holding in state.holdings:
            self.id_generator.observe(holding.id)
        for activity in state.activities:
            self.id_generator.observe(activity.id)
