import asyncio
from typing import Dict, Optional, Tuple

from core.config.settings import QuoteSettings
from core.logging import get_logger
from core.trading.interfaces import QuoteLookup
from core.trading.ledger_models import Quote


# Known instruments: code -> (quote, name fragments that identify it)
DEFAULT_CATALOG: Dict[str, Tuple[Quote, Tuple[str, ...]]] = {
    "2330": (Quote(code="2330", name="台積電", price=580.0, volume=15000), ("台積",)),
    "2454": (Quote(code="2454", name="聯發科", price=1100.0, volume=8500), ("聯發",)),
}


class SimulatedQuoteLookup(QuoteLookup):
    """
    Stand-in for a market-data provider.

    Classifies the free-text query against a small catalog by exact code or
    name fragment, falls back to the default instrument otherwise, and
    answers after a fixed delay to mimic network latency.
    """

    def __init__(self, settings: Optional[QuoteSettings] = None,
                 catalog: Optional[Dict[str, Tuple[Quote, Tuple[str, ...]]]] = None):
        self.settings = settings or QuoteSettings()
        self.catalog = catalog or DEFAULT_CATALOG
        if self.settings.default_code not in self.catalog:
            raise ValueError(f"Default quote code {self.settings.default_code!r} is not in the catalog")
        self.logger = get_logger("services.quotes.lookup", component="quotes")

    def classify(self, query: str) -> Quote:
        text = query.strip()
        for code, (quote, fragments) in self.catalog.items():
            if text == code or any(fragment in text for fragment in fragments):
                return quote.model_copy()
        return self.catalog[self.settings.default_code][0].model_copy()

    async def lookup(self, query: str) -> Quote:
        await asyncio.sleep(self.settings.delay_seconds)
        quote = self.classify(query)
        self.logger.debug("Quote resolved", query=query, code=quote.code)
        return quote
