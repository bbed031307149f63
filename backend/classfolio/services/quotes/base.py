from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class StockQuote:
    """A quote for one exchange-suffixed symbol, as cached or as freshly fetched."""
    symbol: str
    current_price: Decimal
    last_updated: Optional[datetime]
    company_name: Optional[str] = None
    previous_close: Optional[Decimal] = None
    day_change: Optional[Decimal] = None
    day_change_percent: Optional[Decimal] = None
    market_status: Optional[str] = None
    # Set when a stale cached quote is served because the provider failed
    stale: bool = False

    def as_stale(self) -> "StockQuote":
        return replace(self, stale=True)


class QuoteProvider(ABC):
    """Abstract base class for real-time quote providers."""

    name: str = "base"

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> StockQuote:
        """
        Fetch the current quote for a canonical symbol.

        Raises ConfigurationError when credentials are missing or rejected,
        UpstreamUnavailable on any network, HTTP or parse failure.
        """
        raise NotImplementedError
