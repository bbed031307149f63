from typing import Dict, Type

from classfolio.services.quotes.base import QuoteProvider, StockQuote
from classfolio.services.quotes.alpha_vantage_provider import AlphaVantageProvider

PROVIDERS: Dict[str, Type[QuoteProvider]] = {
    "alpha_vantage": AlphaVantageProvider,
}


def get_quote_provider(name: str = "alpha_vantage") -> QuoteProvider:
    """Factory to get provider instance."""
    provider_class = PROVIDERS.get(name)
    if not provider_class:
        raise ValueError(f"Unknown quote provider: {name}")
    return provider_class()


__all__ = ["QuoteProvider", "StockQuote", "AlphaVantageProvider", "get_quote_provider"]
