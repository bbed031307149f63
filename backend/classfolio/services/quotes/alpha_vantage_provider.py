import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from classfolio.core.config import settings
from classfolio.core.exceptions import ConfigurationError, UpstreamUnavailable
from classfolio.services.market_status import market_status
from classfolio.services.quotes.base import QuoteProvider, StockQuote
from classfolio.services.symbols import normalize_symbol, provider_symbol

logger = logging.getLogger(__name__)

# Keys in the GLOBAL_QUOTE payload
QUOTE_KEY = "Global Quote"
PRICE_KEY = "05. price"
PREVIOUS_CLOSE_KEY = "08. previous close"
CHANGE_KEY = "09. change"
CHANGE_PERCENT_KEY = "10. change percent"

# Keys Alpha Vantage returns with HTTP 200 instead of a quote
RATE_LIMIT_KEYS = ("Note", "Information")
ERROR_KEY = "Error Message"


class AlphaVantageProvider(QuoteProvider):
    """
    Real-time TSX quotes from the Alpha Vantage GLOBAL_QUOTE endpoint.
    Credentials come from classfolio.core.config settings unless given.
    """

    name = "alpha_vantage"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_sec: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = settings.ALPHA_VANTAGE_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.ALPHA_VANTAGE_BASE_URL
        self.timeout_sec = (
            settings.QUOTE_REQUEST_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        )
        self.transport = transport

    async def fetch_quote(self, symbol: str) -> StockQuote:
        if not self.api_key:
            raise ConfigurationError("Alpha Vantage API key is not configured")

        canonical = normalize_symbol(symbol)
        params = {
            "function": "GLOBAL_QUOTE",
            "symbol": provider_symbol(canonical),
            "apikey": self.api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_sec, transport=self.transport
            ) as client:
                response = await client.get(self.base_url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"Quote request for {canonical} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Quote request for {canonical} failed: {e}") from e

        if response.status_code in (401, 403):
            raise ConfigurationError(
                f"Alpha Vantage rejected credentials (HTTP {response.status_code})"
            )
        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"Alpha Vantage API error: HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Alpha Vantage returned a non-JSON body") from e

        return self._parse_quote(canonical, data)

    def _parse_quote(self, symbol: str, data: Any) -> StockQuote:
        if not isinstance(data, dict):
            raise UpstreamUnavailable("Invalid response from Alpha Vantage API")

        if data.get(ERROR_KEY):
            raise UpstreamUnavailable(str(data[ERROR_KEY]))

        for key in RATE_LIMIT_KEYS:
            if data.get(key):
                raise UpstreamUnavailable(
                    "API call frequency limit reached", code="RATE_LIMIT"
                )

        quote = data.get(QUOTE_KEY)
        if not quote or not quote.get(PRICE_KEY):
            raise UpstreamUnavailable("Invalid response from Alpha Vantage API")

        price = self._decimal(quote.get(PRICE_KEY))
        if price is None or not price.is_finite() or price <= 0:
            raise UpstreamUnavailable(f"Invalid price for {symbol}: {quote.get(PRICE_KEY)}")

        change_percent = quote.get(CHANGE_PERCENT_KEY)
        if isinstance(change_percent, str):
            change_percent = change_percent.replace("%", "")

        now = datetime.now(timezone.utc)
        return StockQuote(
            symbol=symbol,
            current_price=price,
            previous_close=self._decimal(quote.get(PREVIOUS_CLOSE_KEY)),
            day_change=self._decimal(quote.get(CHANGE_KEY)),
            day_change_percent=self._decimal(change_percent),
            market_status=market_status(now),
            last_updated=now,
        )

    @staticmethod
    def _decimal(value: Any) -> Optional[Decimal]:
        if value is None or value == "":
            return None
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as e:
            raise UpstreamUnavailable(f"Unparseable number in quote: {value!r}") from e
