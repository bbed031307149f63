"""Symbol normalization between the canonical TSX form and the provider form."""

from classfolio.core.config import settings
from classfolio.core.exceptions import InvalidArgument


def normalize_symbol(symbol: str) -> str:
    """Return the canonical exchange-suffixed symbol, e.g. 'shop' -> 'SHOP.TO'."""
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise InvalidArgument("Stock symbol is required")
    suffix = settings.EXCHANGE_SUFFIX.upper()
    if cleaned.endswith(suffix):
        if cleaned == suffix:
            raise InvalidArgument("Stock symbol is required")
        return cleaned
    return f"{cleaned}{suffix}"


def provider_symbol(symbol: str) -> str:
    """Map a canonical symbol to the quote provider's format, e.g. 'SHOP.TO' -> 'SHOP.TRT'."""
    canonical = normalize_symbol(symbol)
    base = canonical[: -len(settings.EXCHANGE_SUFFIX)]
    return f"{base}.{settings.PROVIDER_EXCHANGE_CODE}"
