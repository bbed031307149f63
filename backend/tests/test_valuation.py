import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from classfolio.core.exceptions import InvalidArgument, ZeroInitialValueError
from classfolio.models.holding import Holding
from classfolio.services.quotes.base import StockQuote
from classfolio.services.valuation import valuate

from conftest import NOW


def make_holding(shares=1170, purchase_price="85.50", initial_value="100035.00", **fields):
    return Holding(
        user_id=fields.get("user_id", uuid.uuid4()),
        stock_symbol=fields.get("stock_symbol", "SHOP.TO"),
        purchase_price=Decimal(purchase_price),
        shares=shares,
        initial_value=Decimal(initial_value),
        purchase_date=fields.get("purchase_date", NOW - timedelta(days=10, hours=5)),
    )


def make_quote(price="88.25", symbol="SHOP.TO"):
    return StockQuote(symbol=symbol, current_price=Decimal(price), last_updated=NOW, company_name="Shopify Inc.")


def test_valuation_example():
    valuation = valuate(make_holding(), make_quote(), now=NOW)

    assert valuation.current_value == Decimal("103252.50")
    assert valuation.total_return == Decimal("3217.50")
    assert abs(valuation.return_percentage - Decimal("3.22")) < Decimal("0.01")
    assert valuation.days_held == 10
    assert valuation.company_name == "Shopify Inc."


def test_current_value_is_shares_times_price():
    holding = make_holding(shares=1169, initial_value="99949.50")
    valuation = valuate(holding, make_quote("72.13"), now=NOW)

    assert valuation.current_value == 1169 * Decimal("72.13")
    assert valuation.total_return == valuation.current_value - Decimal("99949.50")
    assert valuation.return_percentage == valuation.total_return / Decimal("99949.50") * 100
    assert valuation.return_percentage < 0


def test_symbol_mismatch_is_rejected():
    with pytest.raises(InvalidArgument):
        valuate(make_holding(), make_quote(symbol="RY.TO"), now=NOW)


def test_zero_initial_value_is_rejected():
    with pytest.raises(ZeroDivisionError):
        valuate(make_holding(initial_value="0"), make_quote(), now=NOW)
    with pytest.raises(ZeroInitialValueError):
        valuate(make_holding(initial_value="0"), make_quote(), now=NOW)


def test_days_held_floors_partial_days():
    holding = make_holding(purchase_date=NOW - timedelta(hours=23, minutes=59))
    assert valuate(holding, make_quote(), now=NOW).days_held == 0


def test_naive_purchase_date_is_treated_as_utc():
    holding = make_holding(purchase_date=(NOW - timedelta(days=3)).replace(tzinfo=None))
    assert valuate(holding, make_quote(), now=NOW).days_held == 3
