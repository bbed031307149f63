# Base
from classfolio.models.base import TimestampMixin, IdMixin

# Market Data
from classfolio.models.stock_price import StockPrice

# Investments
from classfolio.models.holding import Holding

# Classes
from classfolio.models.school_class import SchoolClass
from classfolio.models.class_membership import ClassMembership

__all__ = [
    "TimestampMixin",
    "IdMixin",
    "StockPrice",
    "Holding",
    "SchoolClass",
    "ClassMembership",
]
