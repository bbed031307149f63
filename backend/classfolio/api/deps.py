"""
Request-scoped service construction for the API routers.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.database import get_db
from classfolio.services.class_service import ClassService
from classfolio.services.investment_service import InvestmentService
from classfolio.services.leaderboard_service import LeaderboardService
from classfolio.services.price_freshness_service import PriceFreshnessService
from classfolio.services.quotes import QuoteProvider, get_quote_provider


def provide_quote_provider() -> QuoteProvider:
    return get_quote_provider()


def get_price_service(
    db: AsyncSession = Depends(get_db),
    provider: QuoteProvider = Depends(provide_quote_provider),
) -> PriceFreshnessService:
    return PriceFreshnessService(session=db, provider=provider)


def get_investment_service(
    db: AsyncSession = Depends(get_db),
    price_service: PriceFreshnessService = Depends(get_price_service),
) -> InvestmentService:
    return InvestmentService(session=db, price_service=price_service)


def get_class_service(db: AsyncSession = Depends(get_db)) -> ClassService:
    return ClassService(session=db)


def get_leaderboard_service(
    db: AsyncSession = Depends(get_db),
    price_service: PriceFreshnessService = Depends(get_price_service),
    class_service: ClassService = Depends(get_class_service),
) -> LeaderboardService:
    return LeaderboardService(session=db, price_service=price_service, class_service=class_service)
