from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chainxchange.core.database import get_db
from chainxchange.models.user import User
from chainxchange.schemas.response import APIResponse
from chainxchange.schemas.trading import PortfolioSummary
from chainxchange.services.trading import TradingService
from chainxchange.utils import deps

router = APIRouter()

@router.get("", response_model=APIResponse[PortfolioSummary])
async def get_portfolio(
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    """Holdings valued at live prices; the valuation is cached for two minutes per user."""
    portfolio = await trading_service.get_portfolio(db, user)
    message = "Portfolio retrieved" if portfolio.live_prices else "Portfolio valued at cost - live prices unavailable"
    return APIResponse(message=message, data=portfolio)
