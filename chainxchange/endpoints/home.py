import logging
from fastapi import APIRouter, Depends

from chainxchange.schemas.market import MarketList
from chainxchange.schemas.response import APIResponse
from chainxchange.services.fallback import FALLBACK_COINS
from chainxchange.services.market_data import MarketDataService, with_timeout
from chainxchange.services.trading import MARKET_DATA_FAILURES
from chainxchange.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_model=APIResponse[MarketList])
async def home(market_data: MarketDataService = Depends(deps.get_market_data)):
    """Top 100 coins by market cap for the landing page."""
    try:
        coins = await with_timeout(market_data.get_home_top_cryptos())
    except MARKET_DATA_FAILURES as e:
        logger.error(f"Home page market data unavailable: {e!r}")
        return APIResponse(
            message="Using fallback data - live prices temporarily unavailable",
            data=MarketList(coins=FALLBACK_COINS, live=False)
        )
    return APIResponse(message="Top cryptocurrencies retrieved", data=MarketList(coins=coins))
