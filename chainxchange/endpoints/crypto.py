import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from chainxchange.core.constants import DEFAULT_CHART_TIMEFRAME, CHART_TIMEFRAMES, DEFAULT_CHART_DAYS
from chainxchange.core.database import get_db
from chainxchange.crud.trading import holding as crud_holding
from chainxchange.models.user import User
from chainxchange.schemas.market import ChartData, CoinDetail, CoinPage, MarketList
from chainxchange.schemas.response import APIResponse
from chainxchange.schemas.trading import (
    Holding,
    LeaderboardEntry,
    LimitOrder,
    LimitOrderCreate,
    PortfolioHistoryPoint,
    TradeRequest,
    TradeResult,
    TransactionHistory,
)
from chainxchange.services.fallback import (
    FALLBACK_COINS,
    fallback_coin_detail,
    generate_mock_chart,
    get_base_price,
)
from chainxchange.services.market_data import MarketDataService, with_timeout
from chainxchange.services.trading import MARKET_DATA_FAILURES, TradingService
from chainxchange.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()


def project_coin_detail(coin: dict, coin_id: str) -> CoinDetail:
    market = coin.get("market_data") or {}

    def usd(field):
        value = market.get(field)
        return value.get("usd") if isinstance(value, dict) else None

    return CoinDetail(
        id=coin.get("id") or coin_id,
        name=coin.get("name"),
        symbol=(coin.get("symbol") or "").upper() or None,
        image=(coin.get("image") or {}).get("large"),
        current_price=usd("current_price"),
        price_change_24h=market.get("price_change_24h"),
        price_change_percentage_24h=market.get("price_change_percentage_24h"),
        market_cap=usd("market_cap"),
        market_cap_rank=coin.get("market_cap_rank"),
        total_volume=usd("total_volume"),
        high_24h=usd("high_24h"),
        low_24h=usd("low_24h"),
        ath=usd("ath"),
        ath_date=usd("ath_date"),
        atl=usd("atl"),
        atl_date=usd("atl_date"),
        circulating_supply=market.get("circulating_supply"),
        total_supply=market.get("total_supply"),
        max_supply=market.get("max_supply"),
        description=(coin.get("description") or {}).get("en"),
        genesis_date=coin.get("genesis_date"),
    )

# ============ MARKET VIEWS ============

@router.get("/", response_model=APIResponse[MarketList])
async def get_markets(market_data: MarketDataService = Depends(deps.get_market_data)):
    try:
        coins = await with_timeout(market_data.get_markets())
    except MARKET_DATA_FAILURES as e:
        logger.error(f"Markets unavailable, using fallback data: {e!r}")
        return APIResponse(
            message="Unable to load market data, using fallback data",
            data=MarketList(coins=FALLBACK_COINS, live=False)
        )
    return APIResponse(message="Markets retrieved", data=MarketList(coins=coins))

@router.get("/detail/{coin_id}", response_model=APIResponse[CoinPage])
async def get_coin_detail(
    coin_id: str,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(deps.get_optional_user),
    market_data: MarketDataService = Depends(deps.get_market_data),
):
    coin_id = coin_id.lower()
    holding = crud_holding.get_by_user_and_coin(db, user_id=user.id, coin_id=coin_id) if user else None
    user_holding = Holding.model_validate(holding).model_dump() if holding else None

    try:
        coin = await with_timeout(market_data.get_coin_detail(coin_id))
        detail = project_coin_detail(coin, coin_id)
    except MARKET_DATA_FAILURES as e:
        logger.error(f"Coin detail unavailable for {coin_id}: {e!r}")
        return APIResponse(
            message="Using fallback data - live prices temporarily unavailable",
            data=CoinPage(
                coin=CoinDetail(**fallback_coin_detail(coin_id)),
                user_holding=user_holding,
                chart_data=generate_mock_chart(get_base_price(coin_id), "1"),
                live=False,
            )
        )
    return APIResponse(message="Coin detail retrieved", data=CoinPage(coin=detail, user_holding=user_holding))

@router.get("/chart-data/{coin_id}", response_model=APIResponse[ChartData])
async def get_chart_data(
    coin_id: str,
    timeframe: Optional[str] = None,
    days: Optional[str] = None,
    market_data: MarketDataService = Depends(deps.get_market_data),
):
    coin_id = coin_id.lower()
    timeframe = (timeframe or days or DEFAULT_CHART_TIMEFRAME).lower()
    try:
        chart = await with_timeout(market_data.get_market_chart(coin_id, timeframe, days))
        if not isinstance(chart, dict) or not isinstance(chart.get("prices"), list):
            raise ValueError("Invalid chart data structure")
        return APIResponse(message="Chart data retrieved", data=ChartData(**chart))
    except (*MARKET_DATA_FAILURES, ValueError) as e:
        logger.error(f"Chart data unavailable for {coin_id} ({timeframe}): {e!r}")

    selected = CHART_TIMEFRAMES.get(timeframe) or {"days": days or DEFAULT_CHART_DAYS}
    mock = generate_mock_chart(get_base_price(coin_id), selected["days"])
    return APIResponse(message="Using generated chart data", data=ChartData(**mock, live=False))

# ============ TRADING ============

@router.post("/buy", response_model=APIResponse[TradeResult], status_code=status.HTTP_201_CREATED)
async def buy_crypto(
    trade_in: TradeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    result = await trading_service.buy(db, user, trade_in)
    return APIResponse(message="Purchase successful", data=result)

@router.post("/sell", response_model=APIResponse[TradeResult])
async def sell_crypto(
    trade_in: TradeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    result = await trading_service.sell(db, user, trade_in)
    return APIResponse(message=f"Successfully sold {trade_in.quantity} {trade_in.coin_id}", data=result)

@router.get("/history", response_model=APIResponse[TransactionHistory])
async def get_history(
    type: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    history = trading_service.get_history(db, user, type=type, sort_by=sort_by, order=order)
    return APIResponse(message="Transaction history retrieved", data=history)

@router.get("/leaderboard", response_model=APIResponse[List[LeaderboardEntry]])
async def get_leaderboard(
    db: Session = Depends(get_db),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    leaderboard = await trading_service.get_leaderboard(db)
    return APIResponse(message="Leaderboard retrieved", data=leaderboard)

@router.post("/limit-orders", response_model=APIResponse[LimitOrder], status_code=status.HTTP_201_CREATED)
async def place_limit_order(
    order_in: LimitOrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    order = trading_service.place_limit_order(db, user, order_in)
    return APIResponse(message="Limit order placed successfully", data=order)

@router.get("/portfolio-history", response_model=APIResponse[List[PortfolioHistoryPoint]])
async def get_portfolio_history(
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
    trading_service: TradingService = Depends(deps.get_trading_service),
):
    history = trading_service.get_portfolio_history(db, user)
    return APIResponse(message="Portfolio history retrieved", data=history)
