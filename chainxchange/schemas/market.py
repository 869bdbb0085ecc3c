from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class CoinDetail(BaseModel):
    id: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    image: Optional[str] = None
    current_price: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    ath: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_date: Optional[str] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    description: Optional[str] = None
    genesis_date: Optional[str] = None

class CoinPage(BaseModel):
    coin: CoinDetail
    user_holding: Optional[Dict[str, Any]] = None
    chart_data: Optional[Dict[str, Any]] = None
    news: List[Dict[str, Any]] = []
    live: bool = True

class MarketList(BaseModel):
    coins: List[Dict[str, Any]]
    live: bool = True

class ChartData(BaseModel):
    prices: List[List[float]]
    market_caps: Optional[List[List[float]]] = None
    total_volumes: Optional[List[List[float]]] = None
    live: bool = True
