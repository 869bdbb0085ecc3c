from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from chainxchange.core.constants import TransactionTypeEnum, LimitOrderStatusEnum


class TradeRequest(BaseModel):
    """Buy or sell order executed at the quoted price."""
    coin_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    price: float = Field(..., gt=0)

    @field_validator("coin_id")
    def strip_coin_id(cls, v):
        if not v.strip():
            raise ValueError("coin_id cannot be empty")
        return v.strip().lower()

class TradeResult(BaseModel):
    coin_id: str
    quantity: float
    price: float
    total: float
    wallet: float
    holding_quantity: float

class HoldingCreate(BaseModel):
    user_id: int
    coin_id: str
    quantity: float
    average_buy_price: float
    crypto: Optional[str] = None
    image: Optional[str] = None
    symbol: Optional[str] = None

class HoldingUpdate(BaseModel):
    quantity: Optional[float] = None
    average_buy_price: Optional[float] = None
    crypto: Optional[str] = None
    image: Optional[str] = None
    symbol: Optional[str] = None

class Holding(BaseModel):
    id: int
    coin_id: str
    quantity: float
    average_buy_price: float
    crypto: Optional[str] = None
    image: Optional[str] = None
    symbol: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class TransactionCreate(BaseModel):
    user_id: int
    type: TransactionTypeEnum
    coin_id: str
    quantity: float
    price: float
    total_cost: Optional[float] = None
    sell_value: Optional[float] = None

class TransactionUpdate(BaseModel):
    pass

class HistoryEntry(BaseModel):
    id: int
    type: TransactionTypeEnum
    coin_id: str
    coin_name: str
    quantity: float
    price: float
    total_value: float
    is_buy: bool
    timestamp: Optional[datetime] = None
    formatted_date: Optional[str] = None

class PortfolioHolding(BaseModel):
    coin_id: str
    crypto: str
    symbol: str
    image: str
    quantity: float
    average_buy_price: float
    current_price: float
    current_value: float
    invested: float
    profit_loss: float
    profit_loss_percentage: float
    price_change_24h: float = 0.0

class PortfolioValuation(BaseModel):
    holdings: List[PortfolioHolding]
    total_portfolio_value: float
    total_invested: float
    total_profit_loss: float
    total_profit_loss_percentage: float

class PortfolioSummary(PortfolioValuation):
    wallet: float
    live_prices: bool = True

class LeaderboardEntry(BaseModel):
    rank: int
    username: str
    wallet: float
    holdings_value: float
    total_value: float
    achievements_count: int = 0

class LimitOrderCreate(BaseModel):
    coin_id: str = Field(..., min_length=1)
    type: TransactionTypeEnum
    quantity: float = Field(..., gt=0)
    limit_price: float = Field(..., gt=0)

class LimitOrderUpdate(BaseModel):
    status: Optional[LimitOrderStatusEnum] = None

class LimitOrder(BaseModel):
    id: int
    coin_id: str
    type: TransactionTypeEnum
    quantity: float
    limit_price: float
    status: LimitOrderStatusEnum
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class PortfolioHistoryPoint(BaseModel):
    timestamp: datetime
    total_net_worth: float

class HistoryOptions(BaseModel):
    type: str
    sort_by: str
    order: str

class TransactionHistory(BaseModel):
    transactions: List[HistoryEntry]
    current_options: HistoryOptions
