from enum import Enum


class TransactionTypeEnum(str, Enum):
    BUY = "buy"
    SELL = "sell"

class PaymentTypeEnum(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"

class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

class LimitOrderStatusEnum(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    CANCELLED = "cancelled"

class SortOrderEnum(str, Enum):
    ASC = "asc"
    DESC = "desc"

# Chart timeframes accepted by /crypto/chart-data mapped to market_chart query params
CHART_TIMEFRAMES = {
    "1h": {"days": "1", "interval": "minute"},
    "24h": {"days": "1"},
    "7d": {"days": "7"},
    "1m": {"days": "30"},
    "3m": {"days": "90"},
    "1y": {"days": "365"},
    "all": {"days": "max"},
}
DEFAULT_CHART_TIMEFRAME = "24h"
DEFAULT_CHART_DAYS = "7"

HISTORY_SORT_FIELDS = ("timestamp", "type", "price", "quantity", "total_cost")

DEFAULT_COIN_IMAGE = "/images/default-coin.svg"

LEADERBOARD_SIZE = 50
WHALE_TRADE_THRESHOLD = 10000
