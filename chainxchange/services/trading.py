import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chainxchange.core.cache_config import CACHE_TTL, build_key, invalidation_keys
from chainxchange.core.constants import (
    DEFAULT_COIN_IMAGE,
    HISTORY_SORT_FIELDS,
    LEADERBOARD_SIZE,
    LimitOrderStatusEnum,
    SortOrderEnum,
    TransactionTypeEnum,
    WHALE_TRADE_THRESHOLD,
)
from chainxchange.core.exceptions import MarketDataError
from chainxchange.crud.trading import (
    holding as crud_holding,
    limit_order as crud_limit_order,
    portfolio_history as crud_portfolio_history,
    transaction as crud_transaction,
)
from chainxchange.crud.user import user as crud_user
from chainxchange.models.user import User
from chainxchange.schemas.trading import (
    HistoryEntry,
    HistoryOptions,
    LeaderboardEntry,
    LimitOrder,
    LimitOrderCreate,
    PortfolioHistoryPoint,
    PortfolioHolding,
    PortfolioSummary,
    TradeRequest,
    TradeResult,
    TransactionHistory,
)
from chainxchange.services.fallback import coin_display_name, coin_display_symbol
from chainxchange.services.market_data import MarketDataService, with_timeout

logger = logging.getLogger(__name__)

ACHIEVEMENTS = {
    "first_trade": {
        "name": "First Steps",
        "description": "Completed your first trade on ChainXChange.",
        "icon": "\U0001F3AF",
    },
    "whale": {
        "name": "Whale",
        "description": f"Executed a trade worth over ${WHALE_TRADE_THRESHOLD:,}.",
        "icon": "\U0001F40B",
    },
}

MARKET_DATA_FAILURES = (MarketDataError, asyncio.TimeoutError)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """``DD/MM/YYYY hh:mm AM`` as shown in the trade history."""
    if value is None:
        return None
    return value.strftime("%d/%m/%Y %I:%M %p")


class TradingService:

    def __init__(self, market_data: MarketDataService):
        self.market_data = market_data

    # ============ ORDERS ============

    async def buy(self, db: Session, user: User, trade_in: TradeRequest) -> TradeResult:
        total_cost = trade_in.quantity * trade_in.price
        if user.wallet < total_cost:
            raise self._insufficient_funds()

        coin = await self._get_coin_display(trade_in.coin_id)

        # The balance may have moved while we waited on coin info; the guarded
        # debit re-checks it in the database.
        try:
            debited = crud_user.debit_wallet(db, user_id=user.id, amount=total_cost)
            if debited:
                self._credit_holding(db, user.id, trade_in, total_cost, coin)
                crud_transaction.create(
                    db,
                    obj_in={
                        "user_id": user.id,
                        "type": TransactionTypeEnum.BUY,
                        "coin_id": trade_in.coin_id,
                        "quantity": trade_in.quantity,
                        "price": trade_in.price,
                        "total_cost": total_cost,
                    },
                    commit=False,
                )
                db.commit()
            else:
                db.rollback()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Buy failed for user {user.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not complete purchase"
            )
        if not debited:
            raise self._insufficient_funds()

        db.refresh(user)
        position = crud_holding.get_by_user_and_coin(db, user_id=user.id, coin_id=trade_in.coin_id)
        await self._invalidate_portfolio(user.id)
        self._award_achievements(db, user, total_cost)

        logger.info(
            f"Buy executed: user={user.id}, coin={trade_in.coin_id}, "
            f"qty={trade_in.quantity}, price={trade_in.price}"
        )
        return TradeResult(
            coin_id=trade_in.coin_id,
            quantity=trade_in.quantity,
            price=trade_in.price,
            total=total_cost,
            wallet=user.wallet,
            holding_quantity=position.quantity,
        )

    def _credit_holding(self, db: Session, user_id: int, trade_in: TradeRequest, total_cost: float, coin: Dict[str, str]):
        added = crud_holding.add_quantity(
            db, user_id=user_id, coin_id=trade_in.coin_id, quantity=trade_in.quantity, cost=total_cost, **coin
        )
        if not added:
            # A concurrent first buy of the same coin fails on the (user_id, coin_id)
            # constraint and rolls back as a whole.
            crud_holding.create(
                db,
                obj_in={
                    "user_id": user_id,
                    "coin_id": trade_in.coin_id,
                    "quantity": trade_in.quantity,
                    "average_buy_price": trade_in.price,
                    **coin,
                },
                commit=False,
            )

    def _insufficient_funds(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Insufficient funds"
        )

    async def sell(self, db: Session, user: User, trade_in: TradeRequest) -> TradeResult:
        sell_value = trade_in.quantity * trade_in.price
        try:
            removed = crud_holding.remove_quantity(
                db, user_id=user.id, coin_id=trade_in.coin_id, quantity=trade_in.quantity
            )
            if removed:
                crud_user.credit_wallet(db, user_id=user.id, amount=sell_value)
                crud_transaction.create(
                    db,
                    obj_in={
                        "user_id": user.id,
                        "type": TransactionTypeEnum.SELL,
                        "coin_id": trade_in.coin_id,
                        "quantity": trade_in.quantity,
                        "price": trade_in.price,
                        "sell_value": sell_value,
                    },
                    commit=False,
                )
                db.commit()
            else:
                db.rollback()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Sell failed for user {user.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not complete sale"
            )
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Insufficient cryptocurrency holdings"
            )

        db.refresh(user)
        position = crud_holding.get_by_user_and_coin(db, user_id=user.id, coin_id=trade_in.coin_id)
        await self._invalidate_portfolio(user.id)

        logger.info(
            f"Sell executed: user={user.id}, coin={trade_in.coin_id}, "
            f"qty={trade_in.quantity}, price={trade_in.price}"
        )
        return TradeResult(
            coin_id=trade_in.coin_id,
            quantity=trade_in.quantity,
            price=trade_in.price,
            total=sell_value,
            wallet=user.wallet,
            holding_quantity=position.quantity if position else 0.0,
        )

    async def _get_coin_display(self, coin_id: str) -> Dict[str, str]:
        try:
            info = await with_timeout(self.market_data.get_coin_info(coin_id))
        except MARKET_DATA_FAILURES as e:
            logger.warning(f"Coin info unavailable for {coin_id}, deriving from id: {e!r}")
            info = {}

        image = info.get("image") if isinstance(info.get("image"), dict) else {}
        return {
            "crypto": info.get("name") or coin_display_name(coin_id),
            "symbol": (info.get("symbol") or "").upper() or coin_display_symbol(coin_id),
            "image": image.get("large") or image.get("small") or DEFAULT_COIN_IMAGE,
        }

    async def _invalidate_portfolio(self, user_id: int):
        await self.market_data.invalidate(*invalidation_keys("trade_execution", user_id))

    def _award_achievements(self, db: Session, user: User, trade_value: float):
        try:
            unlocked = {a.get("name") for a in (user.achievements or [])}
            new_achievements = []
            if ACHIEVEMENTS["first_trade"]["name"] not in unlocked:
                new_achievements.append(ACHIEVEMENTS["first_trade"])
            if trade_value > WHALE_TRADE_THRESHOLD and ACHIEVEMENTS["whale"]["name"] not in unlocked:
                new_achievements.append(ACHIEVEMENTS["whale"])
            if not new_achievements:
                return

            now = datetime.now(timezone.utc).isoformat()
            user.achievements = list(user.achievements or []) + [
                {**achievement, "unlocked_at": now} for achievement in new_achievements
            ]
            db.add(user)
            db.commit()
            logger.info(f"User {user.id} unlocked {[a['name'] for a in new_achievements]}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Achievement update failed for user {user.id}: {e}")

    # ============ PORTFOLIO ============

    async def get_portfolio(self, db: Session, user: User) -> PortfolioSummary:
        cache_key = build_key("portfolio", user.id)

        valuation = await self.market_data.get_cached(cache_key)
        if valuation is None:
            valuation = await self._value_portfolio(db, user.id)
            if valuation["live_prices"]:
                await self.market_data.store(cache_key, CACHE_TTL["portfolio"], valuation)

        return PortfolioSummary(**valuation, wallet=user.wallet)

    async def _value_portfolio(self, db: Session, user_id: int) -> Dict[str, Any]:
        positions = crud_holding.get_multi_by_user(db, user_id=user_id)
        holdings: List[PortfolioHolding] = []
        live_prices = True

        if positions:
            coin_ids = [p.coin_id for p in positions]
            try:
                prices, coins = await asyncio.gather(
                    with_timeout(self.market_data.get_portfolio_prices(coin_ids)),
                    with_timeout(self.market_data.get_portfolio_coins(coin_ids)),
                    return_exceptions=True,
                )
                for outcome in (prices, coins):
                    if isinstance(outcome, BaseException):
                        raise outcome
                coins_by_id = {coin.get("id"): coin for coin in coins or []}
                holdings = [
                    self._value_holding(db, p, prices.get(p.coin_id) or {}, coins_by_id.get(p.coin_id))
                    for p in positions
                ]
            except MARKET_DATA_FAILURES as e:
                logger.warning(f"Valuing portfolio of user {user_id} at cost: {e!r}")
                live_prices = False
                holdings = [self._value_at_cost(p) for p in positions]

        total_value = sum(h.current_value for h in holdings)
        total_invested = sum(h.invested for h in holdings)
        total_profit_loss = total_value - total_invested
        return {
            "holdings": [h.model_dump() for h in holdings],
            "total_portfolio_value": total_value,
            "total_invested": total_invested,
            "total_profit_loss": total_profit_loss,
            "total_profit_loss_percentage": (total_profit_loss / total_invested * 100) if total_invested > 0 else 0.0,
            "live_prices": live_prices,
        }

    def _value_holding(self, db: Session, position, price: dict, coin: Optional[dict]) -> PortfolioHolding:
        current_price = price.get("usd") or position.average_buy_price
        current_value = position.quantity * current_price
        invested = position.quantity * position.average_buy_price
        profit_loss = current_value - invested

        image, symbol, crypto = position.image, position.symbol, position.crypto
        if not image or not symbol:
            if coin:
                image = coin.get("image") or image
                symbol = (coin.get("symbol") or "").upper() or symbol
                crypto = coin.get("name") or crypto
                self._backfill_holding(db, position, image=image, symbol=symbol, crypto=crypto)

        return PortfolioHolding(
            coin_id=position.coin_id,
            crypto=crypto or coin_display_name(position.coin_id),
            symbol=symbol or position.coin_id.upper(),
            image=image or DEFAULT_COIN_IMAGE,
            quantity=position.quantity,
            average_buy_price=position.average_buy_price,
            current_price=current_price,
            current_value=current_value,
            invested=invested,
            profit_loss=profit_loss,
            profit_loss_percentage=(profit_loss / invested * 100) if invested > 0 else 0.0,
            price_change_24h=price.get("usd_24h_change") or 0.0,
        )

    def _value_at_cost(self, position) -> PortfolioHolding:
        invested = position.quantity * position.average_buy_price
        return PortfolioHolding(
            coin_id=position.coin_id,
            crypto=position.crypto or coin_display_name(position.coin_id),
            symbol=position.symbol or position.coin_id.upper(),
            image=position.image or DEFAULT_COIN_IMAGE,
            quantity=position.quantity,
            average_buy_price=position.average_buy_price,
            current_price=position.average_buy_price,
            current_value=invested,
            invested=invested,
            profit_loss=0.0,
            profit_loss_percentage=0.0,
        )

    def _backfill_holding(self, db: Session, position, **fields):
        try:
            crud_holding.update(db, db_obj=position, obj_in=fields)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not backfill holding {position.id}: {e}")

    # ============ HISTORY ============

    def get_history(
        self,
        db: Session,
        user: User,
        type: Optional[str] = None,
        sort_by: Optional[str] = None,
        order: Optional[str] = None,
    ) -> TransactionHistory:
        type_filter = TransactionTypeEnum(type) if type in ("buy", "sell") else None
        sort_field = sort_by if sort_by in HISTORY_SORT_FIELDS else "timestamp"
        sort_order = SortOrderEnum.ASC if order == "asc" else SortOrderEnum.DESC

        transactions = crud_transaction.get_history(
            db, user_id=user.id, type=type_filter, sort_by=sort_field, order=sort_order
        )
        entries = [
            HistoryEntry(
                id=tx.id,
                type=tx.type,
                coin_id=tx.coin_id,
                coin_name=coin_display_name(tx.coin_id),
                quantity=tx.quantity,
                price=tx.price,
                total_value=tx.total_cost or tx.sell_value or tx.quantity * tx.price,
                is_buy=tx.type == TransactionTypeEnum.BUY,
                timestamp=tx.timestamp,
                formatted_date=format_timestamp(tx.timestamp),
            )
            for tx in transactions
        ]
        return TransactionHistory(
            transactions=entries,
            current_options=HistoryOptions(
                type=type_filter.value if type_filter else "all",
                sort_by=sort_field,
                order=sort_order.value,
            ),
        )

    # ============ LEADERBOARD ============

    async def _get_price_map(self, coin_ids: List[str]) -> Dict[str, float]:
        if not coin_ids:
            return {}
        try:
            prices = await with_timeout(self.market_data.get_leaderboard_prices(coin_ids))
        except MARKET_DATA_FAILURES as e:
            logger.error(f"Error fetching leaderboard prices, valuing at cost: {e!r}")
            return {}
        return {coin_id: data.get("usd") for coin_id, data in prices.items() if isinstance(data, dict)}

    async def _net_worths(self, db: Session) -> List[Dict[str, Any]]:
        users = crud_user.get_multi(db, limit=None)
        positions = crud_holding.get_all(db)
        prices = await self._get_price_map([p.coin_id for p in positions])

        by_user: Dict[int, float] = {}
        for p in positions:
            price = prices.get(p.coin_id) or p.average_buy_price or 0.0
            by_user[p.user_id] = by_user.get(p.user_id, 0.0) + p.quantity * price

        return [
            {
                "user": u,
                "holdings_value": by_user.get(u.id, 0.0),
                "net_worth": (u.wallet or 0.0) + by_user.get(u.id, 0.0),
            }
            for u in users
        ]

    async def get_leaderboard(self, db: Session) -> List[LeaderboardEntry]:
        rows = sorted(await self._net_worths(db), key=lambda r: r["net_worth"], reverse=True)
        return [
            LeaderboardEntry(
                rank=rank,
                username=row["user"].username,
                wallet=row["user"].wallet or 0.0,
                holdings_value=row["holdings_value"],
                total_value=row["net_worth"],
                achievements_count=len(row["user"].achievements or []),
            )
            for rank, row in enumerate(rows[:LEADERBOARD_SIZE], start=1)
        ]

    # ============ LIMIT ORDERS ============

    def place_limit_order(self, db: Session, user: User, order_in: LimitOrderCreate) -> LimitOrder:
        order = crud_limit_order.create(
            db,
            obj_in={
                **order_in.model_dump(),
                "coin_id": order_in.coin_id.strip().lower(),
                "user_id": user.id,
                "status": LimitOrderStatusEnum.PENDING,
            },
        )
        logger.info(f"Limit order placed: user={user.id}, coin={order.coin_id}, type={order.type}")
        return LimitOrder.model_validate(order)

    # ============ NET WORTH HISTORY ============

    def get_portfolio_history(
        self, db: Session, user: User, rng: Optional[random.Random] = None
    ) -> List[PortfolioHistoryPoint]:
        history = crud_portfolio_history.get_multi_by_user(db, user_id=user.id)
        if len(history) >= 2:
            return [
                PortfolioHistoryPoint(timestamp=h.timestamp, total_net_worth=h.total_net_worth)
                for h in history
            ]

        # Not enough snapshots yet: 15-day synthetic curve around the wallet
        rng = rng or random
        base_value = user.wallet or 0.0
        now = datetime.now(timezone.utc)
        return [
            PortfolioHistoryPoint(
                timestamp=now - timedelta(days=15 - i),
                total_net_worth=base_value * (0.8 + i * 0.05 + rng.random() * 0.1),
            )
            for i in range(15)
        ]

    async def snapshot_net_worth(self, db: Session) -> int:
        """Records every user's current net worth; returns the number of rows written."""
        rows = await self._net_worths(db)
        for row in rows:
            crud_portfolio_history.create(
                db,
                obj_in={"user_id": row["user"].id, "total_net_worth": row["net_worth"]},
                commit=False,
            )
        db.commit()
        logger.info(f"Recorded net-worth snapshots for {len(rows)} users")
        return len(rows)
