from typing import List, Optional
from sqlalchemy import asc, desc
from sqlalchemy.orm import Session
from chainxchange.core.constants import TransactionTypeEnum, SortOrderEnum
from chainxchange.crud.base import CRUDBase
from chainxchange.models.trading import Holding, Transaction, LimitOrder
from chainxchange.models.portfolio_history import PortfolioHistory
from chainxchange.schemas.trading import (
    HoldingCreate,
    HoldingUpdate,
    TransactionCreate,
    TransactionUpdate,
    LimitOrderCreate,
    LimitOrderUpdate,
)

class CRUDHolding(CRUDBase[Holding, HoldingCreate, HoldingUpdate]):
    def get_by_user_and_coin(self, db: Session, *, user_id: int, coin_id: str) -> Optional[Holding]:
        return db.query(self.model).filter(
            self.model.user_id == user_id
        ).filter(
            self.model.coin_id == coin_id
        ).first()

    def get_all(self, db: Session) -> List[Holding]:
        return db.query(self.model).all()

    def add_quantity(
        self, db: Session, *, user_id: int, coin_id: str, quantity: float, cost: float, **fields
    ) -> bool:
        """Adds to an existing holding, re-weighting the average buy price in the same
        statement. False when the user holds none of the coin yet."""
        values = {
            Holding.average_buy_price: (Holding.quantity * Holding.average_buy_price + cost)
            / (Holding.quantity + quantity),
            Holding.quantity: Holding.quantity + quantity,
        }
        values.update({getattr(Holding, name): value for name, value in fields.items()})
        updated = db.query(Holding).filter(
            Holding.user_id == user_id, Holding.coin_id == coin_id
        ).update(values, synchronize_session=False)
        return updated == 1

    def remove_quantity(self, db: Session, *, user_id: int, coin_id: str, quantity: float) -> bool:
        """Subtracts ``quantity`` only while the holding covers it; emptied holdings are deleted."""
        updated = db.query(Holding).filter(
            Holding.user_id == user_id, Holding.coin_id == coin_id, Holding.quantity >= quantity
        ).update({Holding.quantity: Holding.quantity - quantity}, synchronize_session=False)
        if updated != 1:
            return False
        db.query(Holding).filter(
            Holding.user_id == user_id, Holding.coin_id == coin_id, Holding.quantity <= 0
        ).delete(synchronize_session=False)
        return True

holding = CRUDHolding(Holding)

class CRUDTransaction(CRUDBase[Transaction, TransactionCreate, TransactionUpdate]):
    def get_history(
        self,
        db: Session,
        *,
        user_id: int,
        type: Optional[TransactionTypeEnum] = None,
        sort_by: str = "timestamp",
        order: SortOrderEnum = SortOrderEnum.DESC,
    ) -> List[Transaction]:
        query = db.query(self.model).filter(self.model.user_id == user_id)
        if type is not None:
            query = query.filter(self.model.type == type)
        column = getattr(self.model, sort_by)
        direction = asc if order == SortOrderEnum.ASC else desc
        return query.order_by(direction(column), desc(self.model.id)).all()

transaction = CRUDTransaction(Transaction)

class CRUDLimitOrder(CRUDBase[LimitOrder, LimitOrderCreate, LimitOrderUpdate]):
    pass

limit_order = CRUDLimitOrder(LimitOrder)

class CRUDPortfolioHistory(CRUDBase[PortfolioHistory, dict, dict]):
    def get_multi_by_user(self, db: Session, *, user_id: int) -> List[PortfolioHistory]:
        return db.query(self.model).filter(
            self.model.user_id == user_id
        ).order_by(asc(self.model.timestamp), asc(self.model.id)).all()

portfolio_history = CRUDPortfolioHistory(PortfolioHistory)
