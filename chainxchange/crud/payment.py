from typing import List
from sqlalchemy import desc
from sqlalchemy.orm import Session
from chainxchange.crud.base import CRUDBase
from chainxchange.models.payment import PaymentTransaction

class CRUDPaymentTransaction(CRUDBase[PaymentTransaction, dict, dict]):
    def get_multi_by_user(self, db: Session, *, user_id: int) -> List[PaymentTransaction]:
        return db.query(self.model).filter(
            self.model.user_id == user_id
        ).order_by(desc(self.model.timestamp), desc(self.model.id)).all()

payment_transaction = CRUDPaymentTransaction(PaymentTransaction)
