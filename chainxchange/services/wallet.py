import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chainxchange.core.constants import PaymentStatusEnum, PaymentTypeEnum
from chainxchange.crud.payment import payment_transaction as crud_payment
from chainxchange.crud.user import user as crud_user
from chainxchange.models.user import User
from chainxchange.schemas.wallet import CardPaymentRequest, PaymentTransaction, WalletBalance, WalletSummary
from chainxchange.services.trading import format_timestamp

logger = logging.getLogger(__name__)


def mask_card_number(card_number: str) -> str:
    return "**** **** **** " + card_number[-4:]


class WalletService:
    """Simulated card deposits and withdrawals against the USD wallet.

    The cached portfolio valuation excludes the wallet, so nothing here
    touches the market-data cache.
    """

    def get_wallet(self, db: Session, user: User) -> WalletSummary:
        transactions = []
        for tx in crud_payment.get_multi_by_user(db, user_id=user.id):
            entry = PaymentTransaction.model_validate(tx)
            entry.is_deposit = tx.type == PaymentTypeEnum.DEPOSIT
            entry.formatted_date = format_timestamp(tx.timestamp)
            transactions.append(entry)
        return WalletSummary(wallet=user.wallet, transactions=transactions)

    def deposit(self, db: Session, user: User, payment_in: CardPaymentRequest) -> WalletBalance:
        return self._record(db, user, payment_in, PaymentTypeEnum.DEPOSIT)

    def withdraw(self, db: Session, user: User, payment_in: CardPaymentRequest) -> WalletBalance:
        return self._record(db, user, payment_in, PaymentTypeEnum.WITHDRAWAL)

    def _record(self, db: Session, user: User, payment_in: CardPaymentRequest, type: PaymentTypeEnum) -> WalletBalance:
        try:
            if type == PaymentTypeEnum.DEPOSIT:
                crud_user.credit_wallet(db, user_id=user.id, amount=payment_in.amount)
                applied = True
            else:
                applied = crud_user.debit_wallet(db, user_id=user.id, amount=payment_in.amount)

            if applied:
                crud_payment.create(
                    db,
                    obj_in={
                        "user_id": user.id,
                        "type": type,
                        "amount": payment_in.amount,
                        "card_number": mask_card_number(payment_in.card_number),
                        "card_holder": payment_in.card_holder,
                        "status": PaymentStatusEnum.COMPLETED,
                    },
                    commit=False,
                )
                db.commit()
            else:
                db.rollback()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Payment {type.value} failed for user {user.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error processing payment"
            )

        db.refresh(user)
        if not applied:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient balance. Available: ${user.wallet or 0}"
            )

        logger.info(f"Payment {type.value}: user={user.id}, amount={payment_in.amount}")
        return WalletBalance(wallet=user.wallet)

wallet_service = WalletService()
