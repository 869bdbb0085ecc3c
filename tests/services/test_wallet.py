import pytest
from fastapi import HTTPException
from sqlalchemy.orm import sessionmaker

from chainxchange.crud.payment import payment_transaction as crud_payment
from chainxchange.models.user import User
from chainxchange.schemas.wallet import CardPaymentRequest
from chainxchange.services.wallet import wallet_service


def payment(amount):
    return CardPaymentRequest(
        amount=amount, card_number="4111111111111234", card_holder="Ada Lovelace", expiry_date="12/30", cvv="123"
    )


def test_withdraw_with_stale_balance_is_checked_against_the_database(database_engine, user_factory):
    trader = user_factory(wallet=100.0)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    first, second, check = Session(), Session(), Session()
    try:
        stale_user = second.get(User, trader.id)
        wallet_service.withdraw(first, first.get(User, trader.id), payment(80))

        with pytest.raises(HTTPException) as exc_info:
            wallet_service.withdraw(second, stale_user, payment(80))

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Insufficient balance. Available: $20.0"
        assert check.get(User, trader.id).wallet == pytest.approx(20.0)
        assert len(crud_payment.get_multi_by_user(check, user_id=trader.id)) == 1
    finally:
        for session in (first, second, check):
            session.close()


def test_deposits_add_to_the_stored_balance(database_engine, user_factory):
    trader = user_factory(wallet=10.0)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    first, second = Session(), Session()
    try:
        stale_user = second.get(User, trader.id)
        wallet_service.deposit(first, first.get(User, trader.id), payment(50))

        balance = wallet_service.deposit(second, stale_user, payment(40))

        assert balance.wallet == pytest.approx(100.0)
    finally:
        first.close()
        second.close()
