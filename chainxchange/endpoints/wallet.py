from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chainxchange.core.database import get_db
from chainxchange.models.user import User
from chainxchange.schemas.response import APIResponse
from chainxchange.schemas.wallet import CardPaymentRequest, WalletBalance, WalletSummary
from chainxchange.services.wallet import wallet_service
from chainxchange.utils import deps

router = APIRouter()

@router.get("/wallet", response_model=APIResponse[WalletSummary])
async def get_wallet(
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
):
    return APIResponse(message="Wallet retrieved", data=wallet_service.get_wallet(db, user))

@router.post("/add-money", response_model=APIResponse[WalletBalance])
async def add_money(
    payment_in: CardPaymentRequest,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
):
    balance = wallet_service.deposit(db, user, payment_in)
    return APIResponse(message="Money added successfully", data=balance)

@router.post("/withdraw", response_model=APIResponse[WalletBalance])
async def withdraw_money(
    payment_in: CardPaymentRequest,
    db: Session = Depends(get_db),
    user: User = Depends(deps.get_current_user),
):
    balance = wallet_service.withdraw(db, user, payment_in)
    return APIResponse(message="Withdrawal successful", data=balance)
