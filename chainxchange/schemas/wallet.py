from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from chainxchange.core.constants import PaymentTypeEnum, PaymentStatusEnum


class CardPaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    card_number: str
    card_holder: str
    expiry_date: str
    cvv: str

    @field_validator("card_number")
    def digits_only(cls, v):
        digits = v.replace(" ", "").replace("-", "")
        if len(digits) < 4 or not digits.isdigit():
            raise ValueError("Invalid card number")
        return digits

    @field_validator("card_holder", "expiry_date", "cvv")
    def not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

class PaymentTransaction(BaseModel):
    id: int
    type: PaymentTypeEnum
    amount: float
    card_number: str
    card_holder: str
    status: PaymentStatusEnum
    timestamp: Optional[datetime] = None
    is_deposit: bool = False
    formatted_date: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class WalletSummary(BaseModel):
    wallet: float
    transactions: List[PaymentTransaction] = []

class WalletBalance(BaseModel):
    wallet: float
