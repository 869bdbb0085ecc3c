from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from chainxchange.core.database import Base
from chainxchange.core.constants import PaymentTypeEnum, PaymentStatusEnum

class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(PaymentTypeEnum), nullable=False)
    amount = Column(Float, nullable=False)
    card_number = Column(String, nullable=False)  # masked, last four digits only
    card_holder = Column(String, nullable=False)
    status = Column(Enum(PaymentStatusEnum), nullable=False, default=PaymentStatusEnum.COMPLETED)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="payment_transactions")
