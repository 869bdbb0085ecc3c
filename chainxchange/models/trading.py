from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Enum, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from chainxchange.core.database import Base
from chainxchange.core.constants import TransactionTypeEnum, LimitOrderStatusEnum

class Holding(Base):
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "coin_id", name="uq_holding_user_coin"),
        CheckConstraint("quantity >= 0", name="ck_holding_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coin_id = Column(String, index=True, nullable=False)
    quantity = Column(Float, nullable=False, default=0.0)
    average_buy_price = Column(Float, nullable=False)
    crypto = Column(String, nullable=True)  # display name
    image = Column(String, nullable=True)
    symbol = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="holdings")

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(TransactionTypeEnum), nullable=False)
    coin_id = Column(String, index=True, nullable=False)
    quantity = Column(Float, nullable=False)
    price = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=True)   # buys
    sell_value = Column(Float, nullable=True)   # sells
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="transactions")

class LimitOrder(Base):
    __tablename__ = "limit_orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coin_id = Column(String, index=True, nullable=False)
    type = Column(Enum(TransactionTypeEnum), nullable=False)
    quantity = Column(Float, nullable=False)
    limit_price = Column(Float, nullable=False)
    status = Column(Enum(LimitOrderStatusEnum), nullable=False, default=LimitOrderStatusEnum.PENDING)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="limit_orders")
