"""SQLAlchemy ORM models for cards, card transactions and bill payments"""

import uuid
from sqlalchemy import Column, Boolean, DateTime, Date, Integer, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(12, 2, asdecimal=True)


class CreditCard(Base):
    """Credit card owned by an account"""

    __tablename__ = "credit_card"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    last_digits = Column(Text, nullable=False)
    brand = Column(Text, nullable=True)
    credit_limit = Column(Money, nullable=False)
    used_limit = Column(Money, nullable=False, default=0)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    transactions = relationship("CardTransaction", back_populates="credit_card", cascade="all, delete-orphan")
    payments = relationship("BillPayment", back_populates="credit_card", cascade="all, delete-orphan")


class CardTransaction(Base):
    """One purchase, or one installment of a split purchase"""

    __tablename__ = "card_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    credit_card_id = Column(Uuid, ForeignKey("credit_card.id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_id = Column(Uuid, nullable=False, index=True)
    amount = Column(Money, nullable=False)
    purchase_date = Column(Date, nullable=False)
    charge_date = Column(Date, nullable=False, index=True)
    bill_key = Column(Text, nullable=False, index=True)
    due_date = Column(Date, nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    merchant = Column(Text, nullable=True)
    installment_index = Column(Integer, nullable=False, default=1)
    installment_count = Column(Integer, nullable=False, default=1)
    is_recurring = Column(Boolean, nullable=False, default=False)
    status = Column(Text, nullable=False, default="completed", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    credit_card = relationship("CreditCard", back_populates="transactions")

    @property
    def remaining_installments(self) -> int:
        return self.installment_count - self.installment_index


class BillPayment(Base):
    """Payment recorded against a card bill"""

    __tablename__ = "bill_payment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    credit_card_id = Column(Uuid, ForeignKey("credit_card.id", ondelete="CASCADE"), nullable=False, index=True)
    bill_key = Column(Text, nullable=False)
    account_id = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    payment_date = Column(Date, nullable=False)
    external_reference = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_card = relationship("CreditCard", back_populates="payments")
