"""Data access layer for cards, card transactions and bill payments"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from horizon_cards.infrastructure.database.models import BillPayment, CardTransaction, CreditCard
from horizon_cards.domain.models import TransactionDraft, TransactionStatus


class CreditCardRepository:
    """Repository for credit cards"""

    def __init__(self, db: Session):
        self.db = db

    def create_card(
        self,
        account_id: str,
        name: str,
        last_digits: str,
        credit_limit: Decimal,
        closing_day: int,
        due_day: int,
        brand: Optional[str] = None,
    ) -> CreditCard:
        """Persist a new card with nothing used yet"""
        card = CreditCard(
            account_id=account_id,
            name=name,
            last_digits=last_digits,
            brand=brand,
            credit_limit=credit_limit,
            used_limit=Decimal("0.00"),
            closing_day=closing_day,
            due_day=due_day,
        )
        self.db.add(card)
        self.db.flush()  # Get ID without committing
        return card

    def get_card(self, card_id: uuid.UUID) -> Optional[CreditCard]:
        return self.db.get(CreditCard, card_id)

    def list_cards(self, account_id: str) -> List[CreditCard]:
        """Cards owned by an account, newest first"""
        return (
            self.db.query(CreditCard)
            .filter(CreditCard.account_id == account_id)
            .order_by(CreditCard.created_at.desc())
            .all()
        )

    def update_card(self, card: CreditCard, changes: Dict[str, Any]) -> CreditCard:
        for name, value in changes.items():
            setattr(card, name, value)
        self.db.flush()
        return card

    def set_used_limit(self, card: CreditCard, used_limit: Decimal) -> None:
        """Only limit recomputation writes used_limit"""
        card.used_limit = used_limit
        self.db.flush()

    def delete_card(self, card: CreditCard) -> None:
        self.db.delete(card)
        self.db.flush()


class TransactionRepository:
    """Repository for card transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        credit_card_id: uuid.UUID,
        purchase_id: uuid.UUID,
        draft: TransactionDraft,
    ) -> CardTransaction:
        """Persist one drafted row"""
        txn = CardTransaction(
            credit_card_id=credit_card_id,
            purchase_id=purchase_id,
            amount=draft.amount,
            purchase_date=draft.purchase_date,
            charge_date=draft.charge_date,
            bill_key=draft.bill_key,
            due_date=draft.due_date,
            category=draft.category,
            description=draft.description,
            merchant=draft.merchant,
            installment_index=draft.installment_index,
            installment_count=draft.installment_count,
            is_recurring=draft.is_recurring,
            status=TransactionStatus(draft.status).value,
        )
        self.db.add(txn)
        self.db.flush()
        return txn

    def get_transaction(self, transaction_id: uuid.UUID) -> Optional[CardTransaction]:
        return self.db.get(CardTransaction, transaction_id)

    def update_transaction(self, txn: CardTransaction, changes: Dict[str, Any]) -> CardTransaction:
        for name, value in changes.items():
            setattr(txn, name, value)
        self.db.flush()
        return txn

    def delete_transaction(self, txn: CardTransaction) -> None:
        self.db.delete(txn)
        self.db.flush()

    def list_transactions(
        self,
        credit_card_id: uuid.UUID,
        status: Optional[TransactionStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        start_purchase_date: Optional[date] = None,
        end_purchase_date: Optional[date] = None,
        is_recurring: Optional[bool] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> List[CardTransaction]:
        """Fetch a card's transactions, newest charge date first"""
        query = self.db.query(CardTransaction).filter(CardTransaction.credit_card_id == credit_card_id)

        if status is not None:
            query = query.filter(CardTransaction.status == TransactionStatus(status).value)
        if start_date is not None:
            query = query.filter(CardTransaction.charge_date >= start_date)
        if end_date is not None:
            query = query.filter(CardTransaction.charge_date <= end_date)
        if start_purchase_date is not None:
            query = query.filter(CardTransaction.purchase_date >= start_purchase_date)
        if end_purchase_date is not None:
            query = query.filter(CardTransaction.purchase_date <= end_purchase_date)
        if is_recurring is not None:
            query = query.filter(CardTransaction.is_recurring == is_recurring)

        return (
            query.order_by(CardTransaction.charge_date.desc(), CardTransaction.installment_index.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_all_for_card(self, credit_card_id: uuid.UUID) -> List[CardTransaction]:
        return (
            self.db.query(CardTransaction)
            .filter(CardTransaction.credit_card_id == credit_card_id)
            .all()
        )

    def list_completed(self, credit_card_id: uuid.UUID) -> List[CardTransaction]:
        """Every completed row of a card, unpaginated"""
        return (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.credit_card_id == credit_card_id,
                CardTransaction.status == TransactionStatus.COMPLETED.value,
            )
            .all()
        )

    def list_later_installments(self, txn: CardTransaction) -> List[CardTransaction]:
        """Installments of the same purchase that come after txn"""
        return (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.purchase_id == txn.purchase_id,
                CardTransaction.installment_index > txn.installment_index,
            )
            .order_by(CardTransaction.installment_index.asc())
            .all()
        )


class BillPaymentRepository:
    """Repository for bill payments"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(
        self,
        credit_card_id: uuid.UUID,
        bill_key: str,
        account_id: str,
        amount: Decimal,
        payment_date: date,
        external_reference: Optional[str] = None,
    ) -> BillPayment:
        payment = BillPayment(
            credit_card_id=credit_card_id,
            bill_key=bill_key,
            account_id=account_id,
            amount=amount,
            payment_date=payment_date,
            external_reference=external_reference,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def list_payments(self, credit_card_id: uuid.UUID, bill_key: Optional[str] = None) -> List[BillPayment]:
        query = self.db.query(BillPayment).filter(BillPayment.credit_card_id == credit_card_id)
        if bill_key is not None:
            query = query.filter(BillPayment.bill_key == bill_key)
        return query.order_by(BillPayment.payment_date.asc()).all()
