"""Card-level operations: settings, limit accounting, bills and payments"""

import logging
import re
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from horizon_cards.domain.billing import allocate_bucket, build_bills
from horizon_cards.domain.exceptions import DomainException, LimitRecomputeError, NotFoundError, ValidationError
from horizon_cards.domain.limits import summarize_limit
from horizon_cards.domain.models import Bill, CardSettings, LimitSummary, to_money
from horizon_cards.infrastructure.clients.accounts import AccountsClient
from horizon_cards.infrastructure.database.models import BillPayment, CreditCard
from horizon_cards.infrastructure.database.repositories import (
    BillPaymentRepository,
    CreditCardRepository,
    TransactionRepository,
)
from horizon_cards.infrastructure.observability.logging import log_limit_recomputed
from horizon_cards.infrastructure.observability.metrics import bill_payment_counter, limit_recompute_failures_counter
from horizon_cards.utils.date_utils import today_local

BILL_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class CardService:
    """Operations scoped to one credit card"""

    def __init__(self, db: Session, request_id: str = "unknown"):
        self.db = db
        self.request_id = request_id
        self.cards = CreditCardRepository(db)
        self.transactions = TransactionRepository(db)
        self.payments = BillPaymentRepository(db)

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
        card_settings = CardSettings(closing_day=closing_day, due_day=due_day, credit_limit=credit_limit)
        return self.cards.create_card(
            account_id=account_id,
            name=name,
            last_digits=last_digits,
            credit_limit=card_settings.credit_limit,
            closing_day=card_settings.closing_day,
            due_day=card_settings.due_day,
            brand=brand,
        )

    def get_card(self, card_id: uuid.UUID) -> CreditCard:
        card = self.cards.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Credit card {card_id} not found")
        return card

    def list_cards(self, account_id: str) -> List[CreditCard]:
        if not account_id:
            raise ValidationError("account_id is required")
        return self.cards.list_cards(account_id)

    def update_card(self, card_id: uuid.UUID, changes: Dict[str, Any]) -> CreditCard:
        """
        Update card fields.

        Closing/due day changes only affect future bucketing; persisted rows keep
        their bill until rebucket_card runs. used_limit is never writable here.
        """
        card = self.get_card(card_id)
        changes = {k: v for k, v in changes.items() if k != "used_limit"}

        card_settings = CardSettings(
            closing_day=changes.get("closing_day", card.closing_day),
            due_day=changes.get("due_day", card.due_day),
            credit_limit=changes.get("credit_limit", card.credit_limit),
        )
        if "credit_limit" in changes:
            changes["credit_limit"] = card_settings.credit_limit

        return self.cards.update_card(card, changes)

    def delete_card(self, card_id: uuid.UUID) -> None:
        self.cards.delete_card(self.get_card(card_id))

    def calculate_limit(self, card_id: uuid.UUID) -> LimitSummary:
        """Limit summary from completed transactions, without writing it back"""
        card = self.get_card(card_id)
        return summarize_limit(card.credit_limit, self.transactions.list_completed(card.id))

    def recompute_used_limit(self, card_id: uuid.UUID) -> LimitSummary:
        """
        Recalculate used_limit from scratch and persist it.

        Full recalculation over every completed transaction, never an
        incremental delta, so running it twice yields the same value.
        """
        card = self.get_card(card_id)
        summary = summarize_limit(card.credit_limit, self.transactions.list_completed(card.id))
        self.cards.set_used_limit(card, summary.used_limit)

        log_limit_recomputed(str(card.id), summary.used_limit, summary.available_limit, self.request_id)
        return summary

    def sync_used_limit(self, card_id: uuid.UUID) -> Optional[LimitSummary]:
        """
        Recompute used_limit after a mutation.

        Failures are logged and counted but never raised: the mutation that
        triggered the sync already succeeded and the next sync repairs the value.
        """
        try:
            try:
                with self.db.begin_nested():
                    return self.recompute_used_limit(card_id)
            except SQLAlchemyError as e:
                raise LimitRecomputeError(f"Could not recompute used limit for card {card_id}") from e
        except DomainException as e:
            limit_recompute_failures_counter.inc()
            logging.error(
                f"Failed to sync credit card used limit: {e}",
                extra={"request_id": self.request_id, "card_id": str(card_id)},
            )
            return None

    def rebucket_card(self, card_id: uuid.UUID) -> int:
        """Re-run bucketing for every row of the card with current settings"""
        card = self.get_card(card_id)
        card_settings = CardSettings.from_card(card)

        changed = 0
        for txn in self.transactions.list_all_for_card(card.id):
            period = allocate_bucket(txn.charge_date, card_settings)
            if txn.bill_key != period.bill_key or txn.due_date != period.due_date:
                self.transactions.update_transaction(txn, {"bill_key": period.bill_key, "due_date": period.due_date})
                changed += 1

        logging.info(
            "Card transactions rebucketed",
            extra={"request_id": self.request_id, "card_id": str(card.id), "changed": changed},
        )
        return changed

    def build_card_bills(self, card_id: uuid.UUID, today: Optional[date] = None) -> List[Bill]:
        card = self.get_card(card_id)
        return build_bills(
            card.id,
            self.transactions.list_all_for_card(card.id),
            CardSettings.from_card(card),
            payments=self.payments.list_payments(card.id),
            today=today,
        )

    def get_bill(self, card_id: uuid.UUID, bill_key: str, today: Optional[date] = None) -> Bill:
        if not BILL_KEY_PATTERN.match(bill_key):
            raise ValidationError(f"Bill key must look like YYYY-MM, got {bill_key!r}")

        for bill in self.build_card_bills(card_id, today=today):
            if bill.bill_key == bill_key:
                return bill
        raise NotFoundError(f"Bill {bill_key} not found for card {card_id}")

    async def pay_bill(
        self,
        card_id: uuid.UUID,
        bill_key: str,
        account_id: str,
        accounts_client: AccountsClient,
        amount: Optional[Decimal] = None,
        payment_date: Optional[date] = None,
    ) -> Tuple[BillPayment, Bill]:
        """
        Pay a bill from an account.

        Flow:
        1. Resolve the bill (amount defaults to what is still outstanding)
        2. Debit the account through the accounts service
        3. Record the payment against (card, bill_key)

        Nothing is recorded when the debit fails.
        """
        card = self.get_card(card_id)
        bill = self.get_bill(card.id, bill_key)

        amount = to_money(amount) if amount is not None else bill.outstanding_amount
        if amount <= 0:
            raise ValidationError("Payment amount must be a positive number")
        payment_date = payment_date or today_local()

        try:
            debit = await accounts_client.debit(
                account_id=account_id,
                amount=amount,
                payment_date=payment_date,
                description=f"Credit card bill {card.name} - {bill_key}",
            )
        except DomainException:
            bill_payment_counter.labels(outcome="debit_failed").inc()
            raise

        reference = debit.get("id") if isinstance(debit, dict) else None
        payment = self.payments.create_payment(
            credit_card_id=card.id,
            bill_key=bill_key,
            account_id=account_id,
            amount=amount,
            payment_date=payment_date,
            external_reference=str(reference) if reference is not None else None,
        )
        bill_payment_counter.labels(outcome="recorded").inc()

        logging.info(
            "Bill paid",
            extra={
                "request_id": self.request_id,
                "card_id": str(card.id),
                "bill_key": bill_key,
                "amount": str(amount),
            },
        )
        return payment, self.get_bill(card.id, bill_key)
