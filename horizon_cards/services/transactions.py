"""Card transaction lifecycle: purchases, subscriptions, edits and deletes"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from horizon_cards.domain.billing import allocate_bucket
from horizon_cards.domain.exceptions import NotFoundError, ValidationError
from horizon_cards.domain.installments import draft_from_charge, expand_installments, next_recurring_date
from horizon_cards.domain.models import (
    CardSettings,
    DatedCharge,
    InstallmentCreationResult,
    InstallmentFailure,
    PurchaseMetadata,
    TransactionDraft,
    TransactionStatus,
    to_money,
)
from horizon_cards.infrastructure.database.models import CardTransaction
from horizon_cards.infrastructure.database.repositories import TransactionRepository
from horizon_cards.infrastructure.observability.logging import log_purchase_created
from horizon_cards.infrastructure.observability.metrics import (
    installment_row_failures_counter,
    record_purchase,
    transactions_created_counter,
)
from horizon_cards.services.cards import CardService

# Fields copied to later installments when an edit is applied forward
FORWARD_FIELDS = ("amount", "category", "description", "merchant")

# Changes that alter what counts against the limit
LIMIT_FIELDS = ("amount", "status", "credit_card_id")


class CardTransactionService:
    """Create, edit and delete card transactions, keeping used_limit in sync"""

    def __init__(self, db: Session, request_id: str = "unknown"):
        self.db = db
        self.request_id = request_id
        self.card_service = CardService(db, request_id)
        self.transactions = TransactionRepository(db)

    def create_purchase(
        self,
        card_id: uuid.UUID,
        total_amount: Decimal,
        installment_count: int,
        purchase_date: date | datetime,
        metadata: PurchaseMetadata,
        atomic: bool = False,
    ) -> InstallmentCreationResult:
        """
        Record a purchase as one row per installment.

        Rows are written in installment order, each in its own savepoint. A row
        that fails is reported in the result and the remaining rows are still
        written. With atomic=True any failure rolls back every row and raises.

        Raises:
            ValidationError: bad amount or installment count, nothing written
            NotFoundError: unknown card
        """
        card = self.card_service.get_card(card_id)
        drafts = expand_installments(
            total_amount,
            installment_count,
            purchase_date,
            CardSettings.from_card(card),
            metadata,
        )

        result = InstallmentCreationResult(purchase_id=uuid.uuid4())
        if atomic:
            with self.db.begin_nested():
                for draft in drafts:
                    result.created.append(self.transactions.create_transaction(card.id, result.purchase_id, draft))
        else:
            self._write_best_effort(card.id, [(result.purchase_id, draft) for draft in drafts], result)

        record_purchase(installment_count, metadata.is_recurring, len(result.created))
        if result.created:
            self.card_service.sync_used_limit(card.id)

        log_purchase_created(
            self.request_id,
            str(card.id),
            str(result.purchase_id),
            installment_count,
            len(result.created),
            len(result.failures),
            to_money(total_amount),
        )
        return result

    def create_many(self, card_id: uuid.UUID, charges: List[DatedCharge]) -> InstallmentCreationResult:
        """
        Import already-dated rows for one card.

        Every row is validated and bucketed before anything is written, then
        rows are written best-effort like purchase installments. Rows without
        a purchase_id get one of their own. used_limit is synced once at the end.

        Raises:
            ValidationError: any row is invalid, nothing written
            NotFoundError: unknown card
        """
        card = self.card_service.get_card(card_id)
        card_settings = CardSettings.from_card(card)

        rows = []
        for position, charge in enumerate(charges, start=1):
            try:
                draft = draft_from_charge(charge, card_settings)
            except ValidationError as e:
                raise ValidationError(f"Row {position}: {e}") from e
            rows.append((charge.purchase_id or uuid.uuid4(), draft))

        result = InstallmentCreationResult()
        self._write_best_effort(card.id, rows, result)

        if result.created:
            transactions_created_counter.labels(kind="bulk").inc(len(result.created))
            self.card_service.sync_used_limit(card.id)

        logging.log(
            logging.WARNING if result.failures else logging.INFO,
            "Bulk transactions imported",
            extra={
                "request_id": self.request_id,
                "card_id": str(card.id),
                "step": "bulk_created",
                "row_count": len(rows),
                "created_count": len(result.created),
                "failed_count": len(result.failures),
            },
        )
        return result

    def _write_best_effort(
        self,
        card_id: uuid.UUID,
        rows: List[Tuple[uuid.UUID, TransactionDraft]],
        result: InstallmentCreationResult,
    ) -> None:
        """Write rows in order, one savepoint each; failed rows go to result.failures"""
        for position, (purchase_id, draft) in enumerate(rows, start=1):
            try:
                with self.db.begin_nested():
                    txn = self.transactions.create_transaction(card_id, purchase_id, draft)
                result.created.append(txn)
            except SQLAlchemyError as e:
                installment_row_failures_counter.inc()
                result.failures.append(
                    InstallmentFailure(installment_index=draft.installment_index, error=str(e), row=position)
                )
                logging.error(
                    f"Failed to create installment {draft.installment_index}/{draft.installment_count}: {e}",
                    extra={"request_id": self.request_id, "card_id": str(card_id)},
                )

    def create_recurring(
        self,
        card_id: uuid.UUID,
        amount: Decimal,
        start_date: date | datetime,
        recurring_day: int,
        metadata: PurchaseMetadata,
    ) -> CardTransaction:
        """
        Record the first charge of a subscription.

        The charge lands on recurring_day (this month or next) and starts
        pending; re-creating later charges is left to the scheduler.
        """
        card = self.card_service.get_card(card_id)
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError("Amount must be a positive number")

        charge_date = next_recurring_date(start_date, recurring_day)
        period = allocate_bucket(charge_date, CardSettings.from_card(card))

        draft = TransactionDraft(
            amount=amount,
            purchase_date=charge_date,
            charge_date=charge_date,
            bill_key=period.bill_key,
            due_date=period.due_date,
            installment_index=1,
            installment_count=1,
            category=metadata.category,
            description=metadata.description or "Recurring subscription",
            merchant=metadata.merchant,
            is_recurring=True,
            status=metadata.status,
        )
        txn = self.transactions.create_transaction(card.id, uuid.uuid4(), draft)
        record_purchase(1, True, 1)
        self.card_service.sync_used_limit(card.id)
        return txn

    def get_transaction(self, transaction_id: uuid.UUID) -> CardTransaction:
        txn = self.transactions.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return txn

    def list_transactions(self, card_id: uuid.UUID, **filters: Any) -> List[CardTransaction]:
        card = self.card_service.get_card(card_id)
        return self.transactions.list_transactions(card.id, **filters)

    def update_transaction(
        self,
        transaction_id: uuid.UUID,
        changes: Dict[str, Any],
        apply_to_future_installments: bool = False,
    ) -> CardTransaction:
        """
        Patch a transaction.

        A new charge date or card re-runs bucketing for the row. With
        apply_to_future_installments, amount and metadata changes also go to
        the later installments of the same purchase.
        """
        txn = self.get_transaction(transaction_id)
        changes = self._validate_changes(changes)
        previous_card_id = txn.credit_card_id

        target_card = self.card_service.get_card(changes.get("credit_card_id", txn.credit_card_id))
        if "charge_date" in changes or "credit_card_id" in changes:
            period = allocate_bucket(changes.get("charge_date", txn.charge_date), CardSettings.from_card(target_card))
            changes["bill_key"] = period.bill_key
            changes["due_date"] = period.due_date

        self.transactions.update_transaction(txn, changes)

        forward = {k: v for k, v in changes.items() if k in FORWARD_FIELDS}
        if apply_to_future_installments and forward and txn.installment_count > 1:
            for later in self.transactions.list_later_installments(txn):
                self.transactions.update_transaction(later, forward)

        if any(field in changes for field in LIMIT_FIELDS):
            self.card_service.sync_used_limit(txn.credit_card_id)
            if previous_card_id != txn.credit_card_id:
                self.card_service.sync_used_limit(previous_card_id)

        return txn

    def delete_transaction(self, transaction_id: uuid.UUID, apply_to_future_installments: bool = False) -> int:
        """Delete a transaction, optionally with its later installments; returns rows deleted"""
        txn = self.get_transaction(transaction_id)
        card_id = txn.credit_card_id

        doomed = [txn]
        if apply_to_future_installments and txn.installment_count > 1:
            doomed.extend(self.transactions.list_later_installments(txn))

        for row in doomed:
            self.transactions.delete_transaction(row)

        self.card_service.sync_used_limit(card_id)
        return len(doomed)

    def _validate_changes(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        validated = dict(changes)
        if "amount" in validated:
            validated["amount"] = to_money(validated["amount"])
            if validated["amount"] <= 0:
                raise ValidationError("Amount must be a positive number")
        if "status" in validated:
            try:
                validated["status"] = TransactionStatus(validated["status"]).value
            except ValueError as e:
                raise ValidationError(f"Unknown transaction status: {validated['status']!r}") from e
        for name in ("category", "credit_card_id", "charge_date"):
            if name in validated and validated[name] is None:
                raise ValidationError(f"{name} cannot be empty")
        return validated
