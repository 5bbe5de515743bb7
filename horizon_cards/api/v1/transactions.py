"""Card transactions - purchases, installments, subscriptions, edits"""

import uuid
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from horizon_cards.api.dependencies import get_request_id, get_transaction_service
from horizon_cards.api.v1.errors import to_http_error
from horizon_cards.api.v1.schemas import (
    BulkTransactionRequest,
    BulkTransactionResponse,
    DeleteResponse,
    InstallmentFailureSchema,
    PurchaseRequest,
    PurchaseResponse,
    RecurringRequest,
    TransactionResponse,
    TransactionUpdateRequest,
)
from horizon_cards.domain.models import DatedCharge, PurchaseMetadata, TransactionStatus
from horizon_cards.infrastructure.database.session import get_db
from horizon_cards.services.transactions import CardTransactionService

router = APIRouter()


@router.post("/cards/{card_id}/transactions", response_model=PurchaseResponse, status_code=201)
def create_purchase(
    card_id: uuid.UUID,
    request_body: PurchaseRequest,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    """
    Record a purchase, split into installments when installment_count > 1.

    Rows are written best-effort: when some installments fail, the others
    stay and the response lists both (partial=true). Send atomic=true to get
    all-or-nothing instead.

    is_recurring only flags the rows as a subscription charge; use
    POST /v1/cards/{card_id}/recurring to have the charge day picked.
    """
    try:
        result = service.create_purchase(
            card_id=card_id,
            total_amount=request_body.total_amount,
            installment_count=request_body.installment_count,
            purchase_date=request_body.purchase_date,
            metadata=PurchaseMetadata(
                category=request_body.category,
                description=request_body.description,
                merchant=request_body.merchant,
                is_recurring=request_body.is_recurring,
                status=request_body.status,
            ),
            atomic=request_body.atomic,
        )
        db.commit()
    except Exception as e:
        raise to_http_error(db, e, request_id)

    return PurchaseResponse(
        purchase_id=result.purchase_id,
        partial=result.partial,
        created=[TransactionResponse.model_validate(t) for t in result.created],
        failures=[InstallmentFailureSchema(**vars(f)) for f in result.failures],
    )


@router.post("/cards/{card_id}/transactions/bulk", response_model=BulkTransactionResponse, status_code=201)
def create_transactions_bulk(
    card_id: uuid.UUID,
    request_body: BulkTransactionRequest,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    """
    Import already-dated rows, e.g. installments read from a statement.

    Same best-effort semantics as purchases: rows that fail are listed in
    failures (with their 1-based row number) and the rest are kept.
    """
    try:
        result = service.create_many(
            card_id,
            [DatedCharge(**item.model_dump()) for item in request_body.transactions],
        )
        db.commit()
    except Exception as e:
        raise to_http_error(db, e, request_id)

    return BulkTransactionResponse(
        partial=result.partial,
        created=[TransactionResponse.model_validate(t) for t in result.created],
        failures=[InstallmentFailureSchema(**vars(f)) for f in result.failures],
    )


@router.get("/cards/{card_id}/transactions", response_model=List[TransactionResponse])
def list_transactions(
    card_id: uuid.UUID,
    status: Optional[TransactionStatus] = None,
    start_date: Optional[date] = Query(None, description="Earliest charge date"),
    end_date: Optional[date] = Query(None, description="Latest charge date"),
    start_purchase_date: Optional[date] = None,
    end_purchase_date: Optional[date] = None,
    is_recurring: Optional[bool] = None,
    limit: int = Query(1000, ge=1, le=10000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    try:
        return service.list_transactions(
            card_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            start_purchase_date=start_purchase_date,
            end_purchase_date=end_purchase_date,
            is_recurring=is_recurring,
            limit=limit,
            offset=offset,
        )
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.post("/cards/{card_id}/recurring", response_model=TransactionResponse, status_code=201)
def create_recurring(
    card_id: uuid.UUID,
    request_body: RecurringRequest,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    """Record the first charge of a monthly subscription"""
    try:
        txn = service.create_recurring(
            card_id=card_id,
            amount=request_body.amount,
            start_date=request_body.start_date,
            recurring_day=request_body.recurring_day,
            metadata=PurchaseMetadata(
                category=request_body.category,
                description=request_body.description,
                merchant=request_body.merchant,
                is_recurring=True,
                status=request_body.status,
            ),
        )
        db.commit()
        return txn
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    try:
        return service.get_transaction(transaction_id)
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    request_body: TransactionUpdateRequest,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    """Edit a transaction, optionally carrying the edit to later installments"""
    changes = request_body.model_dump(exclude_unset=True, exclude={"apply_to_future_installments"})
    try:
        txn = service.update_transaction(
            transaction_id,
            changes,
            apply_to_future_installments=request_body.apply_to_future_installments,
        )
        db.commit()
        return txn
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.delete("/transactions/{transaction_id}", response_model=DeleteResponse)
def delete_transaction(
    transaction_id: uuid.UUID,
    apply_to_future_installments: bool = False,
    db: Session = Depends(get_db),
    service: CardTransactionService = Depends(get_transaction_service),
    request_id: str = Depends(get_request_id),
):
    try:
        deleted = service.delete_transaction(transaction_id, apply_to_future_installments)
        db.commit()
        return DeleteResponse(deleted_count=deleted)
    except Exception as e:
        raise to_http_error(db, e, request_id)
