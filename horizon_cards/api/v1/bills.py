"""/v1/cards/{card_id}/bills - bill views and payment"""

import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from horizon_cards.api.dependencies import get_accounts_client, get_card_service, get_request_id
from horizon_cards.api.v1.errors import to_http_error
from horizon_cards.api.v1.schemas import (
    BillDetailResponse,
    BillGroupSchema,
    BillListResponse,
    BillResponse,
    PayBillRequest,
    PayBillResponse,
    TransactionResponse,
)
from horizon_cards.domain.billing import accumulating_total, breakdown_bill, current_bill, open_bills
from horizon_cards.domain.models import Bill
from horizon_cards.infrastructure.clients.accounts import AccountsClient
from horizon_cards.infrastructure.database.session import get_db
from horizon_cards.services.cards import CardService

router = APIRouter()


def _bill_schema(bill: Bill) -> BillResponse:
    return BillResponse(
        bill_key=bill.bill_key,
        year=bill.year,
        month=bill.month,
        closing_date=bill.closing_date,
        due_date=bill.due_date,
        total_amount=bill.total_amount,
        paid_amount=bill.paid_amount,
        outstanding_amount=bill.outstanding_amount,
        is_open=bill.is_open,
        is_closed=bill.is_closed,
        is_paid=bill.is_paid,
        transaction_count=len(bill.transactions),
    )


def _group(total, transactions) -> BillGroupSchema:
    return BillGroupSchema(
        total=total,
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
    )


@router.get("/cards/{card_id}/bills", response_model=BillListResponse)
def list_bills(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """
    All bills of a card, newest first.

    Also returns the bill to pay next and the total of open bills that are
    still accumulating charges.
    """
    try:
        bills = service.build_card_bills(card_id)
    except Exception as e:
        raise to_http_error(db, e, request_id)

    current = current_bill(bills)
    return BillListResponse(
        card_id=card_id,
        bills=[_bill_schema(b) for b in bills],
        current_bill=_bill_schema(current) if current else None,
        accumulating_total=accumulating_total(bills),
    )


@router.get("/cards/{card_id}/bills/open", response_model=List[BillResponse])
def list_open_bills(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Bills not yet past due, nearest due date first"""
    try:
        bills = service.build_card_bills(card_id)
    except Exception as e:
        raise to_http_error(db, e, request_id)

    return [_bill_schema(b) for b in open_bills(bills)]


@router.get("/cards/{card_id}/bills/{bill_key}", response_model=BillDetailResponse)
def get_bill(
    card_id: uuid.UUID,
    bill_key: str,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """One bill split into subscriptions, installments and single purchases"""
    try:
        bill = service.get_bill(card_id, bill_key)
    except Exception as e:
        raise to_http_error(db, e, request_id)

    breakdown = breakdown_bill(bill)
    return BillDetailResponse(
        bill=_bill_schema(bill),
        subscriptions=_group(breakdown.subscriptions_total, breakdown.subscriptions),
        installments=_group(breakdown.installments_total, breakdown.installments),
        single_purchases=_group(breakdown.single_purchases_total, breakdown.single_purchases),
    )


@router.post("/cards/{card_id}/bills/{bill_key}/pay", response_model=PayBillResponse)
async def pay_bill(
    card_id: uuid.UUID,
    bill_key: str,
    request_body: PayBillRequest,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    accounts_client: AccountsClient = Depends(get_accounts_client),
    request_id: str = Depends(get_request_id),
):
    """
    Pay a bill from an account.

    Flow:
    1. Debit the account through the accounts service
    2. Record the payment against the bill
    3. Return the payment and the bill's new paid state
    """
    try:
        payment, bill = await service.pay_bill(
            card_id=card_id,
            bill_key=bill_key,
            account_id=request_body.account_id,
            accounts_client=accounts_client,
            amount=request_body.amount,
            payment_date=request_body.payment_date,
        )
        db.commit()
    except Exception as e:
        raise to_http_error(db, e, request_id)

    return PayBillResponse(
        payment_id=payment.id,
        external_reference=payment.external_reference,
        amount=payment.amount,
        payment_date=payment.payment_date,
        bill=_bill_schema(bill),
    )
