"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from horizon_cards.domain.models import TransactionStatus


class CardCreateRequest(BaseModel):
    """Request body for POST /v1/cards"""

    account_id: str = Field(..., min_length=1, description="Owning account")
    name: str = Field(..., min_length=1)
    last_digits: str = Field(..., min_length=4, max_length=4, pattern=r"^\d{4}$")
    brand: Optional[str] = None
    credit_limit: Decimal = Field(..., ge=0, decimal_places=2)
    closing_day: int = Field(..., ge=1, le=31, description="Day-of-month the cycle closes")
    due_day: int = Field(..., ge=1, le=31, description="Day-of-month payment is due")


class CardUpdateRequest(BaseModel):
    """Request body for PATCH /v1/cards/{card_id}"""

    name: Optional[str] = Field(None, min_length=1)
    last_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")
    brand: Optional[str] = None
    credit_limit: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    due_day: Optional[int] = Field(None, ge=1, le=31)


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: str
    name: str
    last_digits: str
    brand: Optional[str] = None
    credit_limit: Decimal
    used_limit: Decimal
    closing_day: int
    due_day: int


class LimitResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/limit"""

    card_id: UUID
    credit_limit: Decimal
    used_limit: Decimal
    available_limit: Decimal


class RebucketResponse(BaseModel):
    card_id: UUID
    changed: int


class PurchaseRequest(BaseModel):
    """Request body for POST /v1/cards/{card_id}/transactions"""

    total_amount: Decimal = Field(..., gt=0, decimal_places=2, description="Purchase total")
    installment_count: int = Field(1, ge=1, description="1 for a single purchase")
    purchase_date: date
    category: str = Field(..., min_length=1)
    description: Optional[str] = None
    merchant: Optional[str] = None
    is_recurring: bool = Field(False, description="Subscription charge; /recurring also schedules the charge day")
    status: TransactionStatus = TransactionStatus.COMPLETED
    atomic: bool = Field(False, description="Roll back every row if any row fails")


class RecurringRequest(BaseModel):
    """Request body for POST /v1/cards/{card_id}/recurring"""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    start_date: date
    recurring_day: int = Field(..., ge=1, le=31)
    category: str = Field(..., min_length=1)
    description: Optional[str] = None
    merchant: Optional[str] = None
    status: TransactionStatus = TransactionStatus.PENDING


class TransactionUpdateRequest(BaseModel):
    """Request body for PATCH /v1/transactions/{transaction_id}"""

    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    charge_date: Optional[date] = None
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    merchant: Optional[str] = None
    status: Optional[TransactionStatus] = None
    credit_card_id: Optional[UUID] = None
    apply_to_future_installments: bool = False


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    credit_card_id: UUID
    purchase_id: UUID
    amount: Decimal
    purchase_date: date
    charge_date: date
    bill_key: str
    due_date: date
    category: str
    description: Optional[str] = None
    merchant: Optional[str] = None
    installment_index: int
    installment_count: int
    remaining_installments: int
    is_recurring: bool
    status: TransactionStatus


class InstallmentFailureSchema(BaseModel):
    installment_index: int
    error: str
    row: Optional[int] = None


class PurchaseResponse(BaseModel):
    """Response for POST /v1/cards/{card_id}/transactions"""

    purchase_id: UUID
    partial: bool
    created: List[TransactionResponse]
    failures: List[InstallmentFailureSchema]


class BulkTransactionItem(BaseModel):
    """One already-dated row of a bulk import"""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    charge_date: date = Field(..., description="Date the row is billed on")
    purchase_date: Optional[date] = Field(None, description="Defaults to charge_date")
    category: str = Field(..., min_length=1)
    description: Optional[str] = None
    merchant: Optional[str] = None
    installment_index: int = Field(1, ge=1)
    installment_count: int = Field(1, ge=1)
    is_recurring: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED
    purchase_id: Optional[UUID] = Field(None, description="Groups installments of one purchase")


class BulkTransactionRequest(BaseModel):
    """Request body for POST /v1/cards/{card_id}/transactions/bulk"""

    transactions: List[BulkTransactionItem] = Field(..., min_length=1)


class BulkTransactionResponse(BaseModel):
    partial: bool
    created: List[TransactionResponse]
    failures: List[InstallmentFailureSchema]


class DeleteResponse(BaseModel):
    deleted_count: int


class BillResponse(BaseModel):
    """One monthly bill"""

    bill_key: str
    year: int
    month: int
    closing_date: date
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    is_open: bool
    is_closed: bool
    is_paid: bool
    transaction_count: int


class BillListResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/bills"""

    card_id: UUID
    bills: List[BillResponse]
    current_bill: Optional[BillResponse] = None
    accumulating_total: Decimal


class BillGroupSchema(BaseModel):
    total: Decimal
    transactions: List[TransactionResponse]


class BillDetailResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/bills/{bill_key}"""

    bill: BillResponse
    subscriptions: BillGroupSchema
    installments: BillGroupSchema
    single_purchases: BillGroupSchema


class PayBillRequest(BaseModel):
    """Request body for POST /v1/cards/{card_id}/bills/{bill_key}/pay"""

    account_id: str = Field(..., min_length=1, description="Account debited for the payment")
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2, description="Defaults to the outstanding amount")
    payment_date: Optional[date] = None


class PayBillResponse(BaseModel):
    payment_id: UUID
    external_reference: Optional[str] = None
    amount: Decimal
    payment_date: date
    bill: BillResponse
