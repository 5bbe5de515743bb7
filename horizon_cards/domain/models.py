"""Domain models - pure Python dataclasses representing billing entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, List, Optional

from horizon_cards.domain.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a number to a Decimal with cent precision"""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class TransactionStatus(str, Enum):
    """Lifecycle of a card transaction; only completed rows count"""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CardSettings:
    """Billing configuration of a card, validated once at the boundary"""

    closing_day: int
    due_day: int
    credit_limit: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("closing_day", "due_day"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 31:
                raise ValidationError(f"{name} must be an integer between 1 and 31, got {value!r}")
        limit = to_money(self.credit_limit)
        if limit < 0:
            raise ValidationError("credit_limit cannot be negative")
        object.__setattr__(self, "credit_limit", limit)

    @classmethod
    def from_card(cls, card: Any) -> "CardSettings":
        """Build settings from a persisted credit card record"""
        return cls(
            closing_day=card.closing_day,
            due_day=card.due_day,
            credit_limit=card.credit_limit,
        )


@dataclass(frozen=True)
class BillPeriod:
    """Bill a reference date falls into, keyed by its due month"""

    bill_key: str
    closing_date: date
    due_date: date

    @property
    def year(self) -> int:
        return self.due_date.year

    @property
    def month(self) -> int:
        return self.due_date.month

    @property
    def due_deadline(self) -> datetime:
        """Last instant at which the bill is still open"""
        return datetime.combine(self.due_date, time.max)


@dataclass
class PurchaseMetadata:
    """Free-form fields shared by every row of one purchase"""

    category: str
    description: Optional[str] = None
    merchant: Optional[str] = None
    is_recurring: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED


@dataclass
class DatedCharge:
    """Already-dated row from a bulk import; bucketed on write"""

    amount: Decimal
    charge_date: date
    category: str
    purchase_date: Optional[date] = None
    description: Optional[str] = None
    merchant: Optional[str] = None
    installment_index: int = 1
    installment_count: int = 1
    is_recurring: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED
    purchase_id: Optional[uuid.UUID] = None


@dataclass
class TransactionDraft:
    """Transaction row ready to be persisted"""

    amount: Decimal
    purchase_date: date
    charge_date: date
    bill_key: str
    due_date: date
    installment_index: int
    installment_count: int
    category: str
    description: Optional[str] = None
    merchant: Optional[str] = None
    is_recurring: bool = False
    status: TransactionStatus = TransactionStatus.COMPLETED

    @property
    def remaining_installments(self) -> int:
        return self.installment_count - self.installment_index


@dataclass
class Bill:
    """Monthly bill derived from a card's transactions"""

    card_id: Any
    bill_key: str
    closing_date: date
    due_date: date
    transactions: List[Any] = field(default_factory=list)
    total_amount: Decimal = ZERO
    is_open: bool = False
    is_closed: bool = False
    is_paid: bool = False
    paid_amount: Decimal = ZERO

    @property
    def year(self) -> int:
        return self.due_date.year

    @property
    def month(self) -> int:
        return self.due_date.month

    @property
    def outstanding_amount(self) -> Decimal:
        return max(self.total_amount - self.paid_amount, ZERO)


@dataclass
class BillBreakdown:
    """Display grouping of a bill's transactions"""

    bill: Bill
    subscriptions: List[Any]
    installments: List[Any]
    single_purchases: List[Any]
    subscriptions_total: Decimal
    installments_total: Decimal
    single_purchases_total: Decimal


@dataclass
class LimitSummary:
    """Credit ceiling split into used and available parts"""

    credit_limit: Decimal
    used_limit: Decimal
    available_limit: Decimal


@dataclass
class InstallmentFailure:
    """Row of a purchase that could not be persisted"""

    installment_index: int
    error: str
    row: Optional[int] = None


@dataclass
class InstallmentCreationResult:
    """Outcome of a best-effort bulk write of installment rows"""

    purchase_id: Optional[uuid.UUID] = None
    created: List[Any] = field(default_factory=list)
    failures: List[InstallmentFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)
