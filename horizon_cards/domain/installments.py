"""Installment expansion for split credit-card purchases"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Tuple

from horizon_cards.config import settings as app_settings
from horizon_cards.domain.billing import allocate_bucket
from horizon_cards.domain.exceptions import ValidationError
from horizon_cards.domain.models import (
    CENT,
    CardSettings,
    DatedCharge,
    PurchaseMetadata,
    TransactionDraft,
    to_money,
)
from horizon_cards.utils.date_utils import add_months, clamp_day, shift_month, to_local_date


def split_amount(total_amount: Decimal, installment_count: int) -> Tuple[Decimal, Decimal]:
    """
    Split a total into (first_installment, regular_installment) amounts.

    The regular amount is the total divided by the count rounded down to the
    cent; the first installment absorbs the leftover cents.

    Example:
        100.00 / 3 -> (33.34, 33.33)
    """
    total_cents = int(to_money(total_amount) / CENT)
    base_cents = total_cents // installment_count
    remainder_cents = total_cents - base_cents * installment_count

    regular = Decimal(base_cents) * CENT
    first = Decimal(base_cents + remainder_cents) * CENT
    return first, regular


def expand_installments(
    total_amount: Decimal,
    installment_count: int,
    purchase_date: date | datetime,
    settings: CardSettings,
    metadata: PurchaseMetadata,
) -> List[TransactionDraft]:
    """
    Generate one dated transaction draft per installment.

    Requirements:
    - Amounts sum exactly to total_amount, first installment absorbs rounding
    - Installment k is charged on purchase_date + (k-1) months (clamped at month
      end) and bucketed on its own, so closing-day checks run per installment
    - Every draft keeps the original purchase_date

    Raises:
        ValidationError: non-positive amount or installment count out of range
    """
    total = to_money(total_amount)
    if total <= 0:
        raise ValidationError("Amount must be a positive number")
    if not isinstance(installment_count, int) or isinstance(installment_count, bool) or installment_count < 1:
        raise ValidationError("Installment count must be at least 1")
    if installment_count > app_settings.max_installments:
        raise ValidationError(f"Installment count cannot exceed {app_settings.max_installments}")
    if installment_count > 1 and total < CENT * installment_count:
        raise ValidationError("Amount is too small to split into that many installments")

    purchase_day = to_local_date(purchase_date)
    first_amount, regular_amount = split_amount(total, installment_count)

    drafts = []
    for index in range(1, installment_count + 1):
        charge_date = add_months(purchase_day, index - 1)
        period = allocate_bucket(charge_date, settings)

        drafts.append(
            TransactionDraft(
                amount=first_amount if index == 1 else regular_amount,
                purchase_date=purchase_day,
                charge_date=charge_date,
                bill_key=period.bill_key,
                due_date=period.due_date,
                installment_index=index,
                installment_count=installment_count,
                category=metadata.category,
                description=metadata.description,
                merchant=metadata.merchant,
                is_recurring=metadata.is_recurring,
                status=metadata.status,
            )
        )

    return drafts


def next_recurring_date(start_date: date | datetime, recurring_day: int) -> date:
    """
    First charge date of a subscription billed on recurring_day.

    Uses recurring_day of the start month, or of the following month when
    that day falls before start_date.
    """
    if not isinstance(recurring_day, int) or isinstance(recurring_day, bool) or not 1 <= recurring_day <= 31:
        raise ValidationError("Recurring day must be between 1 and 31")

    start = to_local_date(start_date)
    charge = date(start.year, start.month, clamp_day(start.year, start.month, recurring_day))
    if charge < start:
        year, month = shift_month(start.year, start.month, 1)
        charge = date(year, month, clamp_day(year, month, recurring_day))
    return charge


def draft_from_charge(charge: DatedCharge, settings: CardSettings) -> TransactionDraft:
    """
    Bucket an already-dated row, as sent by a bulk import.

    The row keeps its own installment position; only bill_key and due_date
    are derived, from the charge date and the card's current settings.

    Raises:
        ValidationError: non-positive amount or inconsistent installment position
    """
    amount = to_money(charge.amount)
    if amount <= 0:
        raise ValidationError("Amount must be a positive number")
    count, index = charge.installment_count, charge.installment_index
    if not 1 <= count <= app_settings.max_installments:
        raise ValidationError(f"Installment count must be between 1 and {app_settings.max_installments}")
    if not 1 <= index <= count:
        raise ValidationError(f"Installment {index} is outside 1..{count}")

    charge_date = to_local_date(charge.charge_date)
    period = allocate_bucket(charge_date, settings)

    return TransactionDraft(
        amount=amount,
        purchase_date=to_local_date(charge.purchase_date) if charge.purchase_date else charge_date,
        charge_date=charge_date,
        bill_key=period.bill_key,
        due_date=period.due_date,
        installment_index=index,
        installment_count=count,
        category=charge.category,
        description=charge.description,
        merchant=charge.merchant,
        is_recurring=charge.is_recurring,
        status=charge.status,
    )
