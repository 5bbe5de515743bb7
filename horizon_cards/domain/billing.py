"""Billing cycle allocation and bill aggregation - core business logic"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from horizon_cards.domain.models import (
    Bill,
    BillBreakdown,
    BillPeriod,
    CardSettings,
    TransactionStatus,
    ZERO,
)
from horizon_cards.utils.date_utils import clamp_day, shift_month, to_local_date, today_local


def allocate_bucket(reference_date: date | datetime, settings: CardSettings) -> BillPeriod:
    """
    Compute the bill a purchase belongs to.

    Rules:
    - A purchase on or after the closing day rolls into the next cycle. The
      closing day itself belongs to the next bill (>=, not >).
    - When due_day <= closing_day the due date falls one month after the
      closing month, otherwise in the same month.
    - Bills are keyed by due month: "YYYY-MM".
    - Days past the end of a month are clamped to its last day.

    Example:
        closing_day=10, due_day=15
        2025-01-09 -> closes 2025-01-10, due 2025-01-15, key "2025-01"
        2025-01-10 -> closes 2025-02-10, due 2025-02-15, key "2025-02"
    """
    ref = to_local_date(reference_date)

    bill_year, bill_month = ref.year, ref.month
    if ref.day >= clamp_day(ref.year, ref.month, settings.closing_day):
        bill_year, bill_month = shift_month(bill_year, bill_month, 1)

    closing_date = date(bill_year, bill_month, clamp_day(bill_year, bill_month, settings.closing_day))

    due_year, due_month = bill_year, bill_month
    if settings.due_day <= settings.closing_day:
        due_year, due_month = shift_month(due_year, due_month, 1)

    due_date = date(due_year, due_month, clamp_day(due_year, due_month, settings.due_day))

    return BillPeriod(
        bill_key=f"{due_year}-{due_month:02d}",
        closing_date=closing_date,
        due_date=due_date,
    )


def build_bills(
    card_id: Any,
    transactions: Iterable[Any],
    settings: CardSettings,
    payments: Iterable[Any] = (),
    today: Optional[date] = None,
) -> List[Bill]:
    """
    Group a card's completed transactions into bills, newest first.

    Each transaction is bucketed from its own charge date. Payments are matched
    to bills by bill_key; any recorded payment marks the bill paid.
    """
    today = today or today_local()

    paid_by_key: Dict[str, Decimal] = {}
    for payment in payments:
        paid_by_key[payment.bill_key] = paid_by_key.get(payment.bill_key, ZERO) + payment.amount

    bills: Dict[str, Bill] = {}
    for txn in transactions:
        if TransactionStatus(txn.status) != TransactionStatus.COMPLETED:
            continue

        period = allocate_bucket(txn.charge_date, settings)
        bill = bills.get(period.bill_key)
        if bill is None:
            bill = Bill(
                card_id=card_id,
                bill_key=period.bill_key,
                closing_date=period.closing_date,
                due_date=period.due_date,
                is_open=today <= period.due_date,
                is_closed=today > period.closing_date,
                is_paid=period.bill_key in paid_by_key,
                paid_amount=paid_by_key.get(period.bill_key, ZERO),
            )
            bills[period.bill_key] = bill

        bill.transactions.append(txn)
        bill.total_amount += txn.amount

    return sorted(bills.values(), key=lambda b: (b.year, b.month), reverse=True)


def open_bills(bills: Iterable[Bill]) -> List[Bill]:
    """Bills not yet past due, the next one to pay first"""
    return sorted((b for b in bills if b.is_open), key=lambda b: (b.year, b.month))


def current_bill(bills: Iterable[Bill]) -> Optional[Bill]:
    """Earliest-due open bill"""
    pending = open_bills(bills)
    return pending[0] if pending else None


def accumulating_total(bills: Iterable[Bill]) -> Decimal:
    """Sum of open bills still accumulating charges (not yet closed)"""
    return sum((b.total_amount for b in bills if b.is_open and not b.is_closed), ZERO)


def breakdown_bill(bill: Bill) -> BillBreakdown:
    """
    Split a bill into subscriptions, installment purchases and single purchases.

    Groups are disjoint: recurring rows are subscriptions even when split.
    """
    subscriptions, installments, singles = [], [], []
    for txn in bill.transactions:
        if txn.is_recurring:
            subscriptions.append(txn)
        elif txn.installment_count > 1:
            installments.append(txn)
        else:
            singles.append(txn)

    return BillBreakdown(
        bill=bill,
        subscriptions=subscriptions,
        installments=installments,
        single_purchases=singles,
        subscriptions_total=sum((t.amount for t in subscriptions), ZERO),
        installments_total=sum((t.amount for t in installments), ZERO),
        single_purchases_total=sum((t.amount for t in singles), ZERO),
    )
