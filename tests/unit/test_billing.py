"""Unit tests for closing-day bucketing and bill aggregation"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from horizon_cards.domain.billing import (
    accumulating_total,
    allocate_bucket,
    breakdown_bill,
    build_bills,
    current_bill,
    open_bills,
)
from horizon_cards.domain.exceptions import ValidationError
from horizon_cards.domain.models import CardSettings


def make_txn(charge_date, amount, status="completed", is_recurring=False, installment_count=1):
    return SimpleNamespace(
        charge_date=charge_date,
        amount=Decimal(amount),
        status=status,
        is_recurring=is_recurring,
        installment_count=installment_count,
    )


def test_purchase_before_closing_day_stays_in_current_bill(card_settings):
    """Purchase on the 9th with closing on the 10th"""
    period = allocate_bucket(date(2025, 1, 9), card_settings)

    assert period.bill_key == "2025-01"
    assert period.closing_date == date(2025, 1, 10)
    assert period.due_date == date(2025, 1, 15)


def test_purchase_on_closing_day_rolls_to_next_bill(card_settings):
    """The closing day itself belongs to the next bill"""
    period = allocate_bucket(date(2025, 1, 10), card_settings)

    assert period.bill_key == "2025-02"
    assert period.closing_date == date(2025, 2, 10)
    assert period.due_date == date(2025, 2, 15)


@pytest.mark.parametrize("closing_day", [1, 5, 15, 28])
def test_closing_day_boundary_for_any_closing_day(closing_day):
    card = CardSettings(closing_day=closing_day, due_day=28)

    on_closing = allocate_bucket(date(2025, 6, closing_day), card)
    assert on_closing.closing_date == date(2025, 7, closing_day)

    if closing_day > 1:
        before_closing = allocate_bucket(date(2025, 6, closing_day - 1), card)
        assert before_closing.closing_date == date(2025, 6, closing_day)


def test_due_day_before_closing_day_lands_next_month():
    """closing_day=30, due_day=10: due date is the month after closing"""
    card = CardSettings(closing_day=30, due_day=10)
    period = allocate_bucket(date(2025, 1, 5), card)

    assert period.closing_date == date(2025, 1, 30)
    assert period.due_date == date(2025, 2, 10)
    assert period.bill_key == "2025-02"


def test_due_day_equal_to_closing_day_lands_next_month():
    card = CardSettings(closing_day=10, due_day=10)
    period = allocate_bucket(date(2025, 3, 1), card)

    assert period.closing_date == date(2025, 3, 10)
    assert period.due_date == date(2025, 4, 10)


def test_due_day_after_closing_day_shares_month():
    card = CardSettings(closing_day=10, due_day=20)
    period = allocate_bucket(date(2025, 3, 1), card)

    assert period.closing_date.month == period.due_date.month == 3


def test_december_purchase_wraps_to_january(card_settings):
    period = allocate_bucket(date(2025, 12, 20), card_settings)

    assert period.bill_key == "2026-01"
    assert period.closing_date == date(2026, 1, 10)
    assert period.due_date == date(2026, 1, 15)


def test_due_month_wraps_year():
    card = CardSettings(closing_day=30, due_day=10)
    period = allocate_bucket(date(2025, 12, 31), card)

    assert period.closing_date == date(2026, 1, 30)
    assert period.due_date == date(2026, 2, 10)
    assert period.bill_key == "2026-02"


def test_closing_day_past_month_end_is_clamped():
    """Closing on the 31st closes on Feb 28; Feb 28 itself rolls forward"""
    card = CardSettings(closing_day=31, due_day=5)

    before = allocate_bucket(date(2025, 2, 27), card)
    assert before.closing_date == date(2025, 2, 28)
    assert before.due_date == date(2025, 3, 5)

    on_last_day = allocate_bucket(date(2025, 2, 28), card)
    assert on_last_day.closing_date == date(2025, 3, 31)
    assert on_last_day.due_date == date(2025, 4, 5)


def test_leap_year_february_clamp():
    card = CardSettings(closing_day=30, due_day=5)
    period = allocate_bucket(date(2024, 2, 28), card)

    assert period.closing_date == date(2024, 2, 29)


def test_due_day_past_month_end_is_clamped():
    card = CardSettings(closing_day=25, due_day=31)
    period = allocate_bucket(date(2025, 4, 1), card)

    assert period.due_date == date(2025, 4, 30)
    assert period.bill_key == "2025-04"


def test_due_deadline_is_end_of_day(card_settings):
    period = allocate_bucket(date(2025, 1, 9), card_settings)

    assert period.due_deadline.date() == date(2025, 1, 15)
    assert period.due_deadline.hour == 23
    assert period.due_deadline.minute == 59


def test_aware_datetime_uses_user_timezone(card_settings):
    """02:00 UTC on the 10th is still the 9th in Sao Paulo"""
    period = allocate_bucket(datetime(2025, 1, 10, 2, 0, tzinfo=timezone.utc), card_settings)

    assert period.bill_key == "2025-01"


@pytest.mark.parametrize("closing_day,due_day", [(0, 10), (32, 10), (10, 0), (10, 40)])
def test_card_settings_reject_out_of_range_days(closing_day, due_day):
    with pytest.raises(ValidationError):
        CardSettings(closing_day=closing_day, due_day=due_day)


def test_card_settings_reject_negative_limit():
    with pytest.raises(ValidationError):
        CardSettings(closing_day=10, due_day=15, credit_limit=Decimal("-1"))


def test_build_bills_groups_and_sorts_descending(card_settings):
    transactions = [
        make_txn(date(2025, 1, 9), "120.00"),
        make_txn(date(2025, 1, 2), "30.00"),
        make_txn(date(2025, 1, 10), "80.00"),
        make_txn(date(2024, 12, 5), "10.00"),
    ]

    bills = build_bills("card-1", transactions, card_settings, today=date(2025, 1, 12))

    assert [b.bill_key for b in bills] == ["2025-02", "2025-01", "2024-12"]
    january = bills[1]
    assert january.total_amount == Decimal("150.00")
    assert len(january.transactions) == 2
    assert january.card_id == "card-1"


def test_build_bills_ignores_pending_and_cancelled(card_settings):
    transactions = [
        make_txn(date(2025, 1, 9), "300.00"),
        make_txn(date(2025, 1, 9), "500.00", status="pending"),
        make_txn(date(2025, 1, 9), "70.00", status="cancelled"),
    ]

    bills = build_bills("card-1", transactions, card_settings, today=date(2025, 1, 1))

    assert len(bills) == 1
    assert bills[0].total_amount == Decimal("300.00")


def test_bill_open_and_closed_flags(card_settings):
    transactions = [
        make_txn(date(2024, 12, 5), "10.00"),  # due 2024-12-15
        make_txn(date(2025, 1, 5), "20.00"),  # closes 01-10, due 01-15
        make_txn(date(2025, 1, 20), "40.00"),  # closes 02-10, due 02-15
    ]

    bills = {b.bill_key: b for b in build_bills("c", transactions, card_settings, today=date(2025, 1, 12))}

    assert not bills["2024-12"].is_open
    assert bills["2025-01"].is_open and bills["2025-01"].is_closed
    assert bills["2025-02"].is_open and not bills["2025-02"].is_closed


def test_bill_is_open_on_due_date_itself(card_settings):
    bills = build_bills("c", [make_txn(date(2025, 1, 5), "20.00")], card_settings, today=date(2025, 1, 15))

    assert bills[0].is_open


def test_open_bills_current_bill_and_accumulating_total(card_settings):
    transactions = [
        make_txn(date(2024, 12, 5), "10.00"),
        make_txn(date(2025, 1, 5), "20.00"),
        make_txn(date(2025, 1, 20), "40.00"),
        make_txn(date(2025, 2, 20), "5.00"),
    ]
    bills = build_bills("c", transactions, card_settings, today=date(2025, 1, 12))

    pending = open_bills(bills)
    assert [b.bill_key for b in pending] == ["2025-01", "2025-02", "2025-03"]
    assert current_bill(bills).bill_key == "2025-01"
    # January is closed already; February and March still take charges
    assert accumulating_total(bills) == Decimal("45.00")


def test_current_bill_none_when_everything_is_past_due(card_settings):
    bills = build_bills("c", [make_txn(date(2024, 1, 5), "20.00")], card_settings, today=date(2025, 1, 1))

    assert current_bill(bills) is None
    assert accumulating_total(bills) == Decimal("0.00")


def test_payments_mark_bill_paid(card_settings):
    transactions = [make_txn(date(2025, 1, 5), "100.00"), make_txn(date(2025, 1, 20), "40.00")]
    payments = [SimpleNamespace(bill_key="2025-01", amount=Decimal("60.00"))]

    bills = {b.bill_key: b for b in build_bills("c", transactions, card_settings, payments, today=date(2025, 1, 12))}

    assert bills["2025-01"].is_paid
    assert bills["2025-01"].paid_amount == Decimal("60.00")
    assert bills["2025-01"].outstanding_amount == Decimal("40.00")
    assert not bills["2025-02"].is_paid


def test_breakdown_subtotals_sum_to_bill_total(card_settings):
    transactions = [
        make_txn(date(2025, 1, 3), "39.90", is_recurring=True),
        make_txn(date(2025, 1, 4), "33.34", installment_count=3),
        make_txn(date(2025, 1, 5), "120.00"),
        make_txn(date(2025, 1, 6), "15.50"),
    ]
    bill = build_bills("c", transactions, card_settings, today=date(2025, 1, 1))[0]

    breakdown = breakdown_bill(bill)

    assert breakdown.subscriptions_total == Decimal("39.90")
    assert breakdown.installments_total == Decimal("33.34")
    assert breakdown.single_purchases_total == Decimal("135.50")
    assert (
        breakdown.subscriptions_total + breakdown.installments_total + breakdown.single_purchases_total
        == bill.total_amount
    )
    assert len(breakdown.single_purchases) == 2


def test_breakdown_recurring_installment_counts_once(card_settings):
    transactions = [make_txn(date(2025, 1, 3), "10.00", is_recurring=True, installment_count=2)]
    bill = build_bills("c", transactions, card_settings, today=date(2025, 1, 1))[0]

    breakdown = breakdown_bill(bill)

    assert len(breakdown.subscriptions) == 1
    assert breakdown.installments == []
