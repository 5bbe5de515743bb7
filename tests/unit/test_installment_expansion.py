"""Unit tests for installment splitting and recurring schedules"""

import pytest
from datetime import date
from decimal import Decimal
from horizon_cards.domain.exceptions import ValidationError
from horizon_cards.domain.installments import draft_from_charge, expand_installments, next_recurring_date, split_amount
from horizon_cards.domain.models import DatedCharge, PurchaseMetadata, TransactionStatus


@pytest.fixture
def metadata() -> PurchaseMetadata:
    return PurchaseMetadata(category="electronics", description="Headphones", merchant="Loja X")


def test_split_first_installment_absorbs_remainder():
    first, regular = split_amount(Decimal("100.00"), 3)

    assert first == Decimal("33.34")
    assert regular == Decimal("33.33")


def test_split_small_amount():
    first, regular = split_amount(Decimal("0.05"), 3)

    assert first == Decimal("0.03")
    assert regular == Decimal("0.01")


def test_split_even_amount():
    first, regular = split_amount(Decimal("120.00"), 4)

    assert first == regular == Decimal("30.00")


@pytest.mark.parametrize(
    "total,count",
    [("100.00", 3), ("0.05", 3), ("999.99", 7), ("1234.56", 12), ("10.00", 48), ("0.48", 48)],
)
def test_installments_sum_to_total(total, count, card_settings, metadata):
    drafts = expand_installments(Decimal(total), count, date(2025, 1, 5), card_settings, metadata)

    assert len(drafts) == count
    assert sum(d.amount for d in drafts) == Decimal(total)
    assert all(d.amount > 0 for d in drafts)


def test_three_installments_land_in_consecutive_bills(card_settings, metadata):
    """Purchase on Jan 5 in 3x: one installment in each of Jan, Feb and Mar"""
    drafts = expand_installments(Decimal("100.00"), 3, date(2025, 1, 5), card_settings, metadata)

    assert [d.amount for d in drafts] == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
    assert [d.charge_date for d in drafts] == [date(2025, 1, 5), date(2025, 2, 5), date(2025, 3, 5)]
    assert [d.bill_key for d in drafts] == ["2025-01", "2025-02", "2025-03"]
    assert [d.due_date for d in drafts] == [date(2025, 1, 15), date(2025, 2, 15), date(2025, 3, 15)]


def test_installments_keep_purchase_date_and_metadata(card_settings, metadata):
    drafts = expand_installments(Decimal("90.00"), 3, date(2025, 1, 5), card_settings, metadata)

    for index, draft in enumerate(drafts, start=1):
        assert draft.purchase_date == date(2025, 1, 5)
        assert draft.installment_index == index
        assert draft.installment_count == 3
        assert draft.remaining_installments == 3 - index
        assert draft.category == "electronics"
        assert draft.merchant == "Loja X"
        assert draft.status == TransactionStatus.COMPLETED


def test_month_end_purchase_is_clamped_each_month(card_settings, metadata):
    drafts = expand_installments(Decimal("30.00"), 3, date(2025, 1, 31), card_settings, metadata)

    assert [d.charge_date for d in drafts] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
    assert [d.bill_key for d in drafts] == ["2025-02", "2025-03", "2025-04"]


def test_each_installment_checks_closing_day(card_settings, metadata):
    """A purchase on the closing day pushes every installment one bill forward"""
    drafts = expand_installments(Decimal("20.00"), 2, date(2025, 1, 10), card_settings, metadata)

    assert [d.bill_key for d in drafts] == ["2025-02", "2025-03"]


def test_installments_cross_year(card_settings, metadata):
    drafts = expand_installments(Decimal("40.00"), 4, date(2025, 11, 5), card_settings, metadata)

    assert [d.bill_key for d in drafts] == ["2025-11", "2025-12", "2026-01", "2026-02"]


def test_single_purchase_is_one_draft(card_settings, metadata):
    drafts = expand_installments(Decimal("59.90"), 1, date(2025, 1, 9), card_settings, metadata)

    assert len(drafts) == 1
    assert drafts[0].amount == Decimal("59.90")
    assert drafts[0].installment_index == drafts[0].installment_count == 1
    assert drafts[0].remaining_installments == 0


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10.00")])
def test_non_positive_amount_rejected(amount, card_settings, metadata):
    with pytest.raises(ValidationError, match="positive"):
        expand_installments(amount, 1, date(2025, 1, 5), card_settings, metadata)


@pytest.mark.parametrize("count", [0, -1, 49])
def test_installment_count_out_of_range_rejected(count, card_settings, metadata):
    with pytest.raises(ValidationError):
        expand_installments(Decimal("100.00"), count, date(2025, 1, 5), card_settings, metadata)


def test_amount_too_small_to_split_rejected(card_settings, metadata):
    with pytest.raises(ValidationError, match="too small"):
        expand_installments(Decimal("0.02"), 3, date(2025, 1, 5), card_settings, metadata)


def test_invalid_amount_rejected(card_settings, metadata):
    with pytest.raises(ValidationError):
        expand_installments("not-a-number", 1, date(2025, 1, 5), card_settings, metadata)


@pytest.mark.parametrize(
    "start,day,expected",
    [
        (date(2025, 1, 5), 20, date(2025, 1, 20)),
        (date(2025, 1, 20), 20, date(2025, 1, 20)),
        (date(2025, 1, 20), 5, date(2025, 2, 5)),
        (date(2025, 2, 10), 31, date(2025, 2, 28)),
        (date(2025, 1, 31), 30, date(2025, 2, 28)),
        (date(2025, 12, 15), 1, date(2026, 1, 1)),
    ],
)
def test_next_recurring_date(start, day, expected):
    assert next_recurring_date(start, day) == expected


@pytest.mark.parametrize("day", [0, 32])
def test_next_recurring_date_rejects_invalid_day(day):
    with pytest.raises(ValidationError):
        next_recurring_date(date(2025, 1, 1), day)


def test_dated_charge_is_bucketed_on_its_charge_date(card_settings):
    charge = DatedCharge(
        amount=Decimal("45.5"),
        charge_date=date(2025, 3, 10),
        purchase_date=date(2025, 1, 10),
        category="travel",
        installment_index=3,
        installment_count=4,
    )

    draft = draft_from_charge(charge, card_settings)

    assert draft.amount == Decimal("45.50")
    assert draft.bill_key == "2025-04"
    assert draft.due_date == date(2025, 4, 15)
    assert draft.purchase_date == date(2025, 1, 10)
    assert draft.remaining_installments == 1


def test_dated_charge_purchase_date_defaults_to_charge_date(card_settings):
    draft = draft_from_charge(DatedCharge(amount=Decimal("5.00"), charge_date=date(2025, 1, 2), category="food"), card_settings)

    assert draft.purchase_date == date(2025, 1, 2)
    assert draft.bill_key == "2025-01"


@pytest.mark.parametrize(
    "amount,index,count",
    [(Decimal("0"), 1, 1), (Decimal("10.00"), 0, 1), (Decimal("10.00"), 3, 2), (Decimal("10.00"), 1, 49)],
)
def test_dated_charge_validation(amount, index, count, card_settings):
    charge = DatedCharge(
        amount=amount, charge_date=date(2025, 1, 2), category="food", installment_index=index, installment_count=count
    )

    with pytest.raises(ValidationError):
        draft_from_charge(charge, card_settings)
