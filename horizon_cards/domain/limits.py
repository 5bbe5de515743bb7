"""Credit limit accounting"""

from decimal import Decimal
from typing import Any, Iterable

from horizon_cards.domain.models import LimitSummary, TransactionStatus, ZERO, to_money


def summarize_limit(credit_limit: Decimal, transactions: Iterable[Any]) -> LimitSummary:
    """
    Derive used and available limit from a card's transactions.

    Only completed transactions consume limit; pending and cancelled rows are
    ignored. The result is a pure function of its inputs, so recomputing it
    from the same rows always yields the same numbers.
    """
    used = sum(
        (to_money(t.amount) for t in transactions if TransactionStatus(t.status) == TransactionStatus.COMPLETED),
        ZERO,
    )
    limit = to_money(credit_limit)

    return LimitSummary(
        credit_limit=limit,
        used_limit=used,
        available_limit=limit - used,
    )
