"""Prometheus metrics for purchases, limit recomputation and bill payments"""

from prometheus_client import Counter, Histogram

# Purchase metrics
transactions_created_counter = Counter(
    "horizon_card_transactions_created_total",
    "Card transaction rows persisted",
    ["kind"],  # single | installment | recurring | bulk
)

installment_row_failures_counter = Counter(
    "horizon_installment_row_failures_total",
    "Installment rows that failed to persist during a bulk write",
)

installment_count_histogram = Histogram(
    "horizon_purchase_installment_count",
    "Number of installments per purchase",
    buckets=[1, 2, 3, 6, 10, 12, 18, 24, 48],
)

# Limit accounting
limit_recompute_failures_counter = Counter(
    "horizon_limit_recompute_failures_total",
    "Used-limit recomputations that failed after a mutation",
)

# Bill payments
bill_payment_counter = Counter(
    "horizon_bill_payments_total",
    "Bill payment attempts",
    ["outcome"],  # recorded | debit_failed
)

debit_latency_histogram = Histogram(
    "accounts_debit_latency_seconds",
    "Accounts service debit response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

debit_failure_counter = Counter(
    "accounts_debit_failures_total",
    "Failed accounts service debit attempts",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_purchase(installment_count: int, is_recurring: bool, created_rows: int) -> None:
    """Count persisted rows by purchase kind"""
    if is_recurring:
        kind = "recurring"
    elif installment_count > 1:
        kind = "installment"
    else:
        kind = "single"

    if created_rows:
        transactions_created_counter.labels(kind=kind).inc(created_rows)
    installment_count_histogram.observe(installment_count)
