"""Accounts service client used to debit bill payments"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Dict

import httpx

from horizon_cards.config import settings
from horizon_cards.domain.exceptions import AccountsAPIError
from horizon_cards.infrastructure.observability.metrics import debit_failure_counter, debit_latency_histogram


class AccountsClient:
    """Client for the external accounts service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.accounts_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport
        self.max_retries = settings.debit_max_retries
        self.backoff_base = settings.debit_backoff_base

    async def debit(
        self,
        account_id: str,
        amount: Decimal,
        payment_date: date,
        description: str,
    ) -> Dict[str, Any]:
        """
        Debit an account for a bill payment.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base...
        - Retries on 5xx responses and network failures
        - 4xx responses fail immediately

        Returns:
            Debit record from the accounts service (includes its "id")

        Raises:
            AccountsAPIError: when the debit cannot be confirmed
        """
        payload = {
            "amount": str(amount),
            "date": payment_date.isoformat(),
            "description": description,
            "category": "credit_card_bill",
        }
        url = f"{self.base_url}/accounts/{account_id}/debits"

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with debit_latency_histogram.time():
                        response = await client.post(url, json=payload)
                        response.raise_for_status()
                    return response.json()

                except httpx.HTTPStatusError as e:
                    debit_failure_counter.inc()
                    if e.response.status_code < 500:
                        raise AccountsAPIError(f"Accounts API rejected debit: {e.response.status_code}") from e
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise AccountsAPIError(f"Accounts API error: {e.response.status_code}") from e

                except httpx.RequestError as e:
                    debit_failure_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise AccountsAPIError(f"Accounts API unreachable: {e}") from e

                except ValueError as e:
                    raise AccountsAPIError(f"Invalid debit response from accounts API: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)
