from decimal import Decimal
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock Accounts Server", version="1.0.0")

# account_id -> balance; "acct_empty" has no funds to exercise the 4xx path
BALANCES = {"acct_main": Decimal("10000.00"), "acct_empty": Decimal("0.00")}
DEBITS = []


class DebitRequest(BaseModel):
    amount: Decimal
    date: str
    description: str
    category: str = "credit_card_bill"


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/accounts/{account_id}/debits")
def create_debit(account_id: str, body: DebitRequest):
    if account_id not in BALANCES:
        raise HTTPException(status_code=404, detail="account not found")
    if BALANCES[account_id] < body.amount:
        raise HTTPException(status_code=409, detail="insufficient funds")
    BALANCES[account_id] -= body.amount
    debit = {"id": str(uuid4()), "account_id": account_id, "amount": str(body.amount), "balance": str(BALANCES[account_id])}
    DEBITS.append(debit)
    return debit
