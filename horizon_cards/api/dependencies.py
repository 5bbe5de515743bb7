"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from horizon_cards.infrastructure.clients.accounts import AccountsClient
from horizon_cards.infrastructure.database.session import get_db
from horizon_cards.services.cards import CardService
from horizon_cards.services.transactions import CardTransactionService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_accounts_client() -> AccountsClient:
    """Provide accounts service client instance"""
    return AccountsClient()


def get_card_service(
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
) -> CardService:
    return CardService(db, request_id)


def get_transaction_service(
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
) -> CardTransactionService:
    return CardTransactionService(db, request_id)
