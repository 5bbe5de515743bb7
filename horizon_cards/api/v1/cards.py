"""/v1/cards - card settings, limit accounting and rebucketing"""

import uuid
from typing import List
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from horizon_cards.api.dependencies import get_card_service, get_request_id
from horizon_cards.api.v1.errors import to_http_error
from horizon_cards.api.v1.schemas import (
    CardCreateRequest,
    CardResponse,
    CardUpdateRequest,
    LimitResponse,
    RebucketResponse,
)
from horizon_cards.infrastructure.database.session import get_db
from horizon_cards.services.cards import CardService

router = APIRouter()


@router.post("/cards", response_model=CardResponse, status_code=201)
def create_card(
    request_body: CardCreateRequest,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Register a credit card with its billing cycle"""
    try:
        card = service.create_card(**request_body.model_dump())
        db.commit()
        return card
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.get("/cards", response_model=List[CardResponse])
def list_cards(
    account_id: str = Query(..., min_length=1, description="Owning account"),
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Cards of an account, most recently created first"""
    try:
        return service.list_cards(account_id)
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.get("/cards/{card_id}", response_model=CardResponse)
def get_card(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    try:
        return service.get_card(card_id)
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.patch("/cards/{card_id}", response_model=CardResponse)
def update_card(
    card_id: uuid.UUID,
    request_body: CardUpdateRequest,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """
    Update card settings.

    Closing/due day changes apply to future bucketing only; call
    POST /v1/cards/{card_id}/rebucket to move existing rows.
    """
    try:
        card = service.update_card(card_id, request_body.model_dump(exclude_unset=True))
        db.commit()
        return card
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.delete("/cards/{card_id}", status_code=204)
def delete_card(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Delete a card together with its transactions and payments"""
    try:
        service.delete_card(card_id)
        db.commit()
        return Response(status_code=204)
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.get("/cards/{card_id}/limit", response_model=LimitResponse)
def get_limit(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Credit, used and available limit computed from completed transactions"""
    try:
        summary = service.calculate_limit(card_id)
        return LimitResponse(card_id=card_id, **vars(summary))
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.post("/cards/{card_id}/limit/recompute", response_model=LimitResponse)
def recompute_limit(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Recalculate used limit from scratch and store it on the card"""
    try:
        summary = service.recompute_used_limit(card_id)
        db.commit()
        return LimitResponse(card_id=card_id, **vars(summary))
    except Exception as e:
        raise to_http_error(db, e, request_id)


@router.post("/cards/{card_id}/rebucket", response_model=RebucketResponse)
def rebucket_card(
    card_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: CardService = Depends(get_card_service),
    request_id: str = Depends(get_request_id),
):
    """Re-run bucketing for all of the card's transactions with current settings"""
    try:
        changed = service.rebucket_card(card_id)
        db.commit()
        return RebucketResponse(card_id=card_id, changed=changed)
    except Exception as e:
        raise to_http_error(db, e, request_id)
