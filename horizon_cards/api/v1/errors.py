"""Translate domain failures into HTTP errors"""

import logging
from fastapi import HTTPException
from sqlalchemy.orm import Session

from horizon_cards.domain.exceptions import AccountsAPIError, NotFoundError, ValidationError


def to_http_error(db: Session, error: Exception, request_id: str) -> HTTPException:
    """Roll back the request's work and map the failure to a status code"""
    db.rollback()

    if isinstance(error, ValidationError):
        logging.warning(f"Validation failed: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))

    if isinstance(error, AccountsAPIError):
        logging.error(f"Accounts API error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail="Accounts service unavailable")

    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id}, exc_info=error)
    return HTTPException(status_code=500, detail="Internal server error")
