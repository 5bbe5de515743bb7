"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from horizon_cards.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, level and service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_purchase_created(
    request_id: str,
    card_id: str,
    purchase_id: str,
    installment_count: int,
    created_count: int,
    failed_count: int,
    total_amount: Decimal,
) -> None:
    """Log outcome of a purchase write, partial or not"""
    level = logging.WARNING if failed_count else logging.INFO
    logging.log(
        level,
        "Purchase recorded",
        extra={
            "request_id": request_id,
            "card_id": card_id,
            "purchase_id": purchase_id,
            "step": "purchase_created",
            "installment_count": installment_count,
            "created_count": created_count,
            "failed_count": failed_count,
            "total_amount": str(total_amount),
        },
    )


def log_limit_recomputed(
    card_id: str,
    used_limit: Decimal,
    available_limit: Decimal,
    request_id: Optional[str] = None,
) -> None:
    logging.info(
        "Used limit recomputed",
        extra={
            "request_id": request_id,
            "card_id": card_id,
            "step": "limit_recomputed",
            "used_limit": str(used_limit),
            "available_limit": str(available_limit),
        },
    )
