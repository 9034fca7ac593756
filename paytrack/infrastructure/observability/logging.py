"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from paytrack.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

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

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


logger = logging.getLogger("paytrack")


def log_payment(
    obligation_id: int,
    amount: Decimal,
    paid_amount: Decimal,
    status: str,
    request_id: Optional[str] = None,
) -> None:
    """Log structured settlement outcome"""
    logger.info(
        "Payment recorded",
        extra={
            "request_id": request_id,
            "step": "payment_recorded",
            "obligation_id": obligation_id,
            "amount": str(amount),
            "paid_amount": str(paid_amount),
            "status": status,
        },
    )


def log_obligation_created(
    obligation_ids: list,
    payment_type: str,
    total_amount: Decimal,
    request_id: Optional[str] = None,
) -> None:
    logger.info(
        "Obligation created",
        extra={
            "request_id": request_id,
            "step": "obligation_created",
            "obligation_ids": obligation_ids,
            "payment_type": payment_type,
            "total_amount": str(total_amount),
        },
    )


def log_reschedule(
    entry_id: int,
    successor_id: int,
    new_date: str,
    request_id: Optional[str] = None,
) -> None:
    logger.info(
        "Schedule entry superseded",
        extra={
            "request_id": request_id,
            "step": "reschedule",
            "entry_id": entry_id,
            "successor_id": successor_id,
            "new_date": new_date,
        },
    )
