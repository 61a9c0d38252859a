"""Display helpers for amounts and dates."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from models import ExpenseRecord

logger = logging.getLogger(__name__)

INVALID_AMOUNT = "$ ??.??"
INVALID_DATE = "--"


def format_currency(amount: object) -> str:
    """Format ``amount`` as US dollars, e.g. ``$1,234.50``."""
    if isinstance(amount, bool):
        return INVALID_AMOUNT
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        logger.debug("cannot format amount %r", amount)
        return INVALID_AMOUNT
    if not value.is_finite():
        return INVALID_AMOUNT
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(value: object) -> Optional[str]:
    """Format a datetime (or ISO string) as ``Jun 1, 2024``."""
    if value is None or value == "":
        return None
    try:
        moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("cannot format date %r", value)
        return INVALID_DATE
    return f"{moment:%b} {moment.day}, {moment.year}"


def describe_record(record: ExpenseRecord) -> str:
    text = f"{record.description}: {format_currency(record.amount)}"
    date = format_date(record.timestamp)
    if date:
        text = f"{text} - {date}"
    return text
