from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from formatting import INVALID_AMOUNT, INVALID_DATE, describe_record, format_currency, format_date
from models import ExpenseRecord


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("10.5"), "$10.50"),
        (Decimal("1234.567"), "$1,234.57"),
        (5, "$5.00"),
        ("7.25", "$7.25"),
        (Decimal("-3"), "-$3.00"),
    ],
)
def test_format_currency(amount: object, expected: str) -> None:
    assert format_currency(amount) == expected


@pytest.mark.parametrize("amount", ["abc", None, True, Decimal("NaN"), float("inf")])
def test_format_currency_invalid(amount: object) -> None:
    assert format_currency(amount) == INVALID_AMOUNT


def test_format_date() -> None:
    assert format_date(datetime(2024, 6, 1, 12, 30)) == "Jun 1, 2024"
    assert format_date("2024-12-25T08:00:00+00:00") == "Dec 25, 2024"
    assert format_date(None) is None
    assert format_date("yesterday") == INVALID_DATE


def test_describe_record() -> None:
    record = ExpenseRecord(
        id="x",
        description="coffee",
        amount=Decimal("10.5"),
        timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )
    assert describe_record(record) == "coffee: $10.50 - Jun 1, 2024"
