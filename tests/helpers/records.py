"""Builders for in-memory expense records used across tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from expense_dashboard.models import ExpenseRecord


def rec(
    day: str,
    amount: str | int,
    level1: str = "",
    level2: str = "",
    level3: str = "",
    *,
    description: str = "",
    year: int | None = None,
    idx: int = 0,
) -> ExpenseRecord:
    """Build a record from a ``DD/MM/YY`` date string and a few fields."""

    dd, mm, yy = (int(p) for p in day.split("/"))
    d = date(2000 + yy, mm, dd)
    return ExpenseRecord(
        id=f"{d.isoformat()}-{idx}",
        date=d,
        year=d.year if year is None else year,
        week=0,
        description=description,
        amount=Decimal(str(amount)),
        level1=level1,
        level2=level2,
        level3=level3,
        transaction_type="",
        payment_mode="",
    )
