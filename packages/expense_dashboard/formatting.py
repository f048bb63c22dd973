"""Display helpers for rupee amounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

RUPEE = "₹"


def _group_indian(digits: str) -> str:
    # Last three digits form one group, the rest are grouped in pairs.
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs: list[str] = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join([*pairs, tail])


def format_inr(amount: Decimal | int | float, decimals: int = 0) -> str:
    """Format ``amount`` as rupees with Indian digit grouping.

    >>> format_inr(Decimal("123456"))
    '₹1,23,456'
    >>> format_inr(Decimal("-1234.5"), decimals=2)
    '-₹1,234.50'
    """

    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    quantum = Decimal(1).scaleb(-decimals)
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)

    sign = "-" if value < 0 else ""
    text = f"{abs(value):f}"
    whole, _, frac = text.partition(".")
    out = f"{sign}{RUPEE}{_group_indian(whole)}"
    if decimals:
        out += f".{frac}"
    return out


__all__ = ["RUPEE", "format_inr"]
