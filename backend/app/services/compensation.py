"""Map the form's (compensation type, amount) pair onto the rate/fee columns.

An assignment is paid either an hourly ``rate`` or a flat ``fee``. The form
shows one amount with a selector; storage keeps two nullable columns of
which at most one is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

RATE = "rate"
FEE = "fee"
COMPENSATION_TYPES = (RATE, FEE)


@dataclass(frozen=True)
class Compensation:
    rate: Optional[Decimal] = None
    fee: Optional[Decimal] = None


def parse_amount(raw: object) -> Optional[Decimal]:
    """Parse a user-entered amount, returning ``None`` when it is unusable.

    Values are kept exact; no rounding is applied here.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    if not value.is_finite():
        return None
    return value


def normalize_compensation(compensation_type: str, amount: object) -> Compensation:
    if compensation_type not in COMPENSATION_TYPES:
        raise ValueError(f"Unknown compensation type: {compensation_type!r}")
    value = parse_amount(amount)
    if value is None:
        return Compensation()
    if compensation_type == RATE:
        return Compensation(rate=value)
    return Compensation(fee=value)


def split_compensation(rate: Optional[Decimal], fee: Optional[Decimal]) -> Tuple[str, str]:
    """Inverse of :func:`normalize_compensation` for loading the form."""
    if rate is not None:
        return RATE, str(rate)
    if fee is not None:
        return FEE, str(fee)
    return RATE, ""
