from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any

from rental_backoffice.settlement.records import RentalRecord

ZERO = Decimal("0.00")


def q_money(x: Decimal) -> Decimal:
    # Cents of a large magnitude need more digits than the default 28-digit context.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, x.adjusted() + 3)
        return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse a user or upstream amount into a Decimal (cents).

    Returns None when the value is missing, boolean, unparseable or not finite. The sign is kept.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    elif isinstance(value, str):
        s = value.strip().replace(" ", "").replace(",", ".")
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    else:
        return None
    if not d.is_finite():
        return None
    return q_money(d)


def to_amount(value: Any) -> Decimal:
    """Coerce to a finite, non-negative amount; anything else counts as 0.00."""
    d = parse_amount(value)
    if d is None or d < 0:
        return ZERO
    return d


@dataclass(frozen=True)
class PaymentSummary:
    total: Decimal
    paid: Decimal
    remaining: Decimal


def payment_summary(record: RentalRecord) -> PaymentSummary:
    total = to_amount(record.total_amount)
    paid = to_amount(record.paid_amount)
    cached = parse_amount(record.reste_a_payer)
    if cached is not None:
        remaining = max(cached, ZERO)
    else:
        remaining = max(q_money(total - paid), ZERO)
    return PaymentSummary(total=total, paid=paid, remaining=remaining)


def remaining_after(total: Decimal, paid: Decimal) -> Decimal:
    return max(q_money(total - paid), ZERO)
