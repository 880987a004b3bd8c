"""
Due-payment predicate: must the balance be settled before a rental can be completed?

Upstream records carry several overlapping signals of an outstanding balance and they do not always
agree. The default policy ("any") treats any single signal as authoritative, so a disagreement always
ends on the payment step. The "precedence" policy makes the authority explicit: signals are read in
the configured order and the first one that carries information decides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from rental_backoffice.settlement.records import RentalRecord
from rental_backoffice.settlement.summary import ZERO, parse_amount, payment_summary, to_amount

logger = logging.getLogger(__name__)

DUE_STATUSES = frozenset({"partial", "due", "unpaid"})
SETTLED_STATUSES = frozenset({"paid", "settled", "refunded"})

SIGNAL_NAMES = ("has_payment_due", "remaining", "payment_status", "balance")


def _explicit_flag(record: RentalRecord) -> bool | None:
    if record.has_payment_due is None:
        return None
    return record.has_payment_due is True


def _remaining(record: RentalRecord) -> bool | None:
    # Only informative when upstream sent a cached remaining; otherwise it equals "balance".
    if parse_amount(record.reste_a_payer) is None:
        return None
    return payment_summary(record).remaining > ZERO


def _payment_status(record: RentalRecord) -> bool | None:
    status = (record.payment_status or "").strip().lower()
    if status in DUE_STATUSES:
        return True
    if status in SETTLED_STATUSES:
        return False
    return None


def _balance(record: RentalRecord) -> bool:
    s = payment_summary(record)
    total = to_amount(record.total_amount)
    paid = to_amount(record.paid_amount)
    return s.remaining > ZERO or (total > ZERO and paid < total)


_SIGNALS: dict[str, Callable[[RentalRecord], bool | None]] = {
    "has_payment_due": _explicit_flag,
    "remaining": _remaining,
    "payment_status": _payment_status,
    "balance": _balance,
}


@dataclass(frozen=True)
class DuePolicy:
    strategy: str = "any"  # any | precedence
    order: tuple[str, ...] = SIGNAL_NAMES

    def __post_init__(self) -> None:
        if self.strategy not in {"any", "precedence"}:
            raise ValueError(f"Unknown due policy strategy: {self.strategy!r}")
        unknown = [name for name in self.order if name not in _SIGNALS]
        if unknown:
            raise ValueError(f"Unknown due signals: {', '.join(unknown)}")

    @classmethod
    def from_settings(cls, settings) -> DuePolicy:  # noqa: ANN001
        return cls(strategy=settings.due_policy_strategy, order=tuple(settings.due_policy_order))


@dataclass(frozen=True)
class DueDecision:
    due: bool
    decided_by: str
    signals: dict[str, bool | None] = field(default_factory=dict)


def evaluate_due(record: RentalRecord, policy: DuePolicy | None = None) -> DueDecision:
    policy = policy or DuePolicy()
    signals = {name: _SIGNALS[name](record) for name in SIGNAL_NAMES}

    if policy.strategy == "any":
        raised = [name for name in SIGNAL_NAMES if signals[name] is True]
        decision = DueDecision(due=bool(raised), decided_by=raised[0] if raised else "none", signals=signals)
    else:
        decision = None
        for name in policy.order:
            if signals[name] is not None:
                decision = DueDecision(due=bool(signals[name]), decided_by=name, signals=signals)
                break
        if decision is None:
            decision = DueDecision(due=bool(signals["balance"]), decided_by="balance", signals=signals)

    disagree = {v for v in signals.values() if v is not None}
    if len(disagree) > 1:
        logger.info(
            "due signals disagree: rental_id=%s strategy=%s decided_by=%s due=%s signals=%s",
            record.id,
            policy.strategy,
            decision.decided_by,
            decision.due,
            signals,
        )
    return decision


def has_payment_due(record: RentalRecord | None, policy: DuePolicy | None = None) -> bool:
    if record is None:
        return False
    return evaluate_due(record, policy).due
