"""
Rental completion flow: settle the balance, rate the client, then finalize.

One controller instance owns one flow (selection, dialog visibility, in-flight flag). Nothing is
module-level, so two flows running side by side cannot see each other's state.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, MutableSequence

from rental_backoffice.settlement import errors as err
from rental_backoffice.settlement.due import DuePolicy, evaluate_due
from rental_backoffice.settlement.gateways import (
    FinalizationGateway,
    FinalizationPayload,
    PaymentGateway,
    PaymentResult,
    PaymentSubmission,
    first_error_message,
)
from rental_backoffice.settlement.records import RentalRecord
from rental_backoffice.settlement.summary import (
    ZERO,
    PaymentSummary,
    parse_amount,
    payment_summary,
    q_money,
    remaining_after,
)

logger = logging.getLogger(__name__)


class SettlementStep(str, enum.Enum):
    IDLE = "idle"
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_RATING = "awaiting_rating"


@dataclass(frozen=True)
class PendingPayment:
    """A submission that passed local validation; the reducer is keyed by the rental id captured here."""

    rental_id: int | str
    submission: PaymentSubmission


@dataclass(frozen=True)
class SettlementEvent:
    name: str
    step: SettlementStep
    rental_id: int | str | None
    detail: dict[str, Any]


Listener = Callable[[SettlementEvent], None]


class SettlementController:
    def __init__(
        self,
        *,
        payment_gateway: PaymentGateway,
        finalizer: FinalizationGateway,
        records: MutableSequence[RentalRecord] | None = None,
        due_policy: DuePolicy | None = None,
    ) -> None:
        self.payment_gateway = payment_gateway
        self.finalizer = finalizer
        # Caller-owned list; entries are replaced in place when a payment lands.
        self.records: MutableSequence[RentalRecord] = records if records is not None else []
        self.due_policy = due_policy or DuePolicy()

        self.step = SettlementStep.IDLE
        self.selected: RentalRecord | None = None
        self.processing = False
        self.custom_amount = ""
        self.payment_error: err.SettlementError | None = None
        self.rating_error: err.SettlementError | None = None
        self.rating = 0
        self.note = ""
        # Submission sent from the dialog that is currently open; None once answered or the dialog is gone.
        self._in_flight: PendingPayment | None = None
        self._listeners: list[Listener] = []

    # -- observation -----------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, name: str, **detail: Any) -> None:
        rental_id = self.selected.id if self.selected is not None else detail.get("rental_id")
        event = SettlementEvent(name=name, step=self.step, rental_id=rental_id, detail=detail)
        logger.debug("settlement %s: rental_id=%s step=%s detail=%s", name, rental_id, self.step.value, detail)
        for listener in list(self._listeners):
            listener(event)

    @property
    def show_payment_dialog(self) -> bool:
        return self.step == SettlementStep.AWAITING_PAYMENT

    @property
    def show_rating_dialog(self) -> bool:
        return self.step == SettlementStep.AWAITING_RATING

    @property
    def summary(self) -> PaymentSummary | None:
        return payment_summary(self.selected) if self.selected is not None else None

    # -- opening / closing -----------------------------------------------------------------------

    def open_completion_flow(self, record: RentalRecord) -> SettlementStep:
        self.selected = record
        self.processing = False
        self._in_flight = None
        self.payment_error = None
        self.rating_error = None
        self.custom_amount = ""
        self.rating = 0
        self.note = ""

        decision = evaluate_due(record, self.due_policy)
        if decision.due:
            self.step = SettlementStep.AWAITING_PAYMENT
        else:
            self.step = SettlementStep.AWAITING_RATING
        self._emit("opened", due=decision.due, decided_by=decision.decided_by)
        return self.step

    def _reset(self) -> None:
        self.step = SettlementStep.IDLE
        self.selected = None
        self.processing = False
        self._in_flight = None
        self.custom_amount = ""
        self.payment_error = None
        self.rating_error = None
        self.rating = 0
        self.note = ""

    def close_payment_dialog(self) -> None:
        """Leave without finalizing; the rental stays unsettled."""
        if self.step != SettlementStep.AWAITING_PAYMENT:
            return
        rental_id = self.selected.id if self.selected is not None else None
        self._reset()
        self._emit("payment_dialog_closed", rental_id=rental_id)

    def mark_unpaid(self) -> None:
        self.close_payment_dialog()

    def close_rating_dialog(self) -> None:
        if self.step != SettlementStep.AWAITING_RATING:
            return
        rental_id = self.selected.id if self.selected is not None else None
        self._reset()
        self._emit("rating_dialog_closed", rental_id=rental_id)

    # -- payment ---------------------------------------------------------------------------------

    def set_custom_amount(self, text: str) -> None:
        self.custom_amount = text or ""

    def _reject(self, message: str, field: str | None = None) -> None:
        self.payment_error = err.validation_error(message, field)
        self._emit("payment_rejected", message=message)

    def begin_payment(self, amount: Any) -> PendingPayment | None:
        """Validate locally and mark the flow as processing. None means nothing must be sent."""
        if self.step != SettlementStep.AWAITING_PAYMENT or self.selected is None:
            return None
        if self._in_flight is not None and self._in_flight.rental_id == self.selected.id:
            logger.debug("payment ignored while another submission is in flight: rental_id=%s", self.selected.id)
            return None

        remaining = payment_summary(self.selected).remaining
        value = parse_amount(amount)
        if value is None or value <= ZERO:
            self._reject(err.AMOUNT_NOT_POSITIVE, "amount")
            return None
        if value > remaining:
            self._reject(err.AMOUNT_EXCEEDS_REMAINING, "amount")
            return None

        client_id = self.selected.resolve_client_id()
        if client_id is None:
            self._reject(err.CLIENT_NOT_FOUND, "client_id")
            return None

        self.processing = True
        self.payment_error = None
        submission = PaymentSubmission(rental_id=self.selected.id, client_id=client_id, amount=value)
        self._in_flight = PendingPayment(rental_id=self.selected.id, submission=submission)
        self._emit("payment_submitted", amount=str(value))
        return self._in_flight

    def _apply_payment(self, record: RentalRecord, amount: Decimal) -> RentalRecord:
        s = payment_summary(record)
        paid = q_money(s.paid + amount)
        remaining = remaining_after(s.total, paid)
        return record.patched(
            paid_amount=paid,
            reste_a_payer=remaining,
            has_payment_due=remaining > ZERO,
            payment_status="paid" if remaining == ZERO else "partial",
        )

    def complete_payment(self, pending: PendingPayment, result: PaymentResult) -> None:
        if self._in_flight is pending:
            self._in_flight = None
            self.processing = False
        same_selection = self.selected is not None and self.selected.id == pending.rental_id

        if not result.ok:
            message = first_error_message(result)
            if same_selection and self.step == SettlementStep.AWAITING_PAYMENT:
                self.payment_error = err.gateway_error(message)
            logger.warning("payment failed: rental_id=%s message=%s", pending.rental_id, message)
            self._emit("payment_failed", rental_id=pending.rental_id, message=message)
            return

        amount = pending.submission.amount
        patched: RentalRecord | None = None
        for idx, entry in enumerate(self.records):
            if entry.id == pending.rental_id:
                patched = self._apply_payment(entry, amount)
                self.records[idx] = patched

        if same_selection:
            patched = self._apply_payment(self.selected, amount)
            self.selected = patched

        if patched is None:
            logger.info("payment recorded for a rental no longer listed: rental_id=%s", pending.rental_id)
            return

        remaining = payment_summary(patched).remaining
        if same_selection and self.step == SettlementStep.AWAITING_PAYMENT:
            if remaining == ZERO:
                self.step = SettlementStep.AWAITING_RATING
                self.custom_amount = ""
                self.rating = 0
                self.note = ""
            else:
                self.custom_amount = ""
        self._emit("payment_recorded", rental_id=pending.rental_id, amount=str(amount), remaining=str(remaining))

    def submit_payment(self, amount: Any) -> bool:
        """Validate, send and apply one payment. Returns True when the gateway accepted it."""
        pending = self.begin_payment(amount)
        if pending is None:
            return False
        try:
            result = self.payment_gateway.submit(pending.submission)
        except err.PaymentGatewayError as e:
            result = PaymentResult(ok=False, message=str(e))
        except Exception:
            logger.exception("payment gateway crashed: rental_id=%s", pending.rental_id)
            result = PaymentResult(ok=False, message=err.PAYMENT_FAILED)
        self.complete_payment(pending, result)
        return result.ok

    def pay_remaining(self) -> bool:
        s = self.summary
        if s is None:
            return False
        return self.submit_payment(s.remaining)

    def submit_custom_amount(self) -> bool:
        return self.submit_payment(self.custom_amount)

    # -- rating & finalization -------------------------------------------------------------------

    def collect_rating(self, value: int) -> None:
        if self.step != SettlementStep.AWAITING_RATING:
            return
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 5:
            self.rating_error = err.validation_error(err.RATING_OUT_OF_RANGE, "client_rating")
            return
        self.rating_error = None
        self.rating = value

    def collect_note(self, text: str) -> None:
        if self.step != SettlementStep.AWAITING_RATING:
            return
        self.note = text or ""

    def build_payload(self) -> FinalizationPayload:
        note = self.note.strip()
        return FinalizationPayload(
            client_rating=self.rating if self.rating > 0 else None,
            client_note=note or None,
        )

    def finalize(self) -> FinalizationPayload | None:
        """Hand the record and payload to the finalizer. Blocked (None) unless the rating step is open."""
        if self.step != SettlementStep.AWAITING_RATING or self.selected is None:
            logger.debug("finalize blocked: step=%s", self.step.value)
            return None
        record = self.selected
        payload = self.build_payload()
        self._reset()
        self._emit("finalized", rental_id=record.id, **payload.as_dict())
        self.finalizer(record, payload)
        return payload
