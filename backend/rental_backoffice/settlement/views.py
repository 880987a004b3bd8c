from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from rental_backoffice.core.config import settings
from rental_backoffice.settlement.controller import SettlementController
from rental_backoffice.settlement.errors import ErrorKind
from rental_backoffice.settlement.summary import to_amount


def format_amount(value: Decimal | float | str | None, currency: str | None = None) -> str:
    """1234.5 -> '1 234.50 MAD'"""
    currency = settings.currency_code if currency is None else currency
    amount = to_amount(value)
    text = f"{amount:,.2f}".replace(",", " ")
    return f"{text} {currency}".strip()


@dataclass(frozen=True)
class PaymentDialogView:
    visible: bool
    total: str
    paid: str
    remaining: str
    custom_amount: str
    processing: bool
    pay_remaining_label: str
    inline_error: str | None
    banner_error: str | None
    can_mark_unpaid: bool


@dataclass(frozen=True)
class RatingDialogView:
    visible: bool
    rating: int
    note: str
    error: str | None
    can_finalize: bool
    finalize_label: str


def payment_dialog_view(
    controller: SettlementController, *, currency: str | None = None, is_admin: bool = False
) -> PaymentDialogView:
    summary = controller.summary
    visible = controller.show_payment_dialog and summary is not None
    error = controller.payment_error
    return PaymentDialogView(
        visible=visible,
        total=format_amount(summary.total if summary else None, currency),
        paid=format_amount(summary.paid if summary else None, currency),
        remaining=format_amount(summary.remaining if summary else None, currency),
        custom_amount=controller.custom_amount,
        processing=controller.processing,
        pay_remaining_label="Processing…" if controller.processing else "Pay remaining",
        inline_error=error.message if error and error.kind == ErrorKind.VALIDATION else None,
        banner_error=error.message if error and error.kind == ErrorKind.GATEWAY else None,
        can_mark_unpaid=is_admin and not controller.processing,
    )


def rating_dialog_view(controller: SettlementController, *, is_updating: bool = False) -> RatingDialogView:
    return RatingDialogView(
        visible=controller.show_rating_dialog,
        rating=controller.rating,
        note=controller.note,
        error=controller.rating_error.message if controller.rating_error else None,
        can_finalize=controller.show_rating_dialog and not is_updating,
        finalize_label="Finalizing…" if is_updating else "Finalize rental",
    )
