from decimal import Decimal

import pytest

from rental_backoffice.settlement.controller import SettlementController, SettlementStep
from rental_backoffice.settlement.errors import ErrorKind, PaymentGatewayError
from rental_backoffice.settlement.gateways import PaymentResult
from rental_backoffice.settlement.records import RentalRecord
from rental_backoffice.settlement.views import format_amount, payment_dialog_view, rating_dialog_view


class FakeGateway:
    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    def submit(self, submission):
        self.calls.append(submission)
        if self.results:
            r = self.results.pop(0)
            if isinstance(r, Exception):
                raise r
            return r
        return PaymentResult(ok=True)


class FakeFinalizer:
    def __init__(self):
        self.calls = []

    def __call__(self, record, payload):
        self.calls.append((record, payload))


def _record(**kw):
    base = dict(id=1, status="active", total_amount=1000, paid_amount=300, client={"id": 5, "name": "Sara"})
    base.update(kw)
    return RentalRecord(**base)


def _controller(gateway=None, records=None):
    return SettlementController(
        payment_gateway=gateway or FakeGateway(),
        finalizer=FakeFinalizer(),
        records=records,
    )


def test_due_rental_opens_payment_step():
    c = _controller()
    assert c.open_completion_flow(_record()) == SettlementStep.AWAITING_PAYMENT
    assert c.show_payment_dialog
    assert c.summary.remaining == Decimal("700.00")


def test_settled_rental_skips_straight_to_rating():
    c = _controller()
    record = _record(paid_amount=1000, reste_a_payer=0, payment_status="paid", has_payment_due=False)
    assert c.open_completion_flow(record) == SettlementStep.AWAITING_RATING
    assert c.show_rating_dialog and not c.show_payment_dialog


@pytest.mark.parametrize("amount", [0, -1, "0", "", "abc", None, float("nan"), "800", 700.01])
def test_invalid_amounts_never_reach_the_gateway(amount):
    gateway = FakeGateway()
    c = _controller(gateway)
    c.open_completion_flow(_record())
    assert c.submit_payment(amount) is False
    assert gateway.calls == []
    assert c.payment_error.kind == ErrorKind.VALIDATION
    assert c.step == SettlementStep.AWAITING_PAYMENT
    assert c.selected.paid_amount == 300


def test_overpayment_message():
    c = _controller()
    c.open_completion_flow(_record())
    c.submit_payment(800)
    assert c.payment_error.message == "amount exceeds remaining balance"
    assert c.payment_error.field == "amount"


def test_missing_client_is_rejected_locally():
    gateway = FakeGateway()
    c = _controller(gateway)
    c.open_completion_flow(_record(client=None, client_id=None))
    assert c.submit_payment(100) is False
    assert c.payment_error.message == "client not found"
    assert gateway.calls == []


def test_full_payment_advances_to_rating():
    gateway = FakeGateway()
    records = [_record(), _record(id=2)]
    c = _controller(gateway, records)
    c.open_completion_flow(records[0])
    assert c.submit_payment(700) is True

    sent = gateway.calls[0]
    assert (sent.rental_id, sent.client_id, sent.amount, sent.method, sent.reference) == (1, 5, Decimal("700.00"), "cash", "")
    assert c.step == SettlementStep.AWAITING_RATING
    assert not c.show_payment_dialog
    assert c.summary.remaining == Decimal("0.00")
    assert records[0].paid_amount == Decimal("1000.00")
    assert records[0].has_payment_due is False
    assert records[1].paid_amount == 300


def test_partial_payments_keep_dialog_open_until_settled():
    c = _controller()
    c.open_completion_flow(_record())
    c.set_custom_amount("400")
    assert c.submit_custom_amount() is True
    assert c.step == SettlementStep.AWAITING_PAYMENT
    assert c.summary.remaining == Decimal("300.00")
    assert c.selected.payment_status == "partial"
    assert c.custom_amount == ""

    assert c.pay_remaining() is True
    assert c.step == SettlementStep.AWAITING_RATING
    assert c.selected.payment_status == "paid"


def test_gateway_rejection_is_shown_as_banner():
    gateway = FakeGateway([PaymentResult(ok=False, field_errors={"client_id": ["The selected client does not exist."]})])
    c = _controller(gateway)
    c.open_completion_flow(_record())
    assert c.submit_payment(100) is False
    assert c.payment_error.kind == ErrorKind.GATEWAY
    assert c.payment_error.message == "The selected client does not exist."
    assert c.step == SettlementStep.AWAITING_PAYMENT
    assert c.processing is False
    assert c.selected.paid_amount == 300


def test_unreachable_gateway_becomes_banner_error():
    c = _controller(FakeGateway([PaymentGatewayError("payment service unreachable")]))
    c.open_completion_flow(_record())
    assert c.submit_payment(100) is False
    assert c.payment_error.message == "payment service unreachable"
    assert c.processing is False


def test_unexpected_gateway_exception_becomes_banner_error():
    c = _controller(FakeGateway([KeyError("boom")]))
    c.open_completion_flow(_record())
    assert c.submit_payment(100) is False
    assert c.payment_error.kind == ErrorKind.GATEWAY
    assert c.payment_error.message == "payment could not be recorded"
    assert c.step == SettlementStep.AWAITING_PAYMENT
    assert c.processing is False
    assert c.selected.paid_amount == 300


def test_huge_custom_amount_is_rejected_inline():
    gateway = FakeGateway()
    c = _controller(gateway)
    c.open_completion_flow(_record())
    c.set_custom_amount("1e30")
    assert c.submit_custom_amount() is False
    assert c.payment_error.message == "amount exceeds remaining balance"
    assert gateway.calls == []


def test_huge_upstream_total_still_opens_payment_step():
    c = _controller()
    assert c.open_completion_flow(_record(total_amount="1e40", paid_amount=0)) == SettlementStep.AWAITING_PAYMENT
    assert c.summary.remaining == Decimal("1e40")


def test_unanswered_submission_does_not_block_another_rental():
    gateway = FakeGateway()
    c = _controller(gateway)
    c.open_completion_flow(_record(id=1))
    c.begin_payment(100)
    c.close_payment_dialog()

    c.open_completion_flow(_record(id=2))
    assert c.processing is False
    assert c.submit_payment(100) is True
    assert [s.rental_id for s in gateway.calls] == [2]


def test_dropped_submission_does_not_block_reopened_dialog():
    gateway = FakeGateway()
    c = _controller(gateway)
    c.open_completion_flow(_record())
    c.begin_payment(100)
    c.open_completion_flow(_record())
    assert c.submit_payment(100) is True
    assert len(gateway.calls) == 1


def test_late_answer_does_not_clear_the_current_submission():
    c = _controller()
    c.open_completion_flow(_record(id=1))
    stale = c.begin_payment(100)
    c.close_payment_dialog()
    c.open_completion_flow(_record(id=2))
    current = c.begin_payment(50)

    c.complete_payment(stale, PaymentResult(ok=True))
    assert c.processing is True
    assert c.begin_payment(50) is None

    c.complete_payment(current, PaymentResult(ok=True))
    assert c.processing is False


def test_second_submission_ignored_while_processing():
    c = _controller()
    c.open_completion_flow(_record())
    pending = c.begin_payment(100)
    assert pending is not None
    assert c.begin_payment(100) is None
    c.complete_payment(pending, PaymentResult(ok=True))
    assert c.summary.remaining == Decimal("600.00")


def test_late_success_patches_the_rental_it_was_sent_for():
    records = [_record(id=1), _record(id=2, paid_amount=0)]
    c = _controller(records=records)
    c.open_completion_flow(records[0])
    pending = c.begin_payment(200)

    c.close_payment_dialog()
    c.open_completion_flow(records[1])
    c.complete_payment(pending, PaymentResult(ok=True))

    assert records[0].paid_amount == Decimal("500.00")
    assert c.selected.id == 2
    assert c.selected.paid_amount == 0
    assert c.step == SettlementStep.AWAITING_PAYMENT


def test_late_failure_does_not_touch_another_selection():
    c = _controller()
    c.open_completion_flow(_record(id=1))
    pending = c.begin_payment(200)
    c.close_payment_dialog()
    c.open_completion_flow(_record(id=2))
    c.complete_payment(pending, PaymentResult(ok=False, message="nope"))
    assert c.payment_error is None


def test_close_payment_dialog_returns_to_idle_without_finalizing():
    c = _controller()
    c.open_completion_flow(_record())
    c.mark_unpaid()
    assert c.step == SettlementStep.IDLE
    assert c.selected is None
    assert c.finalize() is None
    assert c.finalizer.calls == []


def test_finalize_blocked_while_balance_is_due():
    c = _controller()
    c.open_completion_flow(_record())
    c.collect_rating(5)
    assert c.finalize() is None
    assert c.rating == 0
    assert c.finalizer.calls == []


def test_finalize_without_rating_or_note_sends_nulls():
    c = _controller()
    c.open_completion_flow(_record(paid_amount=1000))
    payload = c.finalize()
    assert payload.as_dict() == {"client_rating": None, "client_note": None}
    assert c.step == SettlementStep.IDLE
    assert c.selected is None


def test_finalize_with_rating_and_trimmed_note():
    c = _controller()
    record = _record(paid_amount=1000)
    c.open_completion_flow(record)
    c.collect_rating(4)
    c.collect_note("  bon client  ")
    payload = c.finalize()
    assert payload.as_dict() == {"client_rating": 4, "client_note": "bon client"}
    assert c.finalizer.calls == [(record, payload)]


def test_blank_note_is_sent_as_null():
    c = _controller()
    c.open_completion_flow(_record(paid_amount=1000))
    c.collect_note("    ")
    assert c.finalize().client_note is None


@pytest.mark.parametrize("value", [-1, 6, 2.5, True, "3"])
def test_rating_outside_range_is_rejected(value):
    c = _controller()
    c.open_completion_flow(_record(paid_amount=1000))
    c.collect_rating(3)
    c.collect_rating(value)
    assert c.rating == 3
    assert c.rating_error is not None


def test_finalizer_errors_reach_the_caller():
    def broken(record, payload):
        raise RuntimeError("status update failed")

    c = SettlementController(payment_gateway=FakeGateway(), finalizer=broken)
    c.open_completion_flow(_record(paid_amount=1000))
    with pytest.raises(RuntimeError):
        c.finalize()


def test_listeners_see_transitions_and_can_unsubscribe():
    c = _controller()
    seen = []
    unsubscribe = c.subscribe(lambda e: seen.append((e.name, e.step)))
    c.open_completion_flow(_record())
    c.submit_payment(700)
    unsubscribe()
    c.finalize()
    assert seen == [
        ("opened", SettlementStep.AWAITING_PAYMENT),
        ("payment_submitted", SettlementStep.AWAITING_PAYMENT),
        ("payment_recorded", SettlementStep.AWAITING_RATING),
    ]


def test_two_controllers_do_not_share_state():
    a, b = _controller(), _controller()
    a.open_completion_flow(_record(id=1))
    assert b.selected is None
    assert b.step == SettlementStep.IDLE


def test_payment_dialog_view_splits_inline_and_banner_errors():
    c = _controller(FakeGateway([PaymentResult(ok=False, message="server says no")]))
    c.open_completion_flow(_record())
    c.submit_payment(5000)
    view = payment_dialog_view(c, is_admin=True)
    assert view.visible
    assert view.remaining == "700.00 MAD"
    assert view.inline_error == "amount exceeds remaining balance"
    assert view.banner_error is None
    assert view.can_mark_unpaid

    c.submit_payment(100)
    view = payment_dialog_view(c)
    assert view.inline_error is None
    assert view.banner_error == "server says no"
    assert not view.can_mark_unpaid


def test_rating_dialog_view():
    c = _controller()
    c.open_completion_flow(_record(paid_amount=1000))
    c.collect_rating(4)
    view = rating_dialog_view(c, is_updating=True)
    assert view.visible and view.rating == 4
    assert not view.can_finalize
    assert view.finalize_label == "Finalizing…"


def test_format_amount():
    assert format_amount("1234.5") == "1 234.50 MAD"
    assert format_amount(None, "EUR") == "0.00 EUR"
