from rental_backoffice.settlement.controller import PendingPayment, SettlementController, SettlementEvent, SettlementStep
from rental_backoffice.settlement.due import DueDecision, DuePolicy, evaluate_due, has_payment_due
from rental_backoffice.settlement.errors import ErrorKind, PaymentGatewayError, SettlementError
from rental_backoffice.settlement.gateways import (
    FinalizationPayload,
    HttpFinalizer,
    HttpPaymentGateway,
    PaymentResult,
    PaymentSubmission,
    ServiceFinalizer,
    ServicePaymentGateway,
    first_error_message,
)
from rental_backoffice.settlement.records import RentalRecord
from rental_backoffice.settlement.summary import PaymentSummary, payment_summary, to_amount

__all__ = [
    "DueDecision",
    "DuePolicy",
    "ErrorKind",
    "FinalizationPayload",
    "HttpFinalizer",
    "HttpPaymentGateway",
    "PaymentGatewayError",
    "PaymentResult",
    "PaymentSubmission",
    "PaymentSummary",
    "PendingPayment",
    "RentalRecord",
    "ServiceFinalizer",
    "ServicePaymentGateway",
    "SettlementController",
    "SettlementError",
    "SettlementEvent",
    "SettlementStep",
    "evaluate_due",
    "first_error_message",
    "has_payment_due",
    "payment_summary",
    "to_amount",
]
