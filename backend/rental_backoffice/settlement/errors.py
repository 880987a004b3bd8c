from __future__ import annotations

import enum
from dataclasses import dataclass


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"  # local, shown inline next to the amount field
    GATEWAY = "gateway"  # remote, shown as a dialog banner


@dataclass(frozen=True)
class SettlementError:
    kind: ErrorKind
    message: str
    field: str | None = None


AMOUNT_NOT_POSITIVE = "amount must be positive"
AMOUNT_EXCEEDS_REMAINING = "amount exceeds remaining balance"
CLIENT_NOT_FOUND = "client not found"
RATING_OUT_OF_RANGE = "rating must be between 0 and 5"
PAYMENT_FAILED = "payment could not be recorded"


def validation_error(message: str, field: str | None = None) -> SettlementError:
    return SettlementError(kind=ErrorKind.VALIDATION, message=message, field=field)


def gateway_error(message: str) -> SettlementError:
    return SettlementError(kind=ErrorKind.GATEWAY, message=message)


class PaymentGatewayError(RuntimeError):
    """The payment submission could not be delivered (network, timeout, unreadable response)."""
