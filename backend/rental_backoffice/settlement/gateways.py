"""
External collaborators of the completion flow.

The controller only needs two capabilities: submit one payment, and persist the terminal status with
the optional rating/note. Both come in an HTTP flavour (talking to this service's own API) and an
in-process flavour (calling the services layer with a DB session).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Protocol

import httpx
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from rental_backoffice.settlement.errors import PAYMENT_FAILED, PaymentGatewayError
from rental_backoffice.settlement.records import RentalRecord

logger = logging.getLogger(__name__)

# Failures where the request never reached the server, so re-sending cannot double-post.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

ERROR_FIELDS = ("amount", "client_id", "rental_id")


@dataclass(frozen=True)
class PaymentSubmission:
    rental_id: int | str
    client_id: int | str
    amount: Decimal
    method: str = "cash"
    reference: str = ""

    def as_payload(self) -> dict[str, Any]:
        return {
            "rental_id": self.rental_id,
            "client_id": self.client_id,
            "amount": float(self.amount),
            "method": self.method,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class PaymentResult:
    ok: bool
    message: str | None = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FinalizationPayload:
    client_rating: int | None
    client_note: str | None

    def as_dict(self) -> dict[str, Any]:
        return {"client_rating": self.client_rating, "client_note": self.client_note}


class PaymentGateway(Protocol):
    def submit(self, submission: PaymentSubmission) -> PaymentResult: ...


class FinalizationGateway(Protocol):
    def __call__(self, record: RentalRecord, payload: FinalizationPayload) -> None: ...


def first_error_message(result: PaymentResult) -> str:
    """Server message first, then the first amount / client_id / rental_id error, then a generic text."""
    if result.message:
        return result.message
    for name in ERROR_FIELDS:
        messages = result.field_errors.get(name) or []
        if messages:
            return str(messages[0])
    return PAYMENT_FAILED


def parse_error_body(body: Any) -> tuple[str | None, dict[str, list[str]]]:
    """
    Read a failure body into (message, field_errors).

    Understands {"message": ..., "errors": {field: [..]}} and FastAPI's {"detail": ...} (string or
    list of {"loc": [...], "msg": ...}).
    """
    if not isinstance(body, dict):
        return None, {}
    message = body.get("message") if isinstance(body.get("message"), str) else None
    errors: dict[str, list[str]] = {}

    raw_errors = body.get("errors")
    if isinstance(raw_errors, dict):
        for key, value in raw_errors.items():
            if isinstance(value, (list, tuple)):
                errors[str(key)] = [str(v) for v in value]
            elif value is not None:
                errors[str(key)] = [str(value)]

    detail = body.get("detail")
    if isinstance(detail, str) and message is None:
        message = detail
    elif isinstance(detail, list):
        for item in detail:
            if not isinstance(item, dict):
                continue
            loc = [str(p) for p in item.get("loc") or [] if p != "body"]
            key = loc[-1] if loc else "__root__"
            errors.setdefault(key, []).append(str(item.get("msg") or "invalid value"))
    return message, errors


class HttpPaymentGateway:
    """POST /payments over httpx, with a bounded retry on connection failures only."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 15.0,
        retry_attempts: int = 3,
        max_wait: float = 4.0,
        client: httpx.Client | None = None,
        wait=None,  # noqa: ANN001
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.client = client
        self.wait = wait if wait is not None else wait_exponential(multiplier=0.5, min=0.5, max=max_wait)

    @classmethod
    def from_settings(cls, settings, **kwargs) -> HttpPaymentGateway:  # noqa: ANN001
        return cls(
            base_url=settings.payments_base_url,
            timeout=settings.http_timeout_seconds,
            retry_attempts=settings.payment_retry_attempts,
            max_wait=settings.payment_retry_max_wait_seconds,
            **kwargs,
        )

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self.client is not None:
            return self.client.post(f"{self.base_url}/payments", json=payload, headers=headers)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(f"{self.base_url}/payments", json=payload, headers=headers)

    def _post_with_retry(self, payload: dict[str, Any]) -> httpx.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "payment submission retry: rental_id=%s attempt=%d",
                        payload.get("rental_id"),
                        attempt.retry_state.attempt_number,
                    )
                return self._post(payload)
        raise PaymentGatewayError("payment submission was not attempted")

    def submit(self, submission: PaymentSubmission) -> PaymentResult:
        payload = submission.as_payload()
        try:
            response = self._post_with_retry(payload)
        except RetryError as e:
            raise PaymentGatewayError(f"payment service unreachable: {e.last_attempt.exception()}") from e
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"payment request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            return PaymentResult(ok=True, data=body if isinstance(body, dict) else {})

        message, errors = parse_error_body(body)
        logger.warning(
            "payment rejected: rental_id=%s status=%d message=%s fields=%s",
            submission.rental_id,
            response.status_code,
            message,
            sorted(errors),
        )
        return PaymentResult(ok=False, message=message, field_errors=errors)


class ServicePaymentGateway:
    """In-process adapter: records the payment through the payments service."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self.session_factory = session_factory

    def submit(self, submission: PaymentSubmission) -> PaymentResult:
        from pydantic import ValidationError

        from rental_backoffice.schemas.payment import PaymentCreate
        from rental_backoffice.services import payments as payment_service

        try:
            payload = PaymentCreate(**submission.as_payload())
        except ValidationError as e:
            errors: dict[str, list[str]] = {}
            for item in e.errors():
                key = str(item["loc"][-1]) if item.get("loc") else "__root__"
                errors.setdefault(key, []).append(item["msg"])
            return PaymentResult(ok=False, field_errors=errors)

        db = self.session_factory()
        try:
            outcome = payment_service.record_payment(db, payload=payload)
        except payment_service.PaymentRejected as e:
            return PaymentResult(ok=False, message=e.message, field_errors=e.errors)
        finally:
            db.close()
        return PaymentResult(ok=True, data=outcome.as_dict())


class HttpFinalizer:
    """PATCH /rentals/{id}/status with status=completed. HTTP errors propagate to the caller."""

    def __init__(self, *, base_url: str, timeout: float = 15.0, client: httpx.Client | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client

    def __call__(self, record: RentalRecord, payload: FinalizationPayload) -> None:
        body = {"status": "completed", **payload.as_dict()}
        url = f"{self.base_url}/rentals/{record.id}/status"
        if self.client is not None:
            response = self.client.patch(url, json=body)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.patch(url, json=body)
        response.raise_for_status()


class ServiceFinalizer:
    """In-process finalizer backed by the rentals service."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self.session_factory = session_factory

    def __call__(self, record: RentalRecord, payload: FinalizationPayload) -> None:
        from rental_backoffice.models.enums import RentalStatus
        from rental_backoffice.schemas.rental import RentalStatusUpdate
        from rental_backoffice.services import rentals as rental_service

        update = RentalStatusUpdate(status=RentalStatus.COMPLETED, **payload.as_dict())
        db = self.session_factory()
        try:
            rental_service.update_status(db, rental_id=int(record.id), payload=update)
        finally:
            db.close()
