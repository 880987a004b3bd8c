from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping

_KNOWN_FIELDS = (
    "id",
    "status",
    "total_amount",
    "paid_amount",
    "reste_a_payer",
    "payment_status",
    "has_payment_due",
    "client",
    "client_id",
)


@dataclass(frozen=True)
class RentalRecord:
    """
    Rental-like record as the completion flow sees it.

    Monetary fields are kept exactly as received (numbers, numeric strings or None); every read goes
    through settlement.summary.to_amount. Keys the flow does not know about are kept in `extra`
    so the record can be handed back to the caller unchanged.
    """

    id: int | str
    status: str | None = None
    total_amount: Any = None
    paid_amount: Any = None
    reste_a_payer: Any = None  # cached remaining, when upstream provides one
    payment_status: str | None = None
    has_payment_due: bool | None = None
    client: Mapping[str, Any] | None = None
    client_id: int | str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RentalRecord:
        if "id" not in data:
            raise ValueError("rental record requires an id")
        known = {k: data[k] for k in _KNOWN_FIELDS if k in data}
        extra = {k: v for k, v in data.items() if k not in _KNOWN_FIELDS}
        client = known.get("client")
        if client is not None and not isinstance(client, Mapping):
            client = None
        known["client"] = client
        return cls(**known, extra=extra)

    def as_dict(self) -> dict[str, Any]:
        out = dict(self.extra)
        for name in _KNOWN_FIELDS:
            out[name] = getattr(self, name)
        return out

    def resolve_client_id(self) -> int | str | None:
        """client.id first, then the flat client_id; empty values count as missing."""
        nested = self.client.get("id") if self.client else None
        for candidate in (nested, self.client_id):
            if candidate is None or isinstance(candidate, bool):
                continue
            if isinstance(candidate, str) and not candidate.strip():
                continue
            if candidate == 0:
                continue
            return candidate
        return None

    def patched(self, **changes: Any) -> RentalRecord:
        return dataclasses.replace(self, **changes)
