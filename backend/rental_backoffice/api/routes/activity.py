"""Activity log API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rental_backoffice.db.session import get_db
from rental_backoffice.services.activity_log import list_activity

router = APIRouter()

ACTION_LABELS = {
    "payment_add": "Payment recorded",
    "rental_status": "Rental status changed",
}


@router.get("/latest")
def get_activity_latest(
    limit: int = Query(default=10, ge=1, le=50),
    entity_type: str | None = None,
    entity_id: int | None = None,
    db: Session = Depends(get_db),
):
    items = list_activity(db, entity_type=entity_type, entity_id=entity_id, limit=limit)
    return [
        {
            "id": a.id,
            "created_at": a.created_at.isoformat() if a.created_at else None,
            "action": a.action,
            "action_label": ACTION_LABELS.get(a.action, a.action),
            "entity_type": a.entity_type,
            "entity_id": a.entity_id,
            "details": a.details,
        }
        for a in items
    ]
