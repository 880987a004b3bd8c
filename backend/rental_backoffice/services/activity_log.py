"""Activity logging for operational visibility."""

from __future__ import annotations

from sqlalchemy.orm import Session

from rental_backoffice.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def list_activity(db: Session, *, entity_type: str | None = None, entity_id: int | None = None, limit: int = 100) -> list[ActivityLog]:
    q = db.query(ActivityLog)
    if entity_type is not None:
        q = q.filter(ActivityLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(ActivityLog.entity_id == entity_id)
    return q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
