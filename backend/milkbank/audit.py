from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models


def log_action(
    db: Session,
    actor: str,
    action: str,
    target_type: str | None = None,
    target_id: str | UUID | None = None,
    details: dict | None = None,
):
    """Stage an audit entry in the caller's transaction."""

    log = models.AuditLog(
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=UUID(str(target_id)) if target_id else None,
        details=details or {},
    )
    db.add(log)
    return log


def summarize_actions(db: Session, target_type: str | None = None):
    query = db.query(models.AuditLog.action, func.count(models.AuditLog.id))
    if target_type:
        query = query.filter(models.AuditLog.target_type == target_type)
    rows = query.group_by(models.AuditLog.action).all()
    return [{"action": r[0], "count": r[1]} for r in rows]
