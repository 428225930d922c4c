import uuid, json
import logging
from sqlalchemy.orm import Session
from shuttle.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

def log_audit(db: Session, actor_user_id: str, action: str, entity_type: str, entity_id: str, details: dict | None = None):
    """Stage an audit row in the caller's transaction; it is written with the change it describes."""
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        # dates in details (generation windows, mark-booked cutoffs) are stringified
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))
    logger.info("audit %s %s=%s by %s", action, entity_type, entity_id, actor_user_id)

def list_audit(db: Session, entity_type: str = "", entity_id: str = "", action: str = "",
               limit: int = 100, offset: int = 0) -> tuple[int, list[AuditLog]]:
    q = db.query(AuditLog)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)
    if action:
        # "departure" matches departure.update, departure.assign_vehicle, ...
        q = q.filter(AuditLog.action.like(f"{action}%"))
    total = q.count()
    rows = q.order_by(AuditLog.created_at.desc()).limit(min(limit, 500)).offset(max(offset, 0)).all()
    return total, rows

def audit_to_dict(a: AuditLog) -> dict:
    return {
        "id": a.id,
        "actorUserId": a.actor_user_id,
        "action": a.action,
        "entityType": a.entity_type,
        "entityId": a.entity_id,
        "details": json.loads(a.details_json or "{}"),
        "createdAt": a.created_at.isoformat() if a.created_at else None,
    }
