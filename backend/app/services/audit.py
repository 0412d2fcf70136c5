from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog

def audit(db: Session, actor_profile_id, entity_type: str, entity_id: str, action: str, data: dict | None = None):
    row = AuditLog(
        actor_profile_id=actor_profile_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        data=data or {},
    )
    db.add(row)
