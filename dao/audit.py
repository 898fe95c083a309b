# dao/audit.py
from typing import Optional
from flask import has_request_context, request
from configs import db
from db.models.audit import AuditLog
from utils.helpers import paginate


def log_action(
    user_id: Optional[int],
    action: str,
    entity: str,
    entity_id: Optional[int] = None,
    details: Optional[dict] = None,
) -> AuditLog:
    """Add an audit row to the current transaction (the caller commits)."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details or {},
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    return entry


def list_logs(page=1, limit=20, entity: str | None = None, user_id: int | None = None):
    q = AuditLog.query
    if entity:
        q = q.filter(AuditLog.entity == entity.upper())
    if user_id:
        q = q.filter(AuditLog.user_id == int(user_id))
    return paginate(q.order_by(AuditLog.id.desc()), page, limit)
