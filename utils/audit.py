import json
from flask import request
from models import db
from models.audit_log import AuditLog


def client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"


def log_event(action: str, manager_id=None, entity=None, entity_id=None, metadata=None, ip=None):
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        manager_id=manager_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip or client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
