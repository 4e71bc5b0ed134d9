from functools import wraps
from flask import g, jsonify, request
from models import db
from models.manager import Manager
from security.tokens import token_issuer_from_config


def _token_from_header():
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, value = header.strip().partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    # bare token, as the frontend sends it
    return header.strip()


def load_current_manager():
    g.manager = None
    g.manager_id = None

    token = _token_from_header()
    if not token:
        return
    manager_id = token_issuer_from_config().verify(token)
    if manager_id is None:
        return
    g.manager_id = manager_id
    g.manager = db.session.get(Manager, manager_id)


def token_required(fn):
    """401 when no credential is sent, 403 when it does not verify."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if _token_from_header() is None:
            return jsonify(error="Authentication required"), 401
        if getattr(g, "manager", None) is None:
            return jsonify(error="Forbidden"), 403
        return fn(*args, **kwargs)
    return wrapper
