import logging

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from models.audit_log import AuditLog
from models.manager import Manager
from security.errors import Blocked, InvalidCredentials, StoreUnavailable
from security.login_gate import login_gate_from_config, REASON_UNKNOWN_LOGIN
from utils.audit import client_ip, log_event
from utils.auth_context import token_required
from utils.timeparse import parse_iso_datetime

logger = logging.getLogger(__name__)

managers_bp = Blueprint("managers", __name__, url_prefix="/managers")

# Blocked and invalid credentials must look the same to the caller
INVALID_CREDENTIALS = "Invalid login credentials"


def _non_empty_str(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _login_ip(data) -> str:
    ip = data.get("ip_address")
    if current_app.config.get("TRUST_BODY_IP_ADDRESS", True) and _non_empty_str(ip):
        return ip.strip()[:64]
    return client_ip()[:64]


def _manager_json(manager: Manager) -> dict:
    return {
        "id": manager.id,
        "login": manager.login,
        "created_at": manager.created_at.isoformat() if manager.created_at else None,
    }


@managers_bp.post("/logins")
def create_login():
    data = request.get_json(silent=True) or {}
    login = data.get("login")
    password = data.get("password")
    device = data.get("device")

    if not (_non_empty_str(login) and _non_empty_str(password) and _non_empty_str(device)):
        return jsonify(error=INVALID_CREDENTIALS), 400

    try:
        timestamp = parse_iso_datetime(data.get("date_of_login"))
    except ValueError:
        return jsonify(error="Invalid date_of_login"), 400

    login = login.strip()
    device = device.strip()[:255]
    ip = _login_ip(data)

    gate = login_gate_from_config()
    try:
        token = gate.attempt_login(login, password, device, ip, timestamp)
    except Blocked:
        log_event("LOGIN_BLOCKED", metadata={"login": login, "device": device}, ip=ip)
        return jsonify(error=INVALID_CREDENTIALS), 400
    except InvalidCredentials as exc:
        action = "LOGIN_UNKNOWN" if exc.reason == REASON_UNKNOWN_LOGIN else "LOGIN_FAIL"
        log_event(
            action,
            manager_id=exc.manager_id,
            metadata={"login": login, "device": device, "fail_count": exc.fail_count},
            ip=ip,
        )
        if exc.blacklisted_now:
            log_event(
                "IP_BLACKLISTED",
                manager_id=exc.manager_id,
                entity="ip_blacklist",
                entity_id=ip,
                metadata={"reason": exc.reason, "fail_count": exc.fail_count},
                ip=ip,
            )
        return jsonify(error=INVALID_CREDENTIALS), 400
    except StoreUnavailable:
        return jsonify(error="Internal Server Error"), 500

    log_event("LOGIN_SUCCESS", metadata={"login": login, "device": device}, ip=ip)
    return jsonify(token=token), 201


@managers_bp.get("")
@token_required
def list_managers():
    try:
        managers = Manager.query.order_by(Manager.id).all()
    except SQLAlchemyError:
        logger.exception("Failed to list managers")
        return jsonify(error="Internal Server Error"), 500
    return jsonify([_manager_json(m) for m in managers]), 200


@managers_bp.get("/me")
@token_required
def me():
    return jsonify(_manager_json(g.manager)), 200


@managers_bp.get("/audit-logs")
@token_required
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))
    action = request.args.get("action")

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()

    return jsonify([
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat() if r.timestamp else None,
            "manager_id": r.manager_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
