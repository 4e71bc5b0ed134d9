import logging

from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.user_phone import UserPhone
from utils.audit import log_event
from utils.auth_context import token_required
from utils.timeparse import parse_iso_datetime

logger = logging.getLogger(__name__)

user_phones_bp = Blueprint("user_phones", __name__, url_prefix="/user_phones")

_FIELDS = ("name", "phone", "date_of_send", "information_about_user")


def _clean(data: dict) -> dict:
    """Validates the writable fields; raises ValueError with a client message."""
    phone = data.get("phone")
    if not isinstance(phone, str) or not phone.strip() or len(phone.strip()) > 30:
        raise ValueError("Invalid phone")

    name = data.get("name")
    if name is not None and (not isinstance(name, str) or len(name.strip()) > 120):
        raise ValueError("Invalid name")

    try:
        date_of_send = parse_iso_datetime(data.get("date_of_send"))
    except ValueError:
        raise ValueError("Invalid date_of_send")

    info = data.get("information_about_user")
    if info is not None and not isinstance(info, str):
        raise ValueError("Invalid information_about_user")

    return {
        "name": name.strip() if name else None,
        "phone": phone.strip(),
        "date_of_send": date_of_send,
        "information_about_user": info,
    }


@user_phones_bp.get("")
@token_required
def list_user_phones():
    try:
        rows = UserPhone.query.order_by(UserPhone.id).all()
    except SQLAlchemyError:
        logger.exception("Failed to list user phones")
        return jsonify(error="Internal Server Error"), 500
    return jsonify([r.to_dict() for r in rows]), 200


# Public: the contact form posts here without a session
@user_phones_bp.post("")
def create_user_phone():
    data = request.get_json(silent=True) or {}
    try:
        fields = _clean(data)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    try:
        if UserPhone.query.filter_by(phone=fields["phone"]).first():
            return jsonify(error="Phone number already exists"), 400

        row = UserPhone(**fields)
        db.session.add(row)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Phone number already exists"), 400
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to create user phone")
        return jsonify(error="Internal Server Error"), 500

    log_event("USER_PHONE_CREATE", entity="user_phone", entity_id=row.id)
    return jsonify(message="User phone created successfully", id=row.id), 201


@user_phones_bp.put("")
@token_required
def update_user_phones():
    updates = request.get_json(silent=True)
    if not isinstance(updates, list):
        return jsonify(error="Expected a list of user phones"), 400

    try:
        changed = []
        for update in updates:
            phone_id = update.get("id") if isinstance(update, dict) else None
            if not isinstance(phone_id, int) or isinstance(phone_id, bool):
                return jsonify(error="Each update needs an integer id"), 400
            try:
                fields = _clean(update)
            except ValueError as exc:
                return jsonify(error=str(exc), id=phone_id), 400

            row = db.session.get(UserPhone, phone_id)
            if row is None:
                continue
            for name in _FIELDS:
                setattr(row, name, fields[name])
            changed.append(row.id)

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Phone number already exists"), 400
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to update user phones")
        return jsonify(error="Internal Server Error"), 500

    log_event("USER_PHONE_UPDATE", manager_id=g.manager_id, entity="user_phone", metadata={"ids": changed})
    return jsonify(message="User phones updated successfully", updated=changed), 200


@user_phones_bp.delete("/<int:phone_id>")
@token_required
def delete_user_phone(phone_id: int):
    try:
        row = db.session.get(UserPhone, phone_id)
        if row is not None:
            db.session.delete(row)
            db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to delete user phone %s", phone_id)
        return jsonify(error="Internal Server Error"), 500

    log_event("USER_PHONE_DELETE", manager_id=g.manager_id, entity="user_phone", entity_id=phone_id)
    return "", 204
