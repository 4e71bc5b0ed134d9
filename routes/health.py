from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models.user_phone import UserPhone

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


@health_bp.get("/test")
def test_connection():
    return jsonify("test connection"), 200


@health_bp.get("/test_db")
def test_db():
    try:
        rows = UserPhone.query.all()
    except SQLAlchemyError:
        return jsonify("error db"), 200
    return jsonify([r.to_dict() for r in rows]), 200
