from datetime import datetime
from models.db import db

class LoginAttempt(db.Model):
    __tablename__ = "login_attempts"

    id = db.Column(db.Integer, primary_key=True)

    # Brute-force tracking unit is the (ip, device) pair, not the manager
    ip = db.Column(db.String(64), nullable=False, index=True)
    device = db.Column(db.String(255), nullable=False)

    # last identity tried from this pair; null until one resolves
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)

    fail_count = db.Column(db.Integer, default=0, nullable=False)
    last_attempt_at = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("ip", "device", name="uq_login_attempt_ip_device"),
        db.CheckConstraint("fail_count >= 0", name="ck_login_attempt_fail_count"),
    )
