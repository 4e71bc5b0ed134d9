from datetime import datetime
from models.db import db


class IpBlacklist(db.Model):
    __tablename__ = "ip_blacklist"

    id = db.Column(db.Integer, primary_key=True)
    ip = db.Column(db.String(64), nullable=False, unique=True, index=True)
    reason = db.Column(db.String(64), nullable=True)  # UNKNOWN_LOGIN, TOO_MANY_FAILURES
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # null = permanent
    expires_at = db.Column(db.DateTime, nullable=True)
