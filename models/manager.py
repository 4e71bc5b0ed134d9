from datetime import datetime
from models.db import db

class Manager(db.Model):
    __tablename__ = "managers"

    id = db.Column(db.Integer, primary_key=True)

    login = db.Column(db.String(120), unique=True, nullable=False, index=True)
    # bcrypt hash, provisioned out-of-band (flask create-manager)
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
