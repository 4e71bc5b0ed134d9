from models.db import db


class UserPhone(db.Model):
    __tablename__ = "user_phones"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(30), unique=True, nullable=False, index=True)
    date_of_send = db.Column(db.DateTime, nullable=True)
    information_about_user = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "date_of_send": self.date_of_send.isoformat() if self.date_of_send else None,
            "information_about_user": self.information_about_user,
        }
