"""
Model: User
"""

from db import db, now_utc
from flask_login import UserMixin


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(255))
    admin_access = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=now_utc)

    @property
    def is_admin(self):
        return bool(self.admin_access)

    def has_admin_access(self):
        return bool(self.admin_access)

    def has_access(self, access):
        if access == "admin":
            return self.has_admin_access()
        return True

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user,
            "admin_access": self.is_admin,
        }
