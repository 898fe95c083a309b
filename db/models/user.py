# db/models/user.py
import enum
from datetime import datetime
from configs import db
from flask_login import UserMixin


class RoleName(enum.Enum):
    ADMIN = "ADMIN"
    SITE_ENGINEER = "SITE_ENGINEER"  # raises requests, confirms receipt
    DIOCESAN_SITE_ENGINEER = "DIOCESAN_SITE_ENGINEER"  # DSE, first review level
    PADIRI = "PADIRI"  # final review level
    STOREKEEPER = "STOREKEEPER"  # issues stock
    PROCUREMENT = "PROCUREMENT"  # purchase orders, goods receipts


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Enum(RoleName, name="role_name"), unique=True, nullable=False)

    def __str__(self):
        return self.name.value


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False)
    full_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(30))
    password_hash = db.Column(db.String(255), nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    first_login = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    role = db.relationship("Role", backref="users", lazy="joined")

    def get_id(self):
        return str(self.id)

    @property
    def is_active(self):
        return bool(self.active)

    def has_role(self, *roles) -> bool:
        """True when the user's role is one of `roles` (RoleName or plain string)."""
        names = {getattr(r, "value", r) for r in roles}
        return self.role is not None and self.role.name.value in names

    def __str__(self):
        return self.full_name
