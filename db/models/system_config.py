import enum
from datetime import datetime

from configs import db


class ConfigType(enum.Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    ARRAY = "ARRAY"


class SystemConfig(db.Model):
    """Runtime setting editable by ADMIN; `value` is stored as text and typed by `type`."""

    __tablename__ = "system_configs"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    value = db.Column(db.Text)
    type = db.Column(db.Enum(ConfigType, name="config_type"), default=ConfigType.STRING, nullable=False)
    category = db.Column(db.String(50), default="GENERAL", nullable=False, index=True)
    description = db.Column(db.Text)
    is_editable = db.Column(db.Boolean, default=True, nullable=False)
    is_public = db.Column(db.Boolean, default=False, nullable=False, index=True)
    validation_rules = db.Column(db.JSON)  # {"min": .., "max": ..} for NUMBER
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = db.relationship("User", foreign_keys=[created_by])
    updater = db.relationship("User", foreign_keys=[updated_by])

    def __str__(self):
        return self.key
