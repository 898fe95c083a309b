from configs import db
from datetime import datetime
import enum


class Site(db.Model):
    __tablename__ = "sites"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    code = db.Column(db.String(50), unique=True)
    name = db.Column(db.String(150), nullable=False)
    location = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __str__(self):
        return self.name


class AssignmentStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class SiteAssignment(db.Model):
    __tablename__ = "site_assignments"
    __table_args__ = (db.UniqueConstraint("user_id", "site_id", name="uq_site_assignment"),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(
        db.Enum(AssignmentStatus, name="assignment_status"),
        default=AssignmentStatus.ACTIVE,
        nullable=False,
    )
    assigned_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", foreign_keys=[user_id], backref="site_assignments")
    site = db.relationship("Site", backref="assignments")
