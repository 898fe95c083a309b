# db/models/request.py
import enum
from datetime import datetime
from sqlalchemy import event
from configs import db
from utils.errors import ImmutableRecord


class RequestStatus(enum.Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    DSE_REVIEW = "DSE_REVIEW"
    WAITING_PADIRI_REVIEW = "WAITING_PADIRI_REVIEW"
    APPROVED = "APPROVED"
    VERIFIED = "VERIFIED"
    ISSUED_FROM_APPROVED = "ISSUED_FROM_APPROVED"
    PARTIALLY_ISSUED = "PARTIALLY_ISSUED"
    ISSUED = "ISSUED"
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"


class ApprovalLevel(enum.Enum):
    DSE = "DSE"
    PADIRI = "PADIRI"


class ApprovalAction(enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    VERIFIED = "VERIFIED"
    MODIFIED = "MODIFIED"
    NEEDS_CHANGES = "NEEDS_CHANGES"


class Request(db.Model):
    __tablename__ = "requests"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    ref_no = db.Column(db.String(50), unique=True)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id"), nullable=False, index=True)
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(
        db.Enum(RequestStatus, name="request_status"),
        default=RequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes = db.Column(db.Text)

    issued_at = db.Column(db.DateTime)
    issued_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    received_at = db.Column(db.DateTime)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    closed_at = db.Column(db.DateTime)
    closed_by = db.Column(db.Integer, db.ForeignKey("users.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    site = db.relationship("Site")
    requester = db.relationship("User", foreign_keys=[requested_by])
    items = db.relationship(
        "RequestItem",
        backref="request",
        cascade="all, delete-orphan",
        order_by="RequestItem.id",
    )
    approvals = db.relationship("Approval", backref="request", order_by="Approval.id")

    def __str__(self):
        return self.ref_no or f"Request #{self.id}"


class RequestItem(db.Model):
    __tablename__ = "request_items"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=False)

    qty_requested = db.Column(db.Numeric(12, 3), nullable=False)
    qty_approved = db.Column(db.Numeric(12, 3))  # null until reviewed
    qty_issued = db.Column(db.Numeric(12, 3), default=0, nullable=False)
    qty_remaining = db.Column(db.Numeric(12, 3), default=0, nullable=False)
    qty_received = db.Column(db.Numeric(12, 3), default=0, nullable=False)

    issued_at = db.Column(db.DateTime)
    issued_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    received_at = db.Column(db.DateTime)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    material = db.relationship("Material")
    unit = db.relationship("Unit")

    __table_args__ = (
        db.CheckConstraint("qty_issued >= 0", name="ck_request_items_issued_nonneg"),
        db.CheckConstraint("qty_remaining >= 0", name="ck_request_items_remaining_nonneg"),
    )


class Approval(db.Model):
    __tablename__ = "approvals"
    __table_args__ = (db.Index("ix_approvals_request_level", "request_id", "level"),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id"), nullable=False)
    level = db.Column(db.Enum(ApprovalLevel, name="approval_level"), nullable=False)
    reviewer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.Enum(ApprovalAction, name="approval_action"), nullable=False)
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    reviewer = db.relationship("User")


# Approvals are append-only
@event.listens_for(Approval, "before_update")
def _approval_no_update(mapper, connection, target):
    raise ImmutableRecord(f"Approval #{target.id} cannot be modified", entity="Approval", entity_id=target.id)


@event.listens_for(Approval, "before_delete")
def _approval_no_delete(mapper, connection, target):
    raise ImmutableRecord(f"Approval #{target.id} cannot be deleted", entity="Approval", entity_id=target.id)
