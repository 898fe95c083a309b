from configs import db
from datetime import datetime
import enum


class POStatus(enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    ref_no = db.Column(db.String(50), unique=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    supplier = db.relationship("Supplier", backref="purchase_orders")

    # originating request, if the PO was raised to cover one
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id"))
    status = db.Column(
        db.Enum(POStatus, name="po_status"), default=POStatus.DRAFT, nullable=False
    )
    total_amount = db.Column(db.Numeric(14, 2), default=0)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __str__(self):
        return self.ref_no or f"PO #{self.id}"


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=False)

    qty = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    purchase_order = db.relationship(
        "PurchaseOrder", backref=db.backref("items", cascade="all, delete-orphan")
    )
    material = db.relationship("Material")
