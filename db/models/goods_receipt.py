from configs import db
from datetime import datetime


class GoodsReceipt(db.Model):
    __tablename__ = "goods_receipts"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    ref_no = db.Column(db.String(50), unique=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"))
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    received_at = db.Column(db.DateTime, default=datetime.utcnow)
    notes = db.Column(db.Text)

    purchase_order = db.relationship("PurchaseOrder", backref="goods_receipts")
    store = db.relationship("Store")


class GoodsReceiptItem(db.Model):
    __tablename__ = "goods_receipt_items"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    goods_receipt_id = db.Column(
        db.Integer,
        db.ForeignKey("goods_receipts.id", ondelete="CASCADE"),
        nullable=False,
    )
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=False)
    po_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"))
    qty_received = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2))
    goods_receipt = db.relationship(
        "GoodsReceipt", backref=db.backref("lines", cascade="all, delete-orphan")
    )
    material = db.relationship("Material")
    po_item = db.relationship("PurchaseOrderItem")
