from configs import db
from datetime import datetime


class Issue(db.Model):
    """One issuance document: stock handed out of a store against a request."""

    __tablename__ = "issues"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    issue_no = db.Column(db.String(50), unique=True)
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    issued_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    issued_to = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    request = db.relationship("Request", backref="issues")
    store = db.relationship("Store")


class IssueItem(db.Model):
    __tablename__ = "issue_items"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    issue_id = db.Column(
        db.Integer, db.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    request_item_id = db.Column(db.Integer, db.ForeignKey("request_items.id"), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey("units.id"), nullable=False)
    qty_issued = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2))

    issue = db.relationship(
        "Issue", backref=db.backref("lines", cascade="all, delete-orphan")
    )
    request_item = db.relationship("RequestItem")
    material = db.relationship("Material")
