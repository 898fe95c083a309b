from datetime import datetime
from configs import db
from sqlalchemy.dialects.postgresql import JSONB


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(150), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"))

    parent = db.relationship("Category", remote_side=[id], backref="children")

    def __str__(self):
        return self.name


class Material(db.Model):
    __tablename__ = "materials"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    code = db.Column(db.String(50), unique=True)
    name = db.Column(db.String(255), nullable=False)
    specification = db.Column(db.Text)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"))
    category = db.relationship("Category", backref="materials")

    unit_id = db.Column(db.Integer, db.ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)
    unit = db.relationship("Unit", backref="materials")

    unit_price = db.Column(db.Numeric(12, 2))
    # free-form attributes (brand, grade, packaging...)
    attrs = db.Column(db.JSON().with_variant(JSONB, "postgresql"), default=dict)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __str__(self):
        return f"{self.code} {self.name}" if self.code else self.name
