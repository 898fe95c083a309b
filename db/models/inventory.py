# db/models/inventory.py
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Union
from sqlalchemy import event
from configs import db
from utils.errors import ImmutableRecord


class MovementType(enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class SourceType(enum.Enum):
    GRN = "GRN"
    ISSUE = "ISSUE"
    ADJUSTMENT = "ADJUSTMENT"


@dataclass(frozen=True)
class GrnRef:
    id: int
    source_type: ClassVar[SourceType] = SourceType.GRN


@dataclass(frozen=True)
class IssueRef:
    id: int
    source_type: ClassVar[SourceType] = SourceType.ISSUE


@dataclass(frozen=True)
class AdjustmentRef:
    id: int
    source_type: ClassVar[SourceType] = SourceType.ADJUSTMENT


SourceRef = Union[GrnRef, IssueRef, AdjustmentRef]

_REF_BY_TYPE = {cls.source_type: cls for cls in (GrnRef, IssueRef, AdjustmentRef)}


def source_ref(source_type: SourceType, source_id: int) -> SourceRef:
    return _REF_BY_TYPE[source_type](int(source_id))


class Stock(db.Model):
    """Materialized balance of one material in one store."""

    __tablename__ = "stock"
    __table_args__ = (
        db.UniqueConstraint("store_id", "material_id", name="uq_stock_store_material"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    qty_on_hand = db.Column(db.Numeric(12, 3), default=0, nullable=False)
    reorder_level = db.Column(db.Numeric(12, 3), default=0)
    low_stock_threshold = db.Column(db.Numeric(12, 3))
    low_stock_alert = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    store = db.relationship("Store")
    material = db.relationship("Material")


class StockMovement(db.Model):
    """Append-only ledger entry. `qty` is always positive, `qty_change` carries the sign."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_key", "store_id", "material_id", "created_at"),
        db.CheckConstraint("qty > 0", name="ck_stock_movements_qty_positive"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    movement_type = db.Column(db.Enum(MovementType, name="movement_type"), nullable=False)
    source_type = db.Column(db.Enum(SourceType, name="movement_source_type"), nullable=False)
    source_id = db.Column(db.Integer, nullable=False)  # GRN / issue / adjustment id
    qty = db.Column(db.Numeric(12, 3), nullable=False)
    qty_change = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2))
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    store = db.relationship("Store")
    material = db.relationship("Material")
    creator = db.relationship("User")

    @property
    def source(self) -> SourceRef:
        return source_ref(self.source_type, self.source_id)


class StockHistory(db.Model):
    """Balance snapshot written next to every movement."""

    __tablename__ = "stock_history"
    __table_args__ = (db.Index("ix_stock_history_stock", "stock_id", "created_at"),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("stock.id", ondelete="CASCADE"), nullable=False)
    movement_id = db.Column(db.Integer, db.ForeignKey("stock_movements.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False)
    movement_type = db.Column(db.Enum(MovementType, name="movement_type"), nullable=False)
    qty_before = db.Column(db.Numeric(12, 3), nullable=False)
    qty_change = db.Column(db.Numeric(12, 3), nullable=False)
    qty_after = db.Column(db.Numeric(12, 3), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    movement = db.relationship("StockMovement")


@event.listens_for(StockMovement, "before_update")
def _movement_no_update(mapper, connection, target):
    raise ImmutableRecord(f"Stock movement #{target.id} cannot be modified", entity="StockMovement", entity_id=target.id)


@event.listens_for(StockMovement, "before_delete")
def _movement_no_delete(mapper, connection, target):
    raise ImmutableRecord(f"Stock movement #{target.id} cannot be deleted", entity="StockMovement", entity_id=target.id)
