# dao/inventory.py
import logging
from decimal import ROUND_CEILING, Decimal
from typing import Iterable, Optional, Tuple

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from configs import db
from db.models.inventory import (
    AdjustmentRef,
    MovementType,
    SourceRef,
    SourceType,
    Stock,
    StockHistory,
    StockMovement,
)
from db.models.goods_receipt import GoodsReceipt
from db.models.issue import Issue
from db.models.material import Material
from db.models.store import Store
from utils.errors import Conflict, InsufficientStock, NotFound, ValidationError
from utils.helpers import as_int, dec, paginate, positive
from utils.tx import atomic

log = logging.getLogger(__name__)

# which source a movement type may point at
_SOURCES_FOR_TYPE = {
    MovementType.IN: {SourceType.GRN},
    MovementType.OUT: {SourceType.ISSUE},
    MovementType.ADJUSTMENT: {SourceType.ADJUSTMENT},
}


def _to_movement_type(value) -> MovementType:
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType((value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown movement type: {value!r}", field="movement_type")


def signed_change(movement_type: MovementType, qty: Decimal, decrease: bool = False) -> Decimal:
    if movement_type == MovementType.IN:
        return qty
    if movement_type == MovementType.OUT:
        return -qty
    return -qty if decrease else qty


def _refresh_alert(stock: Stock) -> None:
    threshold = stock.low_stock_threshold
    stock.low_stock_alert = threshold is not None and dec(stock.qty_on_hand) <= dec(threshold)


# ---------- locking ----------
def lock_stock(store_id: int, material_id: int) -> Stock:
    """Return the (store, material) balance row locked FOR UPDATE, creating it at 0."""
    stock = (
        Stock.query.filter_by(store_id=store_id, material_id=material_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if stock is None:
        stock = Stock(store_id=store_id, material_id=material_id, qty_on_hand=Decimal("0"))
        db.session.add(stock)
        # a concurrent creator wins the unique key; the transaction is retried
        db.session.flush()
    return stock


# ---------- ledger ----------
def apply_movement(
    store_id: int,
    material_id: int,
    movement_type,
    source: SourceRef,
    qty,
    unit_price=None,
    notes: str | None = None,
    created_by: int | None = None,
    decrease: bool = False,
) -> StockMovement:
    """Append one ledger row and move the balance, inside the caller's transaction."""
    movement_type = _to_movement_type(movement_type)
    qty = positive(qty, "qty")
    store_id = as_int(store_id, "store_id")
    material_id = as_int(material_id, "material_id")
    if source.source_type not in _SOURCES_FOR_TYPE[movement_type]:
        raise ValidationError(
            f"{movement_type.value} movement cannot reference {source.source_type.value}",
            movement_type=movement_type.value,
            source_type=source.source_type.value,
        )
    if decrease and movement_type != MovementType.ADJUSTMENT:
        raise ValidationError("Only ADJUSTMENT movements take a direction", field="decrease")

    if db.session.get(Store, store_id) is None:
        raise NotFound("Store", store_id)
    if db.session.get(Material, material_id) is None:
        raise NotFound("Material", material_id)

    stock = lock_stock(store_id, material_id)
    before = dec(stock.qty_on_hand)
    change = signed_change(movement_type, qty, decrease)
    after = before + change
    if after < 0 and not current_app.config.get("ALLOW_NEGATIVE_STOCK", False):
        raise InsufficientStock(
            f"Insufficient stock: available {before}, requested {qty}",
            store_id=store_id,
            material_id=material_id,
            available=str(before),
            requested=str(qty),
        )

    mv = StockMovement(
        store_id=store_id,
        material_id=material_id,
        movement_type=movement_type,
        source_type=source.source_type,
        source_id=source.id,
        qty=qty,
        qty_change=change,
        unit_price=dec(unit_price, "unit_price") if unit_price is not None else None,
        notes=notes,
        created_by=created_by,
    )
    db.session.add(mv)
    db.session.flush()

    stock.qty_on_hand = after
    _refresh_alert(stock)
    db.session.add(
        StockHistory(
            stock_id=stock.id,
            movement_id=mv.id,
            store_id=stock.store_id,
            material_id=stock.material_id,
            movement_type=movement_type,
            qty_before=before,
            qty_change=change,
            qty_after=after,
            created_by=created_by,
        )
    )
    log.info(
        "stock %s/%s %s %s via %s#%s: %s -> %s",
        store_id,
        material_id,
        movement_type.value,
        qty,
        source.source_type.value,
        source.id,
        before,
        after,
    )
    return mv


_SOURCE_NAMES = {SourceType.GRN: "Goods receipt", SourceType.ISSUE: "Issue", SourceType.ADJUSTMENT: "Stock record"}


def check_source(source: SourceRef, store_id, material_id) -> None:
    """The document behind `source` must exist and belong to this store (and material, for adjustments)."""
    store_id, material_id = as_int(store_id, "store_id"), as_int(material_id, "material_id")
    if source.source_type == SourceType.GRN:
        doc = db.session.get(GoodsReceipt, source.id)
        found = doc is not None and doc.store_id == store_id
    elif source.source_type == SourceType.ISSUE:
        doc = db.session.get(Issue, source.id)
        found = doc is not None and doc.store_id == store_id
    else:
        doc = db.session.get(Stock, source.id)
        found = doc is not None and doc.store_id == store_id and doc.material_id == material_id
    if not found:
        raise NotFound(_SOURCE_NAMES[source.source_type], source.id, store_id=store_id)


@atomic
def record_movement(
    store_id: int,
    material_id: int,
    movement_type,
    source: SourceRef,
    qty,
    unit_price=None,
    notes: str | None = None,
    created_by: int | None = None,
    decrease: bool = False,
) -> StockMovement:
    return apply_movement(
        store_id,
        material_id,
        movement_type,
        source,
        qty,
        unit_price=unit_price,
        notes=notes,
        created_by=created_by,
        decrease=decrease,
    )


# ---------- stock rows ----------
def list_stock(page=1, limit=10, store_id=None, material_id=None, low_stock: bool = False):
    q = Stock.query
    if store_id:
        q = q.filter(Stock.store_id == int(store_id))
    if material_id:
        q = q.filter(Stock.material_id == int(material_id))
    if low_stock:
        q = q.filter(Stock.low_stock_alert.is_(True))
    return paginate(q.order_by(Stock.updated_at.desc(), Stock.id.desc()), page, limit)


def get_stock(stock_id: int) -> Stock:
    stock = db.session.get(Stock, int(stock_id))
    if stock is None:
        raise NotFound("Stock record", stock_id)
    return stock


def find_stock(store_id: int, material_id: int) -> Optional[Stock]:
    return Stock.query.filter_by(store_id=int(store_id), material_id=int(material_id)).one_or_none()


@atomic
def create_stock(
    store_id: int,
    material_id: int,
    qty_on_hand=0,
    reorder_level=0,
    low_stock_threshold=None,
    created_by: int | None = None,
) -> Stock:
    """Open a balance row. A non-zero opening quantity goes through the ledger."""
    if find_stock(store_id, material_id) is not None:
        raise Conflict(
            "Stock record already exists for this material in this store",
            store_id=int(store_id),
            material_id=int(material_id),
        )
    opening = dec(qty_on_hand)
    if opening < 0:
        raise ValidationError("Opening quantity cannot be negative", field="qty_on_hand")
    if db.session.get(Store, int(store_id)) is None:
        raise NotFound("Store", store_id)
    if db.session.get(Material, int(material_id)) is None:
        raise NotFound("Material", material_id)

    stock = lock_stock(int(store_id), int(material_id))
    stock.reorder_level = dec(reorder_level)
    stock.low_stock_threshold = dec(low_stock_threshold) if low_stock_threshold is not None else None
    if opening > 0:
        apply_movement(
            store_id,
            material_id,
            MovementType.ADJUSTMENT,
            AdjustmentRef(stock.id),
            opening,
            notes="Opening balance",
            created_by=created_by,
        )
    _refresh_alert(stock)
    return stock


@atomic
def adjust_stock(
    stock_id: int,
    qty_on_hand=None,
    delta=None,
    notes: str | None = None,
    created_by: int | None = None,
) -> Tuple[Stock, Optional[StockMovement]]:
    """Correct a balance to `qty_on_hand` (or by `delta`) with an ADJUSTMENT movement."""
    stock = (
        Stock.query.filter_by(id=int(stock_id)).with_for_update().populate_existing().one_or_none()
    )
    if stock is None:
        raise NotFound("Stock record", stock_id)
    if qty_on_hand is None and delta is None:
        raise ValidationError("Either qty_on_hand or delta is required")
    change = dec(delta) if delta is not None else dec(qty_on_hand) - dec(stock.qty_on_hand)
    if change == 0:
        return stock, None
    mv = apply_movement(
        stock.store_id,
        stock.material_id,
        MovementType.ADJUSTMENT,
        AdjustmentRef(stock.id),
        abs(change),
        notes=notes or "Manual adjustment",
        created_by=created_by,
        decrease=change < 0,
    )
    return stock, mv


def update_stock_settings(stock_id: int, reorder_level=None, low_stock_threshold=None) -> Stock:
    stock = get_stock(stock_id)
    if reorder_level is not None:
        stock.reorder_level = dec(reorder_level)
    if low_stock_threshold is not None:
        stock.low_stock_threshold = dec(low_stock_threshold)
    _refresh_alert(stock)
    _commit()
    return stock


def acknowledge_alert(stock_id: int) -> Stock:
    stock = get_stock(stock_id)
    stock.low_stock_alert = False
    _commit()
    return stock


def procurement_recommendations(store_id=None) -> list[dict]:
    q = Stock.query.filter(
        or_(
            Stock.low_stock_alert.is_(True),
            Stock.qty_on_hand <= Stock.reorder_level,
            Stock.qty_on_hand == 0,
        )
    )
    if store_id:
        q = q.filter(Stock.store_id == int(store_id))
    rows = q.order_by(Stock.low_stock_alert.desc(), Stock.qty_on_hand.asc()).all()

    out = []
    for s in rows:
        current = dec(s.qty_on_hand)
        reorder = dec(s.reorder_level)
        threshold = dec(s.low_stock_threshold)
        if current <= 0:
            priority, reason = "CRITICAL", "Out of stock - immediate purchase required"
            suggested = max(reorder * 2, Decimal("100"))
        elif s.low_stock_alert or current <= threshold:
            priority, reason = "HIGH", "Below low stock threshold"
            suggested = max(reorder - current, reorder)
        elif current <= reorder:
            priority, reason = "MEDIUM", "At or below reorder level"
            suggested = reorder * Decimal("1.5") - current
        else:
            continue
        out.append(
            {
                "stock": s,
                "priority": priority,
                "suggested_qty": int(suggested.to_integral_value(rounding=ROUND_CEILING)),
                "reason": reason,
            }
        )
    return out


# ---------- ledger queries ----------
def list_movements(
    page=1,
    limit=10,
    store_id=None,
    material_id=None,
    movement_type=None,
    source_type=None,
    source_id=None,
):
    q = StockMovement.query
    if store_id:
        q = q.filter(StockMovement.store_id == int(store_id))
    if material_id:
        q = q.filter(StockMovement.material_id == int(material_id))
    if movement_type:
        q = q.filter(StockMovement.movement_type == _to_movement_type(movement_type))
    if source_type:
        try:
            q = q.filter(StockMovement.source_type == SourceType(source_type.upper()))
        except ValueError:
            raise ValidationError(f"Unknown source type: {source_type!r}", field="source_type")
    if source_id:
        q = q.filter(StockMovement.source_id == int(source_id))
    return paginate(q.order_by(StockMovement.id.desc()), page, limit)


def list_history(stock_id: int, page=1, limit=20):
    get_stock(stock_id)
    q = StockHistory.query.filter_by(stock_id=int(stock_id)).order_by(StockHistory.id.desc())
    return paginate(q, page, limit)


def ledger_total(store_id: int, material_id: int) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(StockMovement.qty_change), 0))
        .filter(
            StockMovement.store_id == int(store_id),
            StockMovement.material_id == int(material_id),
        )
        .scalar()
    )
    return dec(total)


def reconcile(store_id=None, material_id=None) -> list[dict]:
    """Compare every balance row with the signed sum of its ledger."""
    totals = (
        db.session.query(
            StockMovement.store_id,
            StockMovement.material_id,
            func.sum(StockMovement.qty_change),
        )
        .group_by(StockMovement.store_id, StockMovement.material_id)
    )
    q = Stock.query
    if store_id:
        totals = totals.filter(StockMovement.store_id == int(store_id))
        q = q.filter(Stock.store_id == int(store_id))
    if material_id:
        totals = totals.filter(StockMovement.material_id == int(material_id))
        q = q.filter(Stock.material_id == int(material_id))
    by_key = {(s, m): dec(t) for s, m, t in totals.all()}

    report = []
    for stock in q.order_by(Stock.store_id, Stock.material_id).all():
        key = (stock.store_id, stock.material_id)
        ledger = by_key.pop(key, Decimal("0"))
        on_hand = dec(stock.qty_on_hand)
        report.append(
            {
                "store_id": key[0],
                "material_id": key[1],
                "qty_on_hand": on_hand,
                "ledger_total": ledger,
                "balanced": on_hand == ledger,
            }
        )
    # movements whose balance row is missing
    for (s, m), ledger in by_key.items():
        report.append(
            {
                "store_id": s,
                "material_id": m,
                "qty_on_hand": None,
                "ledger_total": ledger,
                "balanced": False,
            }
        )
    return report


@atomic
def rebuild_stock(keys: Optional[Iterable[Tuple[int, int]]] = None) -> int:
    """Recompute balances from the ledger; returns how many rows changed."""
    rows = [r for r in reconcile() if not r["balanced"]]
    if keys is not None:
        wanted = {(int(s), int(m)) for s, m in keys}
        rows = [r for r in rows if (r["store_id"], r["material_id"]) in wanted]
    for r in rows:
        stock = lock_stock(r["store_id"], r["material_id"])
        log.warning(
            "rebuilding stock %s/%s: %s -> %s",
            r["store_id"],
            r["material_id"],
            stock.qty_on_hand,
            r["ledger_total"],
        )
        stock.qty_on_hand = r["ledger_total"]
        _refresh_alert(stock)
    return len(rows)


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
