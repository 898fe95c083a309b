# dao/purchase.py
from typing import Dict, List
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from dao import audit as audit_dao
from db.models.goods_receipt import GoodsReceiptItem
from db.models.material import Material
from db.models.purchase import POStatus, PurchaseOrder, PurchaseOrderItem
from db.models.request import Request
from db.models.supplier import Supplier
from utils.errors import Conflict, NotFound, ValidationError
from utils.helpers import as_int, dec, paginate, positive, ref_no

# manual status changes; RECEIVED is set by goods receipts
PO_MOVES = {
    POStatus.DRAFT: {POStatus.SENT, POStatus.CANCELLED},
    POStatus.SENT: {POStatus.CANCELLED},
    POStatus.RECEIVED: set(),
    POStatus.CANCELLED: set(),
}


def _to_po_status(value) -> POStatus:
    if isinstance(value, POStatus):
        return value
    try:
        return POStatus((value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown purchase order status: {value!r}", field="status")


def list_purchase_orders(page=1, limit=10, status=None, supplier_id=None):
    q = PurchaseOrder.query
    if status:
        q = q.filter(PurchaseOrder.status == _to_po_status(status))
    if supplier_id:
        q = q.filter(PurchaseOrder.supplier_id == int(supplier_id))
    return paginate(q.order_by(PurchaseOrder.id.desc()), page, limit)


def get_po(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, int(po_id))
    if po is None:
        raise NotFound("Purchase order", po_id)
    return po


def received_by_item(po_id: int) -> Dict[int, Decimal]:
    """{po_item_id: quantity received so far} over all goods receipts."""
    rows = (
        db.session.query(GoodsReceiptItem.po_item_id, func.sum(GoodsReceiptItem.qty_received))
        .join(PurchaseOrderItem, PurchaseOrderItem.id == GoodsReceiptItem.po_item_id)
        .filter(PurchaseOrderItem.purchase_order_id == int(po_id))
        .group_by(GoodsReceiptItem.po_item_id)
        .all()
    )
    return {item_id: dec(total) for item_id, total in rows}


def po_lines_with_remaining(po_id: int) -> List[dict]:
    po = get_po(po_id)
    received = received_by_item(po.id)
    out = []
    for it in po.items:
        got = received.get(it.id, Decimal("0"))
        out.append(
            {
                "po_item_id": it.id,
                "material_id": it.material_id,
                "ordered": dec(it.qty),
                "received": got,
                "remaining": max(dec(it.qty) - got, Decimal("0")),
            }
        )
    return out


def _build_items(lines) -> List[PurchaseOrderItem]:
    if not lines:
        raise ValidationError("At least one line is required", field="items")
    items = []
    for idx, ln in enumerate(lines):
        material = db.session.get(Material, as_int(ln.get("material_id"), f"items[{idx}].material_id"))
        if material is None:
            raise NotFound("Material", ln.get("material_id"))
        price = ln.get("unit_price", material.unit_price)
        if price is None:
            raise ValidationError("unit_price is required", field=f"items[{idx}].unit_price")
        items.append(
            PurchaseOrderItem(
                material_id=material.id,
                unit_id=int(ln.get("unit_id") or material.unit_id),
                qty=positive(ln.get("qty"), f"items[{idx}].qty"),
                unit_price=dec(price, "unit_price"),
            )
        )
    return items


def create_po(supplier_id, created_by: int, lines: List[Dict], request_id=None) -> PurchaseOrder:
    supplier = db.session.get(Supplier, as_int(supplier_id, "supplier_id"))
    if supplier is None:
        raise NotFound("Supplier", supplier_id)
    if request_id and db.session.get(Request, int(request_id)) is None:
        raise NotFound("Request", request_id)
    po = PurchaseOrder(
        supplier_id=supplier.id,
        request_id=int(request_id) if request_id else None,
        created_by=created_by,
        status=POStatus.DRAFT,
    )
    po.items = _build_items(lines)
    po.total_amount = sum((dec(i.qty) * dec(i.unit_price) for i in po.items), Decimal("0"))
    db.session.add(po)
    db.session.flush()
    po.ref_no = ref_no("PO", po.id, po.created_at)
    audit_dao.log_action(created_by, "CREATE", "PURCHASE_ORDER", po.id, {"ref_no": po.ref_no})
    _commit()
    return po


def update_po(po_id: int, user_id: int, lines: List[Dict] | None = None, supplier_id=None) -> PurchaseOrder:
    po = get_po(po_id)
    if po.status != POStatus.DRAFT:
        raise Conflict("Only DRAFT purchase orders can be edited", po_id=po.id, status=po.status.value)
    if supplier_id:
        if db.session.get(Supplier, int(supplier_id)) is None:
            raise NotFound("Supplier", supplier_id)
        po.supplier_id = int(supplier_id)
    if lines is not None:
        po.items = _build_items(lines)
        po.total_amount = sum((dec(i.qty) * dec(i.unit_price) for i in po.items), Decimal("0"))
    audit_dao.log_action(user_id, "UPDATE", "PURCHASE_ORDER", po.id)
    _commit()
    return po


def set_po_status(po_id: int, status, user_id: int) -> PurchaseOrder:
    po = get_po(po_id)
    target = _to_po_status(status)
    if target not in PO_MOVES[po.status]:
        raise Conflict(
            f"Purchase order in status {po.status.value} cannot become {target.value}",
            po_id=po.id,
        )
    audit_dao.log_action(user_id, "STATUS", "PURCHASE_ORDER", po.id, {"from": po.status.value, "to": target.value})
    po.status = target
    _commit()
    return po


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
