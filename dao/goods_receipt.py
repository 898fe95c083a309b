# dao/goods_receipt.py
import logging
from decimal import Decimal
from typing import Dict, List
from configs import db
from dao import audit as audit_dao
from dao import inventory as inv_dao
from dao.purchase import received_by_item
from db.models.goods_receipt import GoodsReceipt, GoodsReceiptItem
from db.models.inventory import GrnRef, MovementType
from db.models.material import Material
from db.models.purchase import POStatus, PurchaseOrder, PurchaseOrderItem
from db.models.store import Store
from utils.errors import Conflict, NotFound, ValidationError
from utils.helpers import as_int, dec, paginate, positive, ref_no
from utils.tx import atomic

log = logging.getLogger(__name__)

RECEIVABLE_PO = (POStatus.DRAFT, POStatus.SENT)


def list_grs(page=1, limit=10, store_id=None, po_id=None):
    q = GoodsReceipt.query
    if store_id:
        q = q.filter(GoodsReceipt.store_id == int(store_id))
    if po_id:
        q = q.filter(GoodsReceipt.purchase_order_id == int(po_id))
    return paginate(q.order_by(GoodsReceipt.id.desc()), page, limit)


def get_gr(gr_id: int) -> GoodsReceipt:
    gr = db.session.get(GoodsReceipt, int(gr_id))
    if gr is None:
        raise NotFound("Goods receipt", gr_id)
    return gr


def _normalize_lines(lines: List[Dict], po: PurchaseOrder | None) -> List[dict]:
    """Validate lines and resolve each one to its PO line when receiving against a PO."""
    if not lines:
        raise ValidationError("At least one line is required", field="items")
    po_items: Dict[int, PurchaseOrderItem] = {i.id: i for i in po.items} if po else {}
    remaining: Dict[int, Decimal] = {}
    if po:
        got = received_by_item(po.id)
        remaining = {i.id: dec(i.qty) - got.get(i.id, Decimal("0")) for i in po.items}

    out = []
    for idx, ln in enumerate(lines):
        material_id = as_int(ln.get("material_id"), f"items[{idx}].material_id")
        material = db.session.get(Material, material_id)
        if material is None:
            raise NotFound("Material", material_id)
        qty = positive(ln.get("qty_received", ln.get("qty")), f"items[{idx}].qty_received")
        po_item_id = ln.get("po_item_id")
        if po:
            if po_item_id is None:
                match = [i for i in po.items if i.material_id == material_id]
                if len(match) != 1:
                    raise ValidationError(
                        "po_item_id is required to match this material", field=f"items[{idx}].po_item_id"
                    )
                po_item_id = match[0].id
            po_item = po_items.get(int(po_item_id))
            if po_item is None or po_item.material_id != material_id:
                raise ValidationError(
                    "Line does not belong to this purchase order", field=f"items[{idx}].po_item_id"
                )
            if qty > remaining[po_item.id]:
                raise ValidationError(
                    f"Receiving {qty} exceeds remaining {remaining[po_item.id]} on the order",
                    po_item_id=po_item.id,
                    remaining=str(remaining[po_item.id]),
                    requested=str(qty),
                )
            remaining[po_item.id] -= qty
            price = ln.get("unit_price", po_item.unit_price)
        else:
            po_item_id = None
            price = ln.get("unit_price", material.unit_price)
        out.append(
            {
                "material_id": material_id,
                "unit_id": int(ln.get("unit_id") or material.unit_id),
                "po_item_id": int(po_item_id) if po_item_id else None,
                "qty": qty,
                "unit_price": dec(price, "unit_price") if price is not None else None,
            }
        )
    return out


@atomic
def create_gr(store_id, received_by: int, lines: List[Dict], po_id=None, notes: str | None = None) -> GoodsReceipt:
    """Book received goods into a store; every line becomes an IN movement."""
    store = db.session.get(Store, as_int(store_id, "store_id"))
    if store is None:
        raise NotFound("Store", store_id)
    po = None
    if po_id:
        po = (
            PurchaseOrder.query.filter_by(id=int(po_id))
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if po is None:
            raise NotFound("Purchase order", po_id)
        if po.status not in RECEIVABLE_PO:
            raise Conflict(
                f"Purchase order in status {po.status.value} cannot be received",
                po_id=po.id,
            )
    norm = _normalize_lines(lines, po)

    gr = GoodsReceipt(
        purchase_order_id=po.id if po else None,
        store_id=store.id,
        received_by=received_by,
        notes=notes,
    )
    db.session.add(gr)
    db.session.flush()
    gr.ref_no = ref_no("GRN", gr.id, gr.received_at)

    for ln in sorted(norm, key=lambda x: x["material_id"]):
        inv_dao.apply_movement(
            store.id,
            ln["material_id"],
            MovementType.IN,
            GrnRef(gr.id),
            ln["qty"],
            unit_price=ln["unit_price"],
            notes=gr.ref_no,
            created_by=received_by,
        )
        db.session.add(
            GoodsReceiptItem(
                goods_receipt_id=gr.id,
                material_id=ln["material_id"],
                unit_id=ln["unit_id"],
                po_item_id=ln["po_item_id"],
                qty_received=ln["qty"],
                unit_price=ln["unit_price"],
            )
        )
    db.session.flush()

    if po is not None:
        got = received_by_item(po.id)
        if all(got.get(i.id, Decimal("0")) >= dec(i.qty) for i in po.items):
            po.status = POStatus.RECEIVED
            log.info("purchase order %s fully received", po.ref_no)
    audit_dao.log_action(
        received_by, "RECEIVE", "GOODS_RECEIPT", gr.id, {"ref_no": gr.ref_no, "lines": len(norm)}
    )
    return gr
