# utils/serializers.py
from datetime import datetime
from decimal import Decimal

from flask import jsonify


def _num(v):
    if v is None:
        return None
    return float(v) if isinstance(v, Decimal) else v


def _dt(v: datetime | None):
    return v.isoformat() if v else None


def _enum(v):
    return getattr(v, "value", v)


def ok(data=None, message: str | None = None, pagination: dict | None = None, status: int = 200):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return jsonify(body), status


# ---------- master data ----------
def role_dict(r):
    return {"id": r.id, "name": _enum(r.name)}


def user_dict(u):
    return {
        "id": u.id,
        "full_name": u.full_name,
        "email": u.email,
        "phone": u.phone,
        "role": _enum(u.role.name) if u.role else None,
        "role_id": u.role_id,
        "active": u.active,
        "first_login": u.first_login,
        "created_at": _dt(u.created_at),
    }


def site_dict(s):
    return {"id": s.id, "code": s.code, "name": s.name, "location": s.location}


def assignment_dict(a):
    return {
        "id": a.id,
        "user_id": a.user_id,
        "site": site_dict(a.site) if a.site else None,
        "status": _enum(a.status),
        "assigned_by": a.assigned_by,
        "assigned_at": _dt(a.assigned_at),
    }


def store_dict(s):
    return {
        "id": s.id,
        "code": s.code,
        "name": s.name,
        "location": s.location,
        "description": s.description,
        "manager_name": s.manager_name,
        "contact_phone": s.contact_phone,
        "contact_email": s.contact_email,
    }


def unit_dict(u):
    return {"id": u.id, "code": u.code, "name": u.name}


def category_dict(c):
    return {"id": c.id, "name": c.name, "parent_id": c.parent_id}


def material_dict(m):
    return {
        "id": m.id,
        "code": m.code,
        "name": m.name,
        "specification": m.specification,
        "category_id": m.category_id,
        "category": m.category.name if m.category else None,
        "unit_id": m.unit_id,
        "unit": m.unit.code if m.unit else None,
        "unit_price": _num(m.unit_price),
        "attrs": m.attrs or {},
        "active": m.active,
    }


def supplier_dict(s):
    return {
        "id": s.id,
        "name": s.name,
        "contact": s.contact,
        "phone": s.phone,
        "email": s.email,
        "address": s.address,
        "active": s.active,
    }


# ---------- requests ----------
def request_item_dict(i):
    return {
        "id": i.id,
        "material_id": i.material_id,
        "material": i.material.name if i.material else None,
        "unit_id": i.unit_id,
        "qty_requested": _num(i.qty_requested),
        "qty_approved": _num(i.qty_approved),
        "qty_issued": _num(i.qty_issued),
        "qty_remaining": _num(i.qty_remaining),
        "qty_received": _num(i.qty_received),
        "issued_at": _dt(i.issued_at),
        "received_at": _dt(i.received_at),
    }


def approval_dict(a):
    return {
        "id": a.id,
        "level": _enum(a.level),
        "action": _enum(a.action),
        "reviewer_id": a.reviewer_id,
        "reviewer": a.reviewer.full_name if a.reviewer else None,
        "comment": a.comment,
        "created_at": _dt(a.created_at),
    }


def request_dict(r, detail: bool = False):
    d = {
        "id": r.id,
        "ref_no": r.ref_no,
        "site_id": r.site_id,
        "site": r.site.name if r.site else None,
        "requested_by": r.requested_by,
        "requester": r.requester.full_name if r.requester else None,
        "status": _enum(r.status),
        "notes": r.notes,
        "created_at": _dt(r.created_at),
        "updated_at": _dt(r.updated_at),
    }
    if detail:
        d.update(
            items=[request_item_dict(i) for i in r.items],
            approvals=[approval_dict(a) for a in r.approvals],
            issued_at=_dt(r.issued_at),
            received_at=_dt(r.received_at),
            closed_at=_dt(r.closed_at),
        )
    return d


def issue_dict(i):
    return {
        "id": i.id,
        "issue_no": i.issue_no,
        "request_id": i.request_id,
        "store_id": i.store_id,
        "issued_by": i.issued_by,
        "issued_to": i.issued_to,
        "created_at": _dt(i.created_at),
        "lines": [issue_item_dict(ln) for ln in i.lines],
    }


def issue_item_dict(ln):
    return {
        "id": ln.id,
        "issue_id": ln.issue_id,
        "request_item_id": ln.request_item_id,
        "material_id": ln.material_id,
        "material": ln.material.name if ln.material else None,
        "qty_issued": _num(ln.qty_issued),
        "unit_price": _num(ln.unit_price),
    }


# ---------- stock ----------
def stock_dict(s):
    return {
        "id": s.id,
        "store_id": s.store_id,
        "store": s.store.name if s.store else None,
        "material_id": s.material_id,
        "material": s.material.name if s.material else None,
        "qty_on_hand": _num(s.qty_on_hand),
        "reorder_level": _num(s.reorder_level),
        "low_stock_threshold": _num(s.low_stock_threshold),
        "low_stock_alert": s.low_stock_alert,
        "updated_at": _dt(s.updated_at),
    }


def movement_dict(m):
    return {
        "id": m.id,
        "store_id": m.store_id,
        "material_id": m.material_id,
        "movement_type": _enum(m.movement_type),
        "source_type": _enum(m.source_type),
        "source_id": m.source_id,
        "qty": _num(m.qty),
        "qty_change": _num(m.qty_change),
        "unit_price": _num(m.unit_price),
        "notes": m.notes,
        "created_by": m.created_by,
        "created_at": _dt(m.created_at),
    }


def history_dict(h):
    return {
        "id": h.id,
        "movement_id": h.movement_id,
        "movement_type": _enum(h.movement_type),
        "qty_before": _num(h.qty_before),
        "qty_change": _num(h.qty_change),
        "qty_after": _num(h.qty_after),
        "created_by": h.created_by,
        "created_at": _dt(h.created_at),
    }


def plain(d: dict) -> dict:
    """Make a DAO result dict JSON-friendly."""
    return {k: _num(v) for k, v in d.items()}


# ---------- procurement ----------
def po_dict(po):
    return {
        "id": po.id,
        "ref_no": po.ref_no,
        "supplier_id": po.supplier_id,
        "supplier": po.supplier.name if po.supplier else None,
        "request_id": po.request_id,
        "status": _enum(po.status),
        "total_amount": _num(po.total_amount),
        "created_by": po.created_by,
        "created_at": _dt(po.created_at),
        "items": [
            {
                "id": it.id,
                "material_id": it.material_id,
                "unit_id": it.unit_id,
                "qty": _num(it.qty),
                "unit_price": _num(it.unit_price),
            }
            for it in po.items
        ],
    }


def gr_dict(gr):
    return {
        "id": gr.id,
        "ref_no": gr.ref_no,
        "purchase_order_id": gr.purchase_order_id,
        "store_id": gr.store_id,
        "received_by": gr.received_by,
        "received_at": _dt(gr.received_at),
        "notes": gr.notes,
        "lines": [
            {
                "id": ln.id,
                "material_id": ln.material_id,
                "po_item_id": ln.po_item_id,
                "qty_received": _num(ln.qty_received),
                "unit_price": _num(ln.unit_price),
            }
            for ln in gr.lines
        ],
    }


def audit_dict(a):
    return {
        "id": a.id,
        "user_id": a.user_id,
        "action": a.action,
        "entity": a.entity,
        "entity_id": a.entity_id,
        "details": a.details,
        "ip_address": a.ip_address,
        "created_at": _dt(a.created_at),
    }


def config_dict(c, value=None):
    """`value` is the typed value when the caller has parsed it, else the stored text."""
    return {
        "id": c.id,
        "key": c.key,
        "value": _num(value) if value is not None else c.value,
        "type": _enum(c.type),
        "category": c.category,
        "description": c.description,
        "is_editable": c.is_editable,
        "is_public": c.is_public,
        "validation_rules": c.validation_rules,
        "updated_by": c.updated_by,
        "updated_at": _dt(c.updated_at),
    }
