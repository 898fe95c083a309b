from typing import List
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from db.models.supplier import Supplier
from db.models.purchase import PurchaseOrder
from utils.errors import Conflict, NotFound, ValidationError

SUPPLIER_FIELDS = ("name", "contact", "phone", "email", "address", "active")


def list_suppliers(include_inactive: bool = False) -> List[Supplier]:
    q = Supplier.query
    if not include_inactive:
        q = q.filter_by(active=True)
    return q.order_by(Supplier.name.asc()).all()


def get_supplier(supplier_id: int) -> Supplier:
    s = db.session.get(Supplier, int(supplier_id))
    if s is None:
        raise NotFound("Supplier", supplier_id)
    return s


def create_supplier(name: str, **fields) -> Supplier:
    if not (name or "").strip():
        raise ValidationError("Supplier name is required", field="name")
    s = Supplier(name=name.strip(), **{k: v for k, v in fields.items() if k in SUPPLIER_FIELDS})
    db.session.add(s)
    _commit()
    return s


def update_supplier(supplier_id: int, **fields) -> Supplier:
    s = get_supplier(supplier_id)
    for k, v in fields.items():
        if k in SUPPLIER_FIELDS:
            setattr(s, k, v)
    _commit()
    return s


def delete_supplier(supplier_id: int) -> None:
    s = get_supplier(supplier_id)
    if PurchaseOrder.query.filter_by(supplier_id=s.id).count() > 0:
        raise Conflict("Supplier has purchase orders and cannot be deleted", supplier_id=s.id)
    db.session.delete(s)
    _commit()


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
