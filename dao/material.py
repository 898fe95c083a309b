from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from db.models.inventory import StockMovement
from db.models.material import Category, Material
from db.models.unit import Unit
from utils.errors import Conflict, NotFound, ValidationError
from utils.helpers import as_int, dec, paginate

MATERIAL_FIELDS = ("code", "name", "specification", "category_id", "unit_id", "unit_price", "attrs", "active")


# ---------- categories ----------
def list_categories() -> List[Category]:
    return Category.query.order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    c = db.session.get(Category, int(category_id))
    if c is None:
        raise NotFound("Category", category_id)
    return c


def create_category(name: str, parent_id: Optional[int] = None) -> Category:
    if not (name or "").strip():
        raise ValidationError("Category name is required", field="name")
    if parent_id:
        get_category(parent_id)
    c = Category(name=name.strip(), parent_id=int(parent_id) if parent_id else None)
    db.session.add(c)
    _commit()
    return c


def update_category(category_id: int, name: str | None = None, parent_id=None) -> Category:
    c = get_category(category_id)
    if name:
        c.name = name.strip()
    if parent_id is not None:
        if int(parent_id) == c.id:
            raise ValidationError("A category cannot be its own parent", field="parent_id")
        c.parent_id = int(parent_id) if parent_id else None
    _commit()
    return c


def delete_category(category_id: int) -> None:
    c = get_category(category_id)
    db.session.delete(c)
    _commit()


# ---------- materials ----------
def list_materials(page=1, limit=10, search=None, category_id=None, active=None):
    q = Material.query
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Material.name.ilike(like), Material.code.ilike(like)))
    if category_id:
        q = q.filter(Material.category_id == int(category_id))
    if active is not None:
        q = q.filter(Material.active.is_(bool(active)))
    return paginate(q.order_by(Material.name.asc()), page, limit)


def get_material(material_id: int) -> Material:
    m = db.session.get(Material, int(material_id))
    if m is None:
        raise NotFound("Material", material_id)
    return m


def _clean(fields: dict) -> dict:
    out = {k: v for k, v in fields.items() if k in MATERIAL_FIELDS}
    if "unit_id" in out:
        out["unit_id"] = as_int(out["unit_id"], "unit_id")
        if db.session.get(Unit, out["unit_id"]) is None:
            raise NotFound("Unit", out["unit_id"])
    if out.get("category_id"):
        get_category(out["category_id"])
    if out.get("unit_price") is not None:
        out["unit_price"] = dec(out["unit_price"], "unit_price")
        if out["unit_price"] < 0:
            raise ValidationError("unit_price cannot be negative", field="unit_price")
    return out


def create_material(name: str, unit_id, **fields) -> Material:
    if not (name or "").strip():
        raise ValidationError("Material name is required", field="name")
    data = _clean({**fields, "unit_id": unit_id})
    m = Material(name=name.strip(), **data)
    db.session.add(m)
    _commit()
    return m


def update_material(material_id: int, **fields) -> Material:
    m = get_material(material_id)
    for k, v in _clean(fields).items():
        setattr(m, k, v)
    if fields.get("name"):
        m.name = fields["name"].strip()
    _commit()
    return m


def delete_material(material_id: int) -> None:
    m = get_material(material_id)
    used = db.session.query(StockMovement.id).filter_by(material_id=m.id).limit(1).first()
    if used is not None:
        raise Conflict("Material has stock movements; deactivate it instead", material_id=m.id)
    db.session.delete(m)
    _commit()


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
