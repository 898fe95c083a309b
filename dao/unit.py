from typing import List
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from db.models.unit import Unit
from db.models.material import Material
from utils.errors import Conflict, NotFound, ValidationError


def _is_unit_in_use(unit_id: int) -> bool:
    return (
        db.session.query(Material.id).filter_by(unit_id=unit_id).limit(1).first()
        is not None
    )


def list_units() -> List[Unit]:
    return Unit.query.order_by(Unit.code.asc()).all()


def get_unit(unit_id: int) -> Unit:
    u = db.session.get(Unit, int(unit_id))
    if u is None:
        raise NotFound("Unit", unit_id)
    return u


def create_unit(code: str, name: str) -> Unit:
    if not (code or "").strip() or not (name or "").strip():
        raise ValidationError("Unit code and name are required")
    u = Unit(code=code.strip(), name=name.strip())
    db.session.add(u)
    _commit()
    return u


def update_unit(unit_id: int, **fields) -> Unit:
    u = get_unit(unit_id)
    if "code" in fields and fields["code"] != u.code and _is_unit_in_use(u.id):
        raise Conflict("Unit is in use, its code cannot change", unit_id=u.id)
    for k in ("code", "name"):
        if fields.get(k):
            setattr(u, k, fields[k].strip())
    _commit()
    return u


def delete_unit(unit_id: int) -> None:
    u = get_unit(unit_id)
    if _is_unit_in_use(u.id):
        raise Conflict("Unit is in use and cannot be deleted", unit_id=u.id)
    db.session.delete(u)
    _commit()


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
