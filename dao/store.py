from typing import List
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from db.models.inventory import Stock
from db.models.store import Store
from utils.errors import Conflict, NotFound, ValidationError

STORE_FIELDS = ("code", "name", "location", "description", "manager_name", "contact_phone", "contact_email")


def list_stores() -> List[Store]:
    return Store.query.order_by(Store.name.asc()).all()


def get_store(store_id: int) -> Store:
    s = db.session.get(Store, int(store_id))
    if s is None:
        raise NotFound("Store", store_id)
    return s


def create_store(code: str, name: str, location: str, **fields) -> Store:
    if not all((code, name, location)):
        raise ValidationError("Store code, name and location are required")
    s = Store(
        code=code.strip(),
        name=name.strip(),
        location=location.strip(),
        **{k: v for k, v in fields.items() if k in STORE_FIELDS},
    )
    db.session.add(s)
    _commit()
    return s


def update_store(store_id: int, **fields) -> Store:
    s = get_store(store_id)
    for k, v in fields.items():
        if k in STORE_FIELDS:
            setattr(s, k, v)
    _commit()
    return s


def delete_store(store_id: int) -> None:
    s = get_store(store_id)
    if Stock.query.filter_by(store_id=s.id).limit(1).first() is not None:
        raise Conflict("Store still holds stock records", store_id=s.id)
    db.session.delete(s)
    _commit()


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
