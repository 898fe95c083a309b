# utils/helpers.py
from datetime import datetime
from decimal import Decimal, InvalidOperation

from utils.errors import ValidationError


def dec(x, field: str = "quantity") -> Decimal:
    """Coerce form/JSON numbers to Decimal without float noise."""
    if x is None or x == "":
        return Decimal("0")
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {x!r}", field=field)


def positive(x, field: str = "qty") -> Decimal:
    value = dec(x, field)
    if value <= 0:
        raise ValidationError(f"{field} must be greater than 0", field=field, value=str(value))
    return value


def as_int(x, field: str) -> int:
    try:
        return int(x)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required and must be an integer", field=field)


def ref_no(prefix: str, pk: int, when: datetime | None = None) -> str:
    year = (when or datetime.utcnow()).year
    return f"{prefix}-{year}-{pk:04d}"


def paginate(query, page=1, limit=10):
    """Run a Flask-SQLAlchemy query page; returns (items, pagination dict)."""
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or 10)))
    pg = query.paginate(page=page, per_page=limit, error_out=False)
    return pg.items, {
        "current_page": page,
        "total_pages": pg.pages,
        "total_items": pg.total,
        "items_per_page": limit,
    }
