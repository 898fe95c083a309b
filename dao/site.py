from datetime import datetime
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from db.models.request import Request
from db.models.site import AssignmentStatus, Site, SiteAssignment
from db.models.user import RoleName, User
from utils.errors import Conflict, NotFound, ValidationError
from utils.helpers import paginate


def list_sites(page=1, limit=10, search=None):
    q = Site.query
    if search:
        q = q.filter(Site.name.ilike(f"%{search}%"))
    return paginate(q.order_by(Site.name.asc()), page, limit)


def get_site(site_id: int) -> Site:
    s = db.session.get(Site, int(site_id))
    if s is None:
        raise NotFound("Site", site_id)
    return s


def create_site(name: str, code: str | None = None, location: str | None = None) -> Site:
    if not (name or "").strip():
        raise ValidationError("Site name is required", field="name")
    s = Site(name=name.strip(), code=code, location=location)
    db.session.add(s)
    _commit()
    return s


def update_site(site_id: int, **fields) -> Site:
    s = get_site(site_id)
    for k in ("name", "code", "location"):
        if k in fields and fields[k] is not None:
            setattr(s, k, fields[k])
    _commit()
    return s


def delete_site(site_id: int) -> None:
    s = get_site(site_id)
    if Request.query.filter_by(site_id=s.id).limit(1).first() is not None:
        raise Conflict("Site has requests and cannot be deleted", site_id=s.id)
    db.session.delete(s)
    _commit()


# ---------- assignments ----------
def assign_user(user_id: int, site_id: int, assigned_by: int | None = None) -> SiteAssignment:
    user = db.session.get(User, int(user_id))
    if user is None:
        raise NotFound("User", user_id)
    get_site(site_id)
    a = SiteAssignment.query.filter_by(user_id=user.id, site_id=int(site_id)).first()
    if a is None:
        a = SiteAssignment(user_id=user.id, site_id=int(site_id))
        db.session.add(a)
    a.status = AssignmentStatus.ACTIVE
    a.assigned_by = assigned_by
    a.assigned_at = datetime.utcnow()
    _commit()
    return a


def unassign_user(user_id: int, site_id: int) -> SiteAssignment:
    a = SiteAssignment.query.filter_by(user_id=int(user_id), site_id=int(site_id)).first()
    if a is None:
        raise NotFound("Site assignment", user_id=int(user_id), site_id=int(site_id))
    a.status = AssignmentStatus.INACTIVE
    _commit()
    return a


def user_assignments(user_id: int, active_only: bool = True) -> List[SiteAssignment]:
    q = SiteAssignment.query.filter_by(user_id=int(user_id))
    if active_only:
        q = q.filter_by(status=AssignmentStatus.ACTIVE)
    return q.order_by(SiteAssignment.assigned_at.desc()).all()


def available_sites(user: User) -> List[Site]:
    """Sites a user may raise requests for: assigned ones for site engineers, all otherwise."""
    if not user.has_role(RoleName.SITE_ENGINEER):
        return Site.query.order_by(Site.name.asc()).all()
    return (
        Site.query.join(SiteAssignment, SiteAssignment.site_id == Site.id)
        .filter(
            SiteAssignment.user_id == user.id,
            SiteAssignment.status == AssignmentStatus.ACTIVE,
        )
        .order_by(Site.name.asc())
        .all()
    )


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
