# dao/report.py
from decimal import Decimal
from typing import List
from sqlalchemy import case, func
from configs import db
from db.models.inventory import Stock
from db.models.issue import Issue, IssueItem
from db.models.material import Material
from db.models.request import Request, RequestItem, RequestStatus
from db.models.site import Site
from db.models.store import Store
from db.models.user import User
from utils.helpers import dec


def requests_per_status(site_id=None) -> dict:
    q = db.session.query(Request.status, func.count(Request.id)).group_by(Request.status)
    if site_id:
        q = q.filter(Request.site_id == int(site_id))
    counts = {s.value: 0 for s in RequestStatus}
    for status, n in q.all():
        counts[status.value] = n
    return counts


def stock_value_per_store() -> List[dict]:
    rows = (
        db.session.query(
            Store.id,
            Store.name,
            func.count(Stock.id),
            func.coalesce(func.sum(Stock.qty_on_hand * func.coalesce(Material.unit_price, 0)), 0),
        )
        .select_from(Store)
        .outerjoin(Stock, Stock.store_id == Store.id)
        .outerjoin(Material, Material.id == Stock.material_id)
        .group_by(Store.id, Store.name)
        .order_by(Store.name)
        .all()
    )
    return [
        {"store_id": sid, "store": name, "materials": n, "value": dec(value).quantize(Decimal("0.01"))}
        for sid, name, n, value in rows
    ]


def issued_per_site(date_from=None, date_to=None) -> List[dict]:
    q = (
        db.session.query(
            Site.id,
            Site.name,
            Material.id,
            Material.name,
            func.sum(IssueItem.qty_issued),
        )
        .select_from(IssueItem)
        .join(Issue, Issue.id == IssueItem.issue_id)
        .join(Request, Request.id == Issue.request_id)
        .join(Site, Site.id == Request.site_id)
        .join(Material, Material.id == IssueItem.material_id)
    )
    if date_from:
        q = q.filter(Issue.created_at >= date_from)
    if date_to:
        q = q.filter(Issue.created_at <= date_to)
    rows = q.group_by(Site.id, Site.name, Material.id, Material.name).order_by(Site.name, Material.name).all()
    return [
        {"site_id": sid, "site": sname, "material_id": mid, "material": mname, "qty_issued": dec(total)}
        for sid, sname, mid, mname, total in rows
    ]


# statuses a request only reaches after final approval
APPROVED_OR_LATER = (
    RequestStatus.APPROVED,
    RequestStatus.VERIFIED,
    RequestStatus.ISSUED_FROM_APPROVED,
    RequestStatus.PARTIALLY_ISSUED,
    RequestStatus.ISSUED,
    RequestStatus.RECEIVED,
    RequestStatus.CLOSED,
)


def _in_period(q, date_from=None, date_to=None):
    if date_from:
        q = q.filter(Request.created_at >= date_from)
    if date_to:
        q = q.filter(Request.created_at <= date_to)
    return q


def _outcome_columns():
    return (
        func.count(Request.id),
        func.coalesce(func.sum(case((Request.status.in_(APPROVED_OR_LATER), 1), else_=0)), 0),
        func.coalesce(func.sum(case((Request.status == RequestStatus.REJECTED, 1), else_=0)), 0),
    )


def _outcomes(total, approved, rejected) -> dict:
    total, approved, rejected = int(total), int(approved), int(rejected)
    return {
        "total_requests": total,
        "approved_requests": approved,
        "rejected_requests": rejected,
        "pending_requests": total - approved - rejected,
    }


def user_activity(user_id=None, date_from=None, date_to=None) -> List[dict]:
    """Requests raised per user, split by outcome."""
    q = (
        db.session.query(User.id, User.full_name, *_outcome_columns())
        .select_from(Request)
        .join(User, User.id == Request.requested_by)
    )
    if user_id:
        q = q.filter(Request.requested_by == int(user_id))
    rows = _in_period(q, date_from, date_to).group_by(User.id, User.full_name).order_by(User.full_name).all()
    return [{"user_id": uid, "user": name, **_outcomes(*counts)} for uid, name, *counts in rows]


def site_performance(site_id=None, date_from=None, date_to=None) -> List[dict]:
    """Per site: request outcomes, requested value at current prices, mean hours from request to full issue."""
    q = (
        db.session.query(Site.id, Site.name, *_outcome_columns())
        .select_from(Request)
        .join(Site, Site.id == Request.site_id)
    )
    if site_id:
        q = q.filter(Request.site_id == int(site_id))
    rows = _in_period(q, date_from, date_to).group_by(Site.id, Site.name).order_by(Site.name).all()

    value_q = (
        db.session.query(
            Request.site_id,
            func.coalesce(func.sum(RequestItem.qty_requested * func.coalesce(Material.unit_price, 0)), 0),
        )
        .select_from(RequestItem)
        .join(Request, Request.id == RequestItem.request_id)
        .join(Material, Material.id == RequestItem.material_id)
    )
    if site_id:
        value_q = value_q.filter(Request.site_id == int(site_id))
    values = dict(_in_period(value_q, date_from, date_to).group_by(Request.site_id).all())

    issued_q = db.session.query(Request.site_id, Request.created_at, Request.issued_at).filter(
        Request.issued_at.isnot(None)
    )
    if site_id:
        issued_q = issued_q.filter(Request.site_id == int(site_id))
    durations: dict = {}
    for sid, created, issued in _in_period(issued_q, date_from, date_to).all():
        durations.setdefault(sid, []).append((issued - created).total_seconds() / 3600)

    out = []
    for sid, name, *counts in rows:
        hours = durations.get(sid)
        out.append(
            {
                "site_id": sid,
                "site": name,
                **_outcomes(*counts),
                "total_value": dec(values.get(sid, 0)).quantize(Decimal("0.01")),
                "avg_hours_to_issue": round(sum(hours) / len(hours), 2) if hours else None,
            }
        )
    return out
