# dao/request.py
"""Material requests: raising, review, issuing from a store and site receipt.

Lock order inside one transaction is request, then its items, then stock
rows (sorted by material id, taken by dao.inventory).
"""
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from configs import db
from dao import audit as audit_dao
from dao import inventory as inventory_dao
from dao import lifecycle
from dao import system_config as config_dao
from dao.lifecycle import LEVEL_ROLES
from db.models.inventory import IssueRef, MovementType
from db.models.issue import Issue, IssueItem
from db.models.material import Material
from db.models.request import (
    Approval,
    ApprovalAction,
    ApprovalLevel,
    Request,
    RequestItem,
    RequestStatus,
)
from db.models.site import AssignmentStatus, Site, SiteAssignment
from db.models.store import Store
from db.models.unit import Unit
from db.models.user import RoleName, User
from utils.errors import Forbidden, InvalidTransition, NotFound, OverIssue, ValidationError
from utils.helpers import as_int, dec, paginate, positive, ref_no
from utils.tx import atomic

log = logging.getLogger(__name__)


# ---------- queries ----------
def list_requests(page=1, limit=10, status=None, site_id=None, requested_by=None, search=None):
    q = Request.query
    if status:
        q = q.filter(Request.status == _status(status))
    if site_id:
        q = q.filter(Request.site_id == int(site_id))
    if requested_by:
        q = q.filter(Request.requested_by == int(requested_by))
    if search:
        q = q.filter(Request.ref_no.ilike(f"%{search}%"))
    return paginate(q.order_by(Request.created_at.desc(), Request.id.desc()), page, limit)


def my_requests(user_id: int, page=1, limit=10, status=None):
    return list_requests(page, limit, status=status, requested_by=user_id)


def requests_by_site(site_id: int, page=1, limit=10, status=None):
    if db.session.get(Site, int(site_id)) is None:
        raise NotFound("Site", site_id)
    return list_requests(page, limit, status=status, site_id=site_id)


def issuable_requests(page=1, limit=10, site_id=None):
    q = Request.query.filter(Request.status.in_(lifecycle.ISSUABLE))
    if site_id:
        q = q.filter(Request.site_id == int(site_id))
    return paginate(q.order_by(Request.updated_at.desc(), Request.id.desc()), page, limit)


def get_request(request_id: int) -> Request:
    req = db.session.get(Request, int(request_id))
    if req is None:
        raise NotFound("Request", request_id)
    return req


def list_issues(page=1, limit=10, request_id=None, store_id=None):
    q = Issue.query
    if request_id:
        q = q.filter(Issue.request_id == int(request_id))
    if store_id:
        q = q.filter(Issue.store_id == int(store_id))
    return paginate(q.order_by(Issue.id.desc()), page, limit)


def issued_materials(page=1, limit=10, store_id=None, site_id=None, material_id=None):
    q = IssueItem.query.join(Issue, IssueItem.issue_id == Issue.id)
    if store_id:
        q = q.filter(Issue.store_id == int(store_id))
    if material_id:
        q = q.filter(IssueItem.material_id == int(material_id))
    if site_id:
        q = q.join(Request, Issue.request_id == Request.id).filter(Request.site_id == int(site_id))
    return paginate(q.order_by(IssueItem.id.desc()), page, limit)


# ---------- locking ----------
def _lock_request(request_id) -> Request:
    req = (
        Request.query.filter_by(id=as_int(request_id, "request_id"))
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if req is None:
        raise NotFound("Request", request_id)
    return req


def _lock_items(req: Request) -> List[RequestItem]:
    return (
        RequestItem.query.filter_by(request_id=req.id)
        .order_by(RequestItem.id)
        .with_for_update()
        .populate_existing()
        .all()
    )


def _status(value) -> RequestStatus:
    try:
        return RequestStatus((value or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown request status: {value!r}", field="status")


def _user(user_id) -> User:
    user = db.session.get(User, as_int(user_id, "user_id"))
    if user is None:
        raise NotFound("User", user_id)
    return user


# ---------- raising ----------
def _build_items(raw_items) -> List[RequestItem]:
    if not raw_items:
        raise ValidationError("At least one item is required", field="items")
    max_items = config_dao.config_value("requests.max_items")
    if max_items is not None and len(raw_items) > max_items:
        raise ValidationError(f"A request may carry at most {max_items} items", field="items")
    items = []
    for idx, raw in enumerate(raw_items):
        material_id = as_int(raw.get("material_id"), f"items[{idx}].material_id")
        material = db.session.get(Material, material_id)
        if material is None:
            raise NotFound("Material", material_id)
        unit_id = raw.get("unit_id") or material.unit_id
        if db.session.get(Unit, int(unit_id)) is None:
            raise NotFound("Unit", unit_id)
        qty = positive(raw.get("qty_requested", raw.get("qty")), f"items[{idx}].qty_requested")
        items.append(
            RequestItem(
                material_id=material_id,
                unit_id=int(unit_id),
                qty_requested=qty,
                qty_issued=Decimal("0"),
                qty_remaining=Decimal("0"),
                qty_received=Decimal("0"),
            )
        )
    return items


def _check_site_access(user: User, site_id: int) -> None:
    if not user.has_role(RoleName.SITE_ENGINEER):
        return
    assigned = SiteAssignment.query.filter_by(
        user_id=user.id, site_id=site_id, status=AssignmentStatus.ACTIVE
    ).first()
    if assigned is None:
        raise Forbidden(
            "You are not assigned to this site", user_id=user.id, site_id=site_id
        )


@atomic
def create_request(site_id, requested_by, notes: str | None, items: List[Dict]) -> Request:
    site_id = as_int(site_id, "site_id")
    if db.session.get(Site, site_id) is None:
        raise NotFound("Site", site_id)
    requester = _user(requested_by)
    _check_site_access(requester, site_id)

    req = Request(
        site_id=site_id,
        requested_by=requester.id,
        status=RequestStatus.PENDING,
        notes=notes,
    )
    req.items = _build_items(items)
    db.session.add(req)
    db.session.flush()
    req.ref_no = ref_no("REQ", req.id, req.created_at)

    audit_dao.log_action(
        requester.id, "CREATE", "REQUEST", req.id, {"ref_no": req.ref_no, "items": len(req.items)}
    )
    log.info("request %s created by user %s for site %s", req.ref_no, requester.id, site_id)
    return req


@atomic
def update_request(request_id, user_id, notes: str | None = None, items: Optional[List[Dict]] = None) -> Request:
    req = _lock_request(request_id)
    if req.requested_by != int(user_id):
        raise Forbidden("Only the requester can edit this request", request_id=req.id)
    if req.status != RequestStatus.PENDING:
        raise InvalidTransition(req.id, req.status, "update")
    if notes is not None:
        req.notes = notes
    if items is not None:
        req.items = _build_items(items)
    audit_dao.log_action(int(user_id), "UPDATE", "REQUEST", req.id)
    return req


@atomic
def submit_request(request_id, user_id) -> Request:
    req = _lock_request(request_id)
    if req.requested_by != int(user_id):
        raise Forbidden("Only the requester can submit this request", request_id=req.id)
    lifecycle.move(req, RequestStatus.SUBMITTED, "submit")
    audit_dao.log_action(int(user_id), "SUBMIT", "REQUEST", req.id)
    return req


# ---------- review ----------
def _approved_qty(raw, already_issued, **context) -> Decimal:
    approved = dec(raw, "qty_approved")
    if approved < 0:
        raise ValidationError("qty_approved cannot be negative", **context)
    if approved < dec(already_issued):
        raise ValidationError("qty_approved cannot drop below the quantity already issued", **context)
    return approved


def _apply_modifications(req: Request, items: List[RequestItem], modifications, items_to_add) -> None:
    by_id = {i.id: i for i in items}
    for raw in modifications or []:
        item_id = as_int(raw.get("request_item_id", raw.get("id")), "request_item_id")
        item = by_id.get(item_id)
        if item is None:
            raise NotFound("Request item", item_id, request_id=req.id)
        if raw.get("qty_requested") is not None:
            item.qty_requested = positive(raw["qty_requested"], "qty_requested")
        if raw.get("qty_approved") is not None:
            item.qty_approved = _approved_qty(raw["qty_approved"], item.qty_issued, request_item_id=item_id)
    if items_to_add:
        for raw, item in zip(items_to_add, _build_items(items_to_add)):
            if raw.get("qty_approved") is not None:
                item.qty_approved = _approved_qty(raw["qty_approved"], 0, material_id=item.material_id)
            req.items.append(item)


@atomic
def review_request(
    request_id,
    reviewer_id,
    level,
    action,
    comment: str | None = None,
    item_modifications: Optional[List[Dict]] = None,
    items_to_add: Optional[List[Dict]] = None,
) -> Approval:
    """Record one reviewer decision and move the request accordingly."""
    try:
        level = ApprovalLevel((level or "").upper()) if not isinstance(level, ApprovalLevel) else level
        action = ApprovalAction((action or "").upper()) if not isinstance(action, ApprovalAction) else action
    except ValueError:
        raise ValidationError("Unknown approval level or action", level=str(level), action=str(action))

    req = _lock_request(request_id)
    reviewer = _user(reviewer_id)
    if not reviewer.has_role(LEVEL_ROLES[level]):
        raise Forbidden(
            f"{level.value} review requires role {LEVEL_ROLES[level].value}",
            request_id=req.id,
            reviewer_id=reviewer.id,
            level=level.value,
        )

    attempted = f"{level.value} {action.value}"
    target = lifecycle.review_target(req.status, level, action)
    if target is None:
        raise InvalidTransition(req.id, req.status, attempted)

    items = _lock_items(req)
    if action != ApprovalAction.REJECTED:
        _apply_modifications(req, items, item_modifications, items_to_add)
    if target == RequestStatus.APPROVED:
        for item in req.items:
            if item.qty_approved is None:
                item.qty_approved = item.qty_requested
    for item in req.items:
        if item.qty_approved is not None:
            item.qty_remaining = dec(item.qty_approved) - dec(item.qty_issued)

    approval = Approval(
        request_id=req.id,
        level=level,
        reviewer_id=reviewer.id,
        action=action,
        comment=comment,
    )
    db.session.add(approval)
    lifecycle.move(req, target, attempted)
    audit_dao.log_action(
        reviewer.id,
        "REVIEW",
        "REQUEST",
        req.id,
        {"level": level.value, "action": action.value, "status": target.value},
    )
    return approval


# ---------- issuing ----------
def _check_issuable(req: Request) -> None:
    if req.status not in lifecycle.ISSUABLE:
        raise InvalidTransition(req.id, req.status, "issue")


def _begin_issuing(req: Request) -> None:
    if req.status in (RequestStatus.APPROVED, RequestStatus.VERIFIED):
        lifecycle.move(req, RequestStatus.ISSUED_FROM_APPROVED, "start issue")


@atomic
def start_issue(request_id, user_id) -> Request:
    req = _lock_request(request_id)
    lifecycle.move(req, RequestStatus.ISSUED_FROM_APPROVED, "start issue")
    audit_dao.log_action(int(user_id), "START_ISSUE", "REQUEST", req.id)
    return req


def _issue(req: Request, store_id, wanted: "OrderedDict[int, Decimal]", issued_by) -> Issue:
    """Issue `wanted` (request item id -> qty) out of one store as a single Issue document."""
    _check_issuable(req)
    store_id = as_int(store_id, "store_id")
    if db.session.get(Store, store_id) is None:
        raise NotFound("Store", store_id)
    issuer = _user(issued_by)

    items = {i.id: i for i in _lock_items(req)}
    # validate every line before touching anything
    for item_id, qty in wanted.items():
        item = items.get(item_id)
        if item is None:
            raise NotFound("Request item", item_id, request_id=req.id)
        approved = dec(item.qty_approved)
        issued = dec(item.qty_issued)
        if issued + qty > approved:
            raise OverIssue(
                f"Cannot issue {qty}: approved {approved}, already issued {issued}",
                request_id=req.id,
                request_item_id=item.id,
                qty_approved=str(approved),
                qty_issued=str(issued),
                requested=str(qty),
            )

    _begin_issuing(req)
    issue = Issue(
        request_id=req.id,
        store_id=store_id,
        issued_by=issuer.id,
        issued_to=req.requested_by,
    )
    db.session.add(issue)
    db.session.flush()
    issue.issue_no = ref_no("ISS", issue.id, issue.created_at)

    now = datetime.utcnow()
    lines = sorted(wanted.items(), key=lambda kv: (items[kv[0]].material_id, kv[0]))
    for item_id, qty in lines:
        item = items[item_id]
        price = item.material.unit_price if item.material else None
        inventory_dao.apply_movement(
            store_id,
            item.material_id,
            MovementType.OUT,
            IssueRef(issue.id),
            qty,
            unit_price=price,
            notes=f"{issue.issue_no} for {req.ref_no}",
            created_by=issuer.id,
        )
        item.qty_issued = dec(item.qty_issued) + qty
        item.qty_remaining = dec(item.qty_approved) - item.qty_issued
        item.issued_at = now
        item.issued_by = issuer.id
        db.session.add(
            IssueItem(
                issue_id=issue.id,
                request_item_id=item.id,
                material_id=item.material_id,
                unit_id=item.unit_id,
                qty_issued=qty,
                unit_price=price,
            )
        )

    target = lifecycle.issuance_status(items.values())
    lifecycle.move(req, target, "issue")
    if target == RequestStatus.ISSUED:
        req.issued_at = now
        req.issued_by = issuer.id
    audit_dao.log_action(
        issuer.id,
        "ISSUE",
        "REQUEST",
        req.id,
        {
            "issue_no": issue.issue_no,
            "store_id": store_id,
            "lines": [{"request_item_id": i, "qty": str(q)} for i, q in lines],
        },
    )
    return issue


@atomic
def issue_against_item(request_item_id, qty, store_id, issued_by) -> RequestItem:
    qty = positive(qty, "qty")
    item = db.session.get(RequestItem, as_int(request_item_id, "request_item_id"))
    if item is None:
        raise NotFound("Request item", request_item_id)
    req = _lock_request(item.request_id)
    _issue(req, store_id, OrderedDict([(item.id, qty)]), issued_by)
    return item


@atomic
def issue_materials(request_id, store_id, lines: List[Dict], issued_by) -> Issue:
    """Issue several request items at once; all lines succeed or none do."""
    if not lines:
        raise ValidationError("At least one line is required", field="items")
    wanted: "OrderedDict[int, Decimal]" = OrderedDict()
    for idx, raw in enumerate(lines):
        item_id = as_int(raw.get("request_item_id", raw.get("item_id")), f"items[{idx}].request_item_id")
        qty = positive(raw.get("qty", raw.get("qty_issued")), f"items[{idx}].qty")
        wanted[item_id] = wanted.get(item_id, Decimal("0")) + qty
    req = _lock_request(request_id)
    return _issue(req, store_id, wanted, issued_by)


# ---------- receipt ----------
@atomic
def receive_request(request_id, received_by, lines: Optional[List[Dict]] = None) -> Request:
    """Site confirms delivery. Without `lines` everything issued is taken as received."""
    req = _lock_request(request_id)
    receiver = _user(received_by)
    if req.status not in lifecycle.RECEIVABLE:
        raise InvalidTransition(req.id, req.status, "receive")
    if receiver.id != req.requested_by and not receiver.has_role(RoleName.SITE_ENGINEER, RoleName.ADMIN):
        raise Forbidden("Only the site can confirm receipt", request_id=req.id)

    items = {i.id: i for i in _lock_items(req)}
    if lines:
        wanted = {}
        for idx, raw in enumerate(lines):
            item_id = as_int(raw.get("request_item_id", raw.get("item_id")), f"items[{idx}].request_item_id")
            wanted[item_id] = wanted.get(item_id, Decimal("0")) + positive(
                raw.get("qty_received", raw.get("qty")), f"items[{idx}].qty_received"
            )
    else:
        wanted = {
            i.id: dec(i.qty_issued) - dec(i.qty_received)
            for i in items.values()
            if dec(i.qty_issued) > dec(i.qty_received)
        }

    now = datetime.utcnow()
    for item_id, qty in wanted.items():
        item = items.get(item_id)
        if item is None:
            raise NotFound("Request item", item_id, request_id=req.id)
        received = dec(item.qty_received) + qty
        if received > dec(item.qty_issued):
            raise ValidationError(
                f"Cannot receive {received}: only {item.qty_issued} issued",
                request_item_id=item.id,
                qty_issued=str(item.qty_issued),
                qty_received=str(received),
            )
        item.qty_received = received
        item.received_at = now
        item.received_by = receiver.id

    lifecycle.move(req, RequestStatus.RECEIVED, "receive")
    req.received_at = now
    req.received_by = receiver.id
    audit_dao.log_action(
        receiver.id, "RECEIVE", "REQUEST", req.id, {str(k): str(v) for k, v in wanted.items()}
    )
    if lifecycle.fully_received(items.values()):
        _close(req, receiver.id, "auto close")
    return req


def _close(req: Request, user_id: int, attempted: str) -> None:
    lifecycle.move(req, RequestStatus.CLOSED, attempted)
    req.closed_at = datetime.utcnow()
    req.closed_by = user_id
    audit_dao.log_action(user_id, "CLOSE", "REQUEST", req.id)


@atomic
def close_request(request_id, user_id) -> Request:
    req = _lock_request(request_id)
    _close(req, _user(user_id).id, "close")
    return req
