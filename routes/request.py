from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import request as request_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import (
    approval_dict,
    issue_dict,
    issue_item_dict,
    ok,
    request_dict,
    request_item_dict,
)

request_bp = Blueprint("requests", __name__, url_prefix="/api/requests")


def _page_args():
    return request.args.get("page", 1), request.args.get("limit", 10)


@request_bp.route("")
@login_required
def request_list():
    page, limit = _page_args()
    reqs, pagination = request_dao.list_requests(
        page,
        limit,
        status=request.args.get("status"),
        site_id=request.args.get("site_id"),
        requested_by=request.args.get("requested_by"),
        search=request.args.get("search"),
    )
    return ok([request_dict(r) for r in reqs], pagination=pagination)


@request_bp.route("/my")
@login_required
def request_mine():
    page, limit = _page_args()
    reqs, pagination = request_dao.my_requests(current_user.id, page, limit, request.args.get("status"))
    return ok([request_dict(r) for r in reqs], pagination=pagination)


@request_bp.route("/site/<int:site_id>")
@login_required
def request_by_site(site_id: int):
    page, limit = _page_args()
    reqs, pagination = request_dao.requests_by_site(site_id, page, limit, request.args.get("status"))
    return ok([request_dict(r) for r in reqs], pagination=pagination)


@request_bp.route("/issuable")
@roles_required(RoleName.STOREKEEPER)
def request_issuable():
    page, limit = _page_args()
    reqs, pagination = request_dao.issuable_requests(page, limit, request.args.get("site_id"))
    return ok([request_dict(r, detail=True) for r in reqs], pagination=pagination)


@request_bp.route("/issued-materials")
@login_required
def request_issued_materials():
    page, limit = _page_args()
    lines, pagination = request_dao.issued_materials(
        page,
        limit,
        store_id=request.args.get("store_id"),
        site_id=request.args.get("site_id"),
        material_id=request.args.get("material_id"),
    )
    return ok([issue_item_dict(ln) for ln in lines], pagination=pagination)


@request_bp.route("/<int:request_id>")
@login_required
def request_detail(request_id: int):
    return ok(request_dict(request_dao.get_request(request_id), detail=True))


@request_bp.route("/<int:request_id>/issues")
@login_required
def request_issues(request_id: int):
    request_dao.get_request(request_id)
    page, limit = _page_args()
    issues, pagination = request_dao.list_issues(page, limit, request_id=request_id)
    return ok([issue_dict(i) for i in issues], pagination=pagination)


@request_bp.route("", methods=["POST"])
@roles_required(RoleName.SITE_ENGINEER)
def request_add():
    data = request.get_json(silent=True) or {}
    req = request_dao.create_request(
        data.get("site_id"), current_user.id, data.get("notes"), data.get("items") or []
    )
    return ok(request_dict(req, detail=True), f"Request {req.ref_no} created", status=201)


@request_bp.route("/<int:request_id>", methods=["PUT"])
@roles_required(RoleName.SITE_ENGINEER)
def request_edit(request_id: int):
    data = request.get_json(silent=True) or {}
    req = request_dao.update_request(request_id, current_user.id, data.get("notes"), data.get("items"))
    return ok(request_dict(req, detail=True), "Request updated")


@request_bp.route("/<int:request_id>/submit", methods=["POST"])
@roles_required(RoleName.SITE_ENGINEER)
def request_submit(request_id: int):
    req = request_dao.submit_request(request_id, current_user.id)
    return ok(request_dict(req), "Request submitted")


@request_bp.route("/<int:request_id>/review", methods=["POST"])
@login_required
def request_review(request_id: int):
    data = request.get_json(silent=True) or {}
    approval = request_dao.review_request(
        request_id,
        current_user.id,
        data.get("level"),
        data.get("action"),
        comment=data.get("comment"),
        item_modifications=data.get("item_modifications"),
        items_to_add=data.get("items_to_add"),
    )
    req = request_dao.get_request(request_id)
    return ok(
        {"approval": approval_dict(approval), "request": request_dict(req, detail=True)},
        f"Request {req.status.value}",
    )


@request_bp.route("/<int:request_id>/start-issue", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def request_start_issue(request_id: int):
    req = request_dao.start_issue(request_id, current_user.id)
    return ok(request_dict(req), "Issuing started")


@request_bp.route("/<int:request_id>/issue", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def request_issue(request_id: int):
    data = request.get_json(silent=True) or {}
    issue = request_dao.issue_materials(
        request_id, data.get("store_id"), data.get("items") or [], current_user.id
    )
    req = request_dao.get_request(request_id)
    return ok(
        {"issue": issue_dict(issue), "request": request_dict(req, detail=True)},
        f"Issued {issue.issue_no}",
    )


@request_bp.route("/items/<int:item_id>/issue", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def request_item_issue(item_id: int):
    data = request.get_json(silent=True) or {}
    item = request_dao.issue_against_item(item_id, data.get("qty"), data.get("store_id"), current_user.id)
    return ok(request_item_dict(item), "Item issued")


@request_bp.route("/<int:request_id>/receive", methods=["POST"])
@roles_required(RoleName.SITE_ENGINEER)
def request_receive(request_id: int):
    data = request.get_json(silent=True) or {}
    req = request_dao.receive_request(request_id, current_user.id, data.get("items"))
    return ok(request_dict(req, detail=True), f"Request {req.status.value}")


@request_bp.route("/<int:request_id>/close", methods=["POST"])
@roles_required(RoleName.SITE_ENGINEER)
def request_close(request_id: int):
    req = request_dao.close_request(request_id, current_user.id)
    return ok(request_dict(req), "Request closed")
