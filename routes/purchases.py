# routes/purchases.py
from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import purchase as po_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import ok, plain, po_dict

purchase_bp = Blueprint("purchases", __name__, url_prefix="/api/purchase-orders")


@purchase_bp.route("")
@login_required
def purchases_list():
    args = request.args
    pos, pagination = po_dao.list_purchase_orders(
        args.get("page", 1), args.get("limit", 10), args.get("status"), args.get("supplier_id")
    )
    return ok([po_dict(p) for p in pos], pagination=pagination)


@purchase_bp.route("/<int:po_id>")
@login_required
def purchases_detail(po_id: int):
    return ok(po_dict(po_dao.get_po(po_id)))


@purchase_bp.route("/<int:po_id>/lines")
@login_required
def po_lines_api(po_id: int):
    """Remaining quantities per PO line, used when booking a goods receipt."""
    return ok([plain(r) for r in po_dao.po_lines_with_remaining(po_id) if r["remaining"] > 0])


@purchase_bp.route("", methods=["POST"])
@roles_required(RoleName.PROCUREMENT)
def purchases_add():
    data = request.get_json(silent=True) or {}
    po = po_dao.create_po(
        data.get("supplier_id"),
        current_user.id,
        data.get("items") or [],
        request_id=data.get("request_id"),
    )
    return ok(po_dict(po), "Purchase order created", status=201)


@purchase_bp.route("/<int:po_id>", methods=["PUT"])
@roles_required(RoleName.PROCUREMENT)
def purchases_edit(po_id: int):
    data = request.get_json(silent=True) or {}
    po = po_dao.update_po(po_id, current_user.id, data.get("items"), data.get("supplier_id"))
    return ok(po_dict(po), "Purchase order updated")


@purchase_bp.route("/<int:po_id>/status", methods=["POST"])
@roles_required(RoleName.PROCUREMENT)
def purchases_status(po_id: int):
    data = request.get_json(silent=True) or {}
    po = po_dao.set_po_status(po_id, data.get("status"), current_user.id)
    return ok(po_dict(po), f"Purchase order {po.status.value}")
