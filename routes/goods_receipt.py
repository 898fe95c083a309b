from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import goods_receipt as gr_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import gr_dict, ok

gr_bp = Blueprint("goods_receipts", __name__, url_prefix="/api/goods-receipts")


@gr_bp.route("")
@login_required
def gr_list():
    args = request.args
    grs, pagination = gr_dao.list_grs(
        args.get("page", 1), args.get("limit", 10), args.get("store_id"), args.get("po_id")
    )
    return ok([gr_dict(g) for g in grs], pagination=pagination)


@gr_bp.route("/<int:gr_id>")
@login_required
def gr_detail(gr_id: int):
    return ok(gr_dict(gr_dao.get_gr(gr_id)))


@gr_bp.route("", methods=["POST"])
@roles_required(RoleName.PROCUREMENT, RoleName.STOREKEEPER)
def gr_add():
    data = request.get_json(silent=True) or {}
    gr = gr_dao.create_gr(
        data.get("store_id"),
        current_user.id,
        data.get("items") or [],
        po_id=data.get("purchase_order_id") or data.get("po_id"),
        notes=data.get("notes"),
    )
    return ok(gr_dict(gr), f"Goods receipt {gr.ref_no} booked", status=201)
