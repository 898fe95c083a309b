from flask import Blueprint, request
from flask_login import login_required
from dao import supplier as supplier_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import ok, supplier_dict

supplier_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@supplier_bp.route("")
@login_required
def supplier_list():
    include_inactive = request.args.get("all", "").lower() in ("1", "true")
    return ok([supplier_dict(s) for s in supplier_dao.list_suppliers(include_inactive)])


@supplier_bp.route("/<int:supplier_id>")
@login_required
def supplier_detail(supplier_id: int):
    return ok(supplier_dict(supplier_dao.get_supplier(supplier_id)))


@supplier_bp.route("", methods=["POST"])
@roles_required(RoleName.PROCUREMENT)
def supplier_add():
    data = dict(request.get_json(silent=True) or {})
    s = supplier_dao.create_supplier(data.pop("name", None), **data)
    return ok(supplier_dict(s), "Supplier created", status=201)


@supplier_bp.route("/<int:supplier_id>", methods=["PUT"])
@roles_required(RoleName.PROCUREMENT)
def supplier_edit(supplier_id: int):
    data = request.get_json(silent=True) or {}
    return ok(supplier_dict(supplier_dao.update_supplier(supplier_id, **data)), "Supplier updated")


@supplier_bp.route("/<int:supplier_id>", methods=["DELETE"])
@roles_required(RoleName.PROCUREMENT)
def supplier_delete(supplier_id: int):
    supplier_dao.delete_supplier(supplier_id)
    return ok(message="Supplier deleted")
