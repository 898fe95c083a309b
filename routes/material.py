from flask import Blueprint, request
from flask_login import login_required
from dao import material as material_dao
from dao import unit as unit_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import category_dict, material_dict, ok, unit_dict

material_bp = Blueprint("materials", __name__, url_prefix="/api")


@material_bp.route("/materials")
@login_required
def material_list():
    args = request.args
    active = args.get("active")
    mats, pagination = material_dao.list_materials(
        args.get("page", 1),
        args.get("limit", 10),
        search=args.get("search"),
        category_id=args.get("category_id"),
        active=None if active is None else active.lower() in ("1", "true", "yes"),
    )
    return ok([material_dict(m) for m in mats], pagination=pagination)


@material_bp.route("/materials/<int:material_id>")
@login_required
def material_detail(material_id: int):
    return ok(material_dict(material_dao.get_material(material_id)))


@material_bp.route("/materials", methods=["POST"])
@roles_required(RoleName.ADMIN, RoleName.STOREKEEPER, RoleName.PROCUREMENT)
def material_add():
    data = dict(request.get_json(silent=True) or {})
    m = material_dao.create_material(data.pop("name", None), data.pop("unit_id", None), **data)
    return ok(material_dict(m), "Material created", status=201)


@material_bp.route("/materials/<int:material_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN, RoleName.STOREKEEPER, RoleName.PROCUREMENT)
def material_edit(material_id: int):
    data = request.get_json(silent=True) or {}
    return ok(material_dict(material_dao.update_material(material_id, **data)), "Material updated")


@material_bp.route("/materials/<int:material_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def material_delete(material_id: int):
    material_dao.delete_material(material_id)
    return ok(message="Material deleted")


# ---------- categories ----------
@material_bp.route("/categories")
@login_required
def category_list():
    return ok([category_dict(c) for c in material_dao.list_categories()])


@material_bp.route("/categories", methods=["POST"])
@roles_required(RoleName.ADMIN)
def category_add():
    data = request.get_json(silent=True) or {}
    c = material_dao.create_category(data.get("name"), data.get("parent_id"))
    return ok(category_dict(c), "Category created", status=201)


@material_bp.route("/categories/<int:category_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def category_edit(category_id: int):
    data = request.get_json(silent=True) or {}
    c = material_dao.update_category(category_id, data.get("name"), data.get("parent_id"))
    return ok(category_dict(c), "Category updated")


@material_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def category_delete(category_id: int):
    material_dao.delete_category(category_id)
    return ok(message="Category deleted")


# ---------- units ----------
@material_bp.route("/units")
@login_required
def unit_list():
    return ok([unit_dict(u) for u in unit_dao.list_units()])


@material_bp.route("/units", methods=["POST"])
@roles_required(RoleName.ADMIN)
def unit_add():
    data = request.get_json(silent=True) or {}
    return ok(unit_dict(unit_dao.create_unit(data.get("code"), data.get("name"))), "Unit created", status=201)


@material_bp.route("/units/<int:unit_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def unit_edit(unit_id: int):
    data = request.get_json(silent=True) or {}
    return ok(unit_dict(unit_dao.update_unit(unit_id, **data)), "Unit updated")


@material_bp.route("/units/<int:unit_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def unit_delete(unit_id: int):
    unit_dao.delete_unit(unit_id)
    return ok(message="Unit deleted")
