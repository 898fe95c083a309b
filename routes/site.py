from flask import Blueprint, request
from flask_login import login_required
from dao import site as site_dao
from dao import store as store_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import ok, site_dict, store_dict

site_bp = Blueprint("sites", __name__, url_prefix="/api")


# ---------- sites ----------
@site_bp.route("/sites")
@login_required
def site_list():
    sites, pagination = site_dao.list_sites(
        request.args.get("page", 1), request.args.get("limit", 10), request.args.get("search")
    )
    return ok([site_dict(s) for s in sites], pagination=pagination)


@site_bp.route("/sites/<int:site_id>")
@login_required
def site_detail(site_id: int):
    return ok(site_dict(site_dao.get_site(site_id)))


@site_bp.route("/sites", methods=["POST"])
@roles_required(RoleName.ADMIN)
def site_add():
    data = request.get_json(silent=True) or {}
    s = site_dao.create_site(data.get("name"), data.get("code"), data.get("location"))
    return ok(site_dict(s), "Site created", status=201)


@site_bp.route("/sites/<int:site_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def site_edit(site_id: int):
    data = request.get_json(silent=True) or {}
    return ok(site_dict(site_dao.update_site(site_id, **data)), "Site updated")


@site_bp.route("/sites/<int:site_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def site_delete(site_id: int):
    site_dao.delete_site(site_id)
    return ok(message="Site deleted")


# ---------- stores ----------
@site_bp.route("/stores")
@login_required
def store_list():
    return ok([store_dict(s) for s in store_dao.list_stores()])


@site_bp.route("/stores/<int:store_id>")
@login_required
def store_detail(store_id: int):
    return ok(store_dict(store_dao.get_store(store_id)))


@site_bp.route("/stores", methods=["POST"])
@roles_required(RoleName.ADMIN)
def store_add():
    data = dict(request.get_json(silent=True) or {})
    s = store_dao.create_store(data.pop("code", None), data.pop("name", None), data.pop("location", None), **data)
    return ok(store_dict(s), "Store created", status=201)


@site_bp.route("/stores/<int:store_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def store_edit(store_id: int):
    data = request.get_json(silent=True) or {}
    return ok(store_dict(store_dao.update_store(store_id, **data)), "Store updated")


@site_bp.route("/stores/<int:store_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def store_delete(store_id: int):
    store_dao.delete_store(store_id)
    return ok(message="Store deleted")
