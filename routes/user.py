from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import site as site_dao
from dao import user as user_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import assignment_dict, ok, role_dict, site_dict, user_dict

user_bp = Blueprint("users", __name__, url_prefix="/api")


@user_bp.route("/roles")
@login_required
def role_list():
    return ok([role_dict(r) for r in user_dao.list_roles()])


@user_bp.route("/users")
@roles_required(RoleName.ADMIN)
def user_list():
    args = request.args
    users, pagination = user_dao.list_users(
        args.get("page", 1),
        args.get("limit", 10),
        role=args.get("role"),
        search=args.get("search"),
    )
    return ok([user_dict(u) for u in users], pagination=pagination)


@user_bp.route("/users/<int:user_id>")
@roles_required(RoleName.ADMIN)
def user_detail(user_id: int):
    return ok(user_dict(user_dao.get_user(user_id)))


@user_bp.route("/users", methods=["POST"])
@roles_required(RoleName.ADMIN)
def user_add():
    data = request.get_json(silent=True) or {}
    user = user_dao.create_user(
        data.get("full_name"),
        data.get("email"),
        data.get("password"),
        data.get("role") or data.get("role_id"),
        phone=data.get("phone"),
    )
    return ok(user_dict(user), "User created", status=201)


@user_bp.route("/users/<int:user_id>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def user_edit(user_id: int):
    data = request.get_json(silent=True) or {}
    return ok(user_dict(user_dao.update_user(user_id, **data)), "User updated")


@user_bp.route("/users/<int:user_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def user_deactivate(user_id: int):
    return ok(user_dict(user_dao.deactivate_user(user_id)), "User deactivated")


@user_bp.route("/users/<int:user_id>/sites")
@login_required
def user_sites(user_id: int):
    if user_id != current_user.id and not current_user.has_role(RoleName.ADMIN):
        user_id = current_user.id
    return ok([assignment_dict(a) for a in site_dao.user_assignments(user_id)])


@user_bp.route("/users/<int:user_id>/sites", methods=["POST"])
@roles_required(RoleName.ADMIN)
def user_assign_site(user_id: int):
    data = request.get_json(silent=True) or {}
    a = site_dao.assign_user(user_id, data.get("site_id"), assigned_by=current_user.id)
    return ok(assignment_dict(a), "Site assigned", status=201)


@user_bp.route("/users/<int:user_id>/sites/<int:site_id>", methods=["DELETE"])
@roles_required(RoleName.ADMIN)
def user_unassign_site(user_id: int, site_id: int):
    return ok(assignment_dict(site_dao.unassign_user(user_id, site_id)), "Site unassigned")


@user_bp.route("/me/sites")
@login_required
def my_available_sites():
    return ok([site_dict(s) for s in site_dao.available_sites(current_user)])
