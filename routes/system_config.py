from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import system_config as config_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.serializers import config_dict, ok

config_bp = Blueprint("system_configs", __name__, url_prefix="/api/system-configs")


def _out(cfg):
    return config_dict(cfg, config_dao.typed_value(cfg))


@config_bp.route("")
@roles_required(RoleName.ADMIN)
def config_list():
    raw = request.args.get("is_public")
    is_public = None if raw is None else raw.lower() == "true"
    configs = config_dao.list_configs(request.args.get("category"), is_public)
    return ok([_out(c) for c in configs])


@config_bp.route("/public")
@login_required
def config_public():
    return ok([_out(c) for c in config_dao.list_configs(request.args.get("category"), True)])


@config_bp.route("/<key>")
@login_required
def config_detail(key: str):
    if current_user.has_role(RoleName.ADMIN):
        return ok(_out(config_dao.get_config(key)))
    return ok(_out(config_dao.get_public_config(key)))


@config_bp.route("", methods=["POST"])
@roles_required(RoleName.ADMIN)
def config_add():
    data = request.get_json(silent=True) or {}
    cfg = config_dao.create_config(
        data.get("key"),
        data.get("value"),
        value_type=data.get("type"),
        category=data.get("category"),
        description=data.get("description"),
        is_editable=data.get("is_editable", True),
        is_public=data.get("is_public", False),
        validation_rules=data.get("validation_rules"),
        created_by=current_user.id,
    )
    return ok(_out(cfg), f"Configuration {cfg.key} created", status=201)


@config_bp.route("/<key>", methods=["PUT"])
@roles_required(RoleName.ADMIN)
def config_update(key: str):
    data = request.get_json(silent=True) or {}
    cfg = config_dao.set_config(key, data.get("value"), current_user.id)
    return ok(_out(cfg), f"Configuration {key} updated")
