from flask import Blueprint, request
from flask_login import current_user, login_required
from dao import inventory as inv_dao
from db.models.inventory import source_ref, SourceType
from db.models.user import RoleName
from utils.auth import roles_required
from utils.errors import ValidationError
from utils.serializers import history_dict, movement_dict, ok, plain, stock_dict

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in ("1", "true", "yes")


@stock_bp.route("")
@login_required
def stock_list():
    args = request.args
    rows, pagination = inv_dao.list_stock(
        args.get("page", 1),
        args.get("limit", 10),
        store_id=args.get("store_id"),
        material_id=args.get("material_id"),
        low_stock=_flag("low_stock"),
    )
    return ok([stock_dict(s) for s in rows], pagination=pagination)


@stock_bp.route("/<int:stock_id>")
@login_required
def stock_detail(stock_id: int):
    return ok(stock_dict(inv_dao.get_stock(stock_id)))


@stock_bp.route("", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def stock_add():
    data = request.get_json(silent=True) or {}
    stock = inv_dao.create_stock(
        data.get("store_id"),
        data.get("material_id"),
        qty_on_hand=data.get("qty_on_hand", 0),
        reorder_level=data.get("reorder_level", 0),
        low_stock_threshold=data.get("low_stock_threshold"),
        created_by=current_user.id,
    )
    return ok(stock_dict(stock), "Stock record created", status=201)


@stock_bp.route("/<int:stock_id>/adjust", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def stock_adjust(stock_id: int):
    data = request.get_json(silent=True) or {}
    stock, mv = inv_dao.adjust_stock(
        stock_id,
        qty_on_hand=data.get("qty_on_hand"),
        delta=data.get("delta"),
        notes=data.get("notes"),
        created_by=current_user.id,
    )
    return ok(
        {"stock": stock_dict(stock), "movement": movement_dict(mv) if mv else None},
        "Stock adjusted" if mv else "No change",
    )


@stock_bp.route("/<int:stock_id>", methods=["PUT"])
@roles_required(RoleName.STOREKEEPER)
def stock_settings(stock_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("qty_on_hand") is not None:
        raise ValidationError("Quantities change through adjustments only", field="qty_on_hand")
    stock = inv_dao.update_stock_settings(
        stock_id, data.get("reorder_level"), data.get("low_stock_threshold")
    )
    return ok(stock_dict(stock), "Stock settings updated")


@stock_bp.route("/<int:stock_id>/threshold", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def stock_threshold(stock_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("low_stock_threshold") is None:
        raise ValidationError("low_stock_threshold is required", field="low_stock_threshold")
    stock = inv_dao.update_stock_settings(stock_id, low_stock_threshold=data["low_stock_threshold"])
    return ok(stock_dict(stock), "Threshold updated")


@stock_bp.route("/<int:stock_id>/acknowledge", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def stock_acknowledge(stock_id: int):
    return ok(stock_dict(inv_dao.acknowledge_alert(stock_id)), "Alert acknowledged")


@stock_bp.route("/alerts")
@login_required
def stock_alerts():
    rows, pagination = inv_dao.list_stock(
        request.args.get("page", 1),
        request.args.get("limit", 50),
        store_id=request.args.get("store_id"),
        low_stock=True,
    )
    return ok([stock_dict(s) for s in rows], pagination=pagination)


@stock_bp.route("/recommendations")
@roles_required(RoleName.STOREKEEPER, RoleName.PROCUREMENT)
def stock_recommendations():
    recs = inv_dao.procurement_recommendations(request.args.get("store_id"))
    return ok([{**r, "stock": stock_dict(r["stock"])} for r in recs])


@stock_bp.route("/movements")
@login_required
def stock_movements():
    args = request.args
    rows, pagination = inv_dao.list_movements(
        args.get("page", 1),
        args.get("limit", 10),
        store_id=args.get("store_id"),
        material_id=args.get("material_id"),
        movement_type=args.get("movement_type"),
        source_type=args.get("source_type"),
        source_id=args.get("source_id"),
    )
    return ok([movement_dict(m) for m in rows], pagination=pagination)


@stock_bp.route("/movements", methods=["POST"])
@roles_required(RoleName.STOREKEEPER)
def stock_record_movement():
    """Post a raw ledger entry against an existing source document."""
    data = request.get_json(silent=True) or {}
    try:
        source = source_ref(SourceType((data.get("source_type") or "").upper()), data.get("source_id"))
    except (TypeError, ValueError):
        raise ValidationError("source_type and source_id are required", field="source_type")
    inv_dao.check_source(source, data.get("store_id"), data.get("material_id"))
    mv = inv_dao.record_movement(
        data.get("store_id"),
        data.get("material_id"),
        data.get("movement_type"),
        source,
        data.get("qty"),
        unit_price=data.get("unit_price"),
        notes=data.get("notes"),
        created_by=current_user.id,
        decrease=bool(data.get("decrease")),
    )
    return ok(movement_dict(mv), "Movement recorded", status=201)


@stock_bp.route("/<int:stock_id>/history")
@login_required
def stock_history(stock_id: int):
    rows, pagination = inv_dao.list_history(
        stock_id, request.args.get("page", 1), request.args.get("limit", 20)
    )
    return ok([history_dict(h) for h in rows], pagination=pagination)


@stock_bp.route("/reconcile")
@roles_required(RoleName.STOREKEEPER)
def stock_reconcile():
    rows = inv_dao.reconcile(request.args.get("store_id"), request.args.get("material_id"))
    return ok([plain(r) for r in rows])


@stock_bp.route("/rebuild", methods=["POST"])
@roles_required(RoleName.ADMIN)
def stock_rebuild():
    data = request.get_json(silent=True) or {}
    keys = data.get("keys")
    changed = inv_dao.rebuild_stock([(k["store_id"], k["material_id"]) for k in keys] if keys else None)
    return ok({"rebuilt": changed}, f"{changed} stock record(s) rebuilt")
