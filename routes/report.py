from datetime import datetime
from flask import Blueprint, request
from flask_login import login_required
from dao import audit as audit_dao
from dao import report as report_dao
from db.models.user import RoleName
from utils.auth import roles_required
from utils.errors import ValidationError
from utils.serializers import audit_dict, ok, plain

report_bp = Blueprint("reports", __name__, url_prefix="/api")


def _date(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date", field=name)


@report_bp.route("/reports/requests-by-status")
@login_required
def report_requests_by_status():
    return ok(report_dao.requests_per_status(request.args.get("site_id")))


@report_bp.route("/reports/stock-value")
@login_required
def report_stock_value():
    return ok([plain(r) for r in report_dao.stock_value_per_store()])


@report_bp.route("/reports/issued-by-site")
@login_required
def report_issued_by_site():
    rows = report_dao.issued_per_site(_date("from"), _date("to"))
    return ok([plain(r) for r in rows])


@report_bp.route("/reports/user-activity")
@roles_required(RoleName.PADIRI, RoleName.DIOCESAN_SITE_ENGINEER)
def report_user_activity():
    rows = report_dao.user_activity(request.args.get("user_id"), _date("from"), _date("to"))
    return ok(rows)


@report_bp.route("/reports/site-performance")
@roles_required(RoleName.PADIRI, RoleName.DIOCESAN_SITE_ENGINEER)
def report_site_performance():
    rows = report_dao.site_performance(request.args.get("site_id"), _date("from"), _date("to"))
    return ok([plain(r) for r in rows])


@report_bp.route("/audit-logs")
@roles_required(RoleName.ADMIN)
def audit_list():
    args = request.args
    logs, pagination = audit_dao.list_logs(
        args.get("page", 1), args.get("limit", 20), args.get("entity"), args.get("user_id")
    )
    return ok([audit_dict(a) for a in logs], pagination=pagination)
