# admin/setup.py
from flask import abort, redirect, url_for
from flask_login import current_user, logout_user
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.theme import Bootstrap4Theme
from configs import db
from db.models.user import RoleName


def _is_admin() -> bool:
    return current_user.is_authenticated and current_user.has_role(RoleName.ADMIN)


def _deny():
    # API login lives at /api/auth/login; the back office has no form of its own
    abort(401 if not current_user.is_authenticated else 403)


class MyAdminIndex(AdminIndexView):
    @expose("/logout")
    def admin_logout(self):
        if current_user.is_authenticated:
            logout_user()
        return redirect(url_for("main.home"))

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        return _deny()


class SecureModelView(ModelView):
    can_view_details = True
    can_export = True

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        return _deny()


class ReadOnlyView(SecureModelView):
    """Ledger and audit rows are append-only."""

    can_create = False
    can_edit = False
    can_delete = False


class UserView(SecureModelView):
    column_exclude_list = ["password_hash"]
    form_excluded_columns = ["password_hash", "site_assignments"]
    column_searchable_list = ["full_name", "email"]
    column_filters = ["active", "role_id"]


class RequestView(SecureModelView):
    # status moves through the workflow API only
    can_create = False
    can_delete = False
    column_searchable_list = ["ref_no"]
    column_filters = ["status", "site_id", "created_at"]
    column_list = ["id", "ref_no", "site", "requester", "status", "created_at"]
    form_columns = ["notes"]


class StockView(SecureModelView):
    can_create = False
    can_delete = False
    column_filters = ["store_id", "material_id", "low_stock_alert"]
    column_list = ["id", "store", "material", "qty_on_hand", "reorder_level", "low_stock_threshold", "low_stock_alert"]
    form_columns = ["reorder_level", "low_stock_threshold"]


class PurchaseOrderView(SecureModelView):
    # status moves through the purchase order API only
    can_create = False
    can_delete = False
    column_searchable_list = ["ref_no"]
    column_filters = ["status", "created_at", "supplier_id"]
    column_list = ["id", "ref_no", "supplier", "status", "total_amount", "created_at"]
    form_columns = ["supplier"]


class SystemConfigView(ReadOnlyView):
    # values are type-checked by the configuration API
    column_searchable_list = ["key"]
    column_filters = ["category", "is_public", "is_editable"]
    column_list = ["key", "value", "type", "category", "is_editable", "is_public", "updated_at"]


def init_admin(app):
    admin = Admin(
        app,
        name="Materials Admin",
        theme=Bootstrap4Theme(),
        index_view=MyAdminIndex(url="/manage"),
        url="/manage",
    )
    # imported here to keep admin setup out of the model import cycle
    from db.models.user import User, Role
    from db.models.site import Site, SiteAssignment
    from db.models.store import Store
    from db.models.unit import Unit
    from db.models.material import Category, Material
    from db.models.request import Approval, Request
    from db.models.issue import Issue
    from db.models.inventory import Stock, StockHistory, StockMovement
    from db.models.supplier import Supplier
    from db.models.purchase import PurchaseOrder
    from db.models.goods_receipt import GoodsReceipt
    from db.models.audit import AuditLog
    from db.models.system_config import SystemConfig

    views = [
        (UserView, User, "System", "Users"),
        (ReadOnlyView, Role, "System", "Roles"),
        (ReadOnlyView, AuditLog, "System", "Audit Logs"),
        (SystemConfigView, SystemConfig, "System", "Configuration"),
        (SecureModelView, Site, "Master Data", "Sites"),
        (SecureModelView, SiteAssignment, "Master Data", "Site Assignments"),
        (SecureModelView, Store, "Master Data", "Stores"),
        (SecureModelView, Unit, "Master Data", "Units"),
        (SecureModelView, Category, "Master Data", "Categories"),
        (SecureModelView, Material, "Master Data", "Materials"),
        (RequestView, Request, "Requests", "Requests"),
        (ReadOnlyView, Approval, "Requests", "Approvals"),
        (ReadOnlyView, Issue, "Requests", "Issues"),
        (StockView, Stock, "Stock", "Stock"),
        (ReadOnlyView, StockMovement, "Stock", "Movements"),
        (ReadOnlyView, StockHistory, "Stock", "History"),
        (SecureModelView, Supplier, "Procurement", "Suppliers"),
        (PurchaseOrderView, PurchaseOrder, "Procurement", "Purchase Orders"),
        (ReadOnlyView, GoodsReceipt, "Procurement", "Goods Receipts"),
    ]
    for view_cls, model, category, name in views:
        admin.add_view(
            view_cls(
                model,
                db.session,
                category=category,
                endpoint=f"admin_{model.__tablename__}",
                name=name,
            )
        )
    return admin
