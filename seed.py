# seed.py
from configs import db
from dao import system_config as config_dao
from dao import user as user_dao
from db.models.material import Category, Material
from db.models.site import Site
from db.models.store import Store
from db.models.supplier import Supplier
from db.models.system_config import SystemConfig
from db.models.unit import Unit
from app import app  # Flask app


# -------- Units --------
def seed_units():
    units = [
        ("BAG", "Bag (50kg)"),
        ("PCS", "Piece"),
        ("KG", "Kilogram"),
        ("M", "Metre"),
        ("M3", "Cubic metre"),
        ("L", "Litre"),
        ("ROLL", "Roll"),
        ("SHEET", "Sheet"),
    ]
    for code, name in units:
        u = Unit.query.filter_by(code=code).first()
        if not u:
            db.session.add(Unit(code=code, name=name))
        else:
            u.name = name
    db.session.commit()
    print("Units seeded/updated")


def get_unit_id(code: str) -> int:
    u = Unit.query.filter_by(code=code).first()
    if not u:
        raise RuntimeError(f"Unit '{code}' missing, run seed_units() first")
    return u.id


# -------- Categories --------
def seed_categories():
    tree = {
        "Structural": ["Cement & Concrete", "Steel"],
        "Finishing": ["Paint", "Tiles"],
        "Plumbing": [],
        "Electrical": [],
    }
    for parent_name, children in tree.items():
        parent = Category.query.filter_by(name=parent_name, parent_id=None).first()
        if not parent:
            parent = Category(name=parent_name)
            db.session.add(parent)
            db.session.flush()
        for child in children:
            if not Category.query.filter_by(name=child, parent_id=parent.id).first():
                db.session.add(Category(name=child, parent_id=parent.id))
    db.session.commit()
    print("Categories seeded")


def _category_id(name: str) -> int | None:
    c = Category.query.filter_by(name=name).first()
    return c.id if c else None


# -------- Materials --------
def seed_materials():
    materials = [
        # code, name, category, unit_code, unit_price, attrs
        ("MAT-CEM-425", "Portland cement 42.5N", "Cement & Concrete", "BAG", 12.50, {"packaging": "50kg bag"}),
        ("MAT-SAND", "River sand", "Cement & Concrete", "M3", 25.00, {}),
        ("MAT-REBAR-12", "Rebar Y12", "Steel", "PCS", 9.80, {"length_m": 12}),
        ("MAT-REBAR-16", "Rebar Y16", "Steel", "PCS", 15.40, {"length_m": 12}),
        ("MAT-IRON-SHEET", "Iron sheet G28", "Structural", "SHEET", 8.00, {"gauge": 28}),
        ("MAT-PAINT-WHT", "Emulsion paint white", "Paint", "L", 4.20, {"brand": "generic"}),
        ("MAT-PVC-110", "PVC pipe 110mm", "Plumbing", "PCS", 11.00, {"length_m": 6}),
        ("MAT-CABLE-2.5", "Copper cable 2.5mm", "Electrical", "ROLL", 38.00, {"length_m": 100}),
    ]
    for code, name, category, unit_code, price, attrs in materials:
        m = Material.query.filter_by(code=code).first()
        if not m:
            m = Material(code=code)
            db.session.add(m)
        m.name = name
        m.category_id = _category_id(category)
        m.unit_id = get_unit_id(unit_code)
        m.unit_price = price
        m.attrs = attrs
        m.active = True
    db.session.commit()
    print("Materials seeded/updated")


# -------- Sites & stores --------
def seed_sites_and_stores():
    for code, name, location in [
        ("SITE-001", "St. Joseph Parish Hall", "Kigali"),
        ("SITE-002", "Holy Family School Block B", "Huye"),
    ]:
        if not Site.query.filter_by(code=code).first():
            db.session.add(Site(code=code, name=name, location=location))
    for code, name, location in [
        ("ST-MAIN", "Main Store", "Diocese compound"),
        ("ST-HUYE", "Huye Store", "Huye"),
    ]:
        if not Store.query.filter_by(code=code).first():
            db.session.add(Store(code=code, name=name, location=location))
    db.session.commit()
    print("Sites and stores seeded")


# -------- Suppliers --------
def seed_suppliers():
    suppliers = [
        ("Cimerwa Ltd", "Sales desk", "+250700000001", "sales@example.com"),
        ("Steel Masters", "Jean Bosco", "+250700000002", "orders@example.com"),
    ]
    for name, contact, phone, email in suppliers:
        if not Supplier.query.filter_by(name=name).first():
            db.session.add(Supplier(name=name, contact=contact, phone=phone, email=email))
    db.session.commit()
    print("Suppliers seeded")


# -------- System configuration --------
def seed_configs():
    configs = [
        ("app.name", "Site Materials", "STRING", "GENERAL", True),
        ("requests.max_items", 50, "NUMBER", "REQUESTS", False),
        ("stock.default_reorder_level", 10, "NUMBER", "STOCK", False),
        ("stock.low_stock_alerts", True, "BOOLEAN", "STOCK", True),
    ]
    for key, value, value_type, category, public in configs:
        if SystemConfig.query.filter_by(key=key).first() is None:
            config_dao.create_config(
                key, value, value_type=value_type, category=category, is_public=public,
                validation_rules={"min": 0} if value_type == "NUMBER" else None,
            )
    print("System configuration seeded")


def run_all():
    with app.app_context():
        db.create_all()
        user_dao.ensure_roles()
        seed_units()
        seed_categories()
        seed_materials()
        seed_sites_and_stores()
        seed_suppliers()
        seed_configs()
        print("Seed finished")


if __name__ == "__main__":
    run_all()
