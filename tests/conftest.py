"""
Pytest fixtures for the materials service.

Every test runs against a fresh in-memory SQLite schema. Set
TEST_POSTGRES_URL to also run the row-locking tests against PostgreSQL.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal

import pytest
from flask import g
from flask.testing import FlaskClient

from app import app as flask_app
from configs import db
from dao import inventory as inv_dao
from dao import request as request_dao
from dao import site as site_dao
from dao import user as user_dao
from db.models.inventory import GrnRef, MovementType
from db.models.material import Material
from db.models.site import Site
from db.models.store import Store
from db.models.unit import Unit
from db.models.user import RoleName

PASSWORD = "s3cret-pass"


class SessionClient(FlaskClient):
    """Test client that drops the user Flask-Login cached on `g`.

    The fixture app context stays pushed for the whole test and every request
    reuses it, so without this the last login would leak into other clients.
    """

    def open(self, *args, **kwargs):
        g.pop("_login_user", None)
        try:
            return super().open(*args, **kwargs)
        finally:
            g.pop("_login_user", None)


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, ALLOW_NEGATIVE_STOCK=False)
    flask_app.test_client_class = SessionClient
    with flask_app.app_context():
        db.create_all()
        user_dao.ensure_roles()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role: RoleName, email: str | None = None):
        counter["n"] += 1
        email = email or f"{role.value.lower()}{counter['n']}@example.com"
        return user_dao.create_user(f"{role.value.title()} {counter['n']}", email, PASSWORD, role)

    return _make


@pytest.fixture
def users(make_user, site):
    u = {
        "admin": make_user(RoleName.ADMIN),
        "engineer": make_user(RoleName.SITE_ENGINEER),
        "dse": make_user(RoleName.DIOCESAN_SITE_ENGINEER),
        "padiri": make_user(RoleName.PADIRI),
        "storekeeper": make_user(RoleName.STOREKEEPER),
        "procurement": make_user(RoleName.PROCUREMENT),
    }
    site_dao.assign_user(u["engineer"].id, site.id, assigned_by=u["admin"].id)
    return u


@pytest.fixture
def site(app):
    s = Site(code="SITE-T", name="Test Site", location="Here")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def store(app):
    s = Store(code="ST-T", name="Test Store", location="Yard")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def unit(app):
    u = Unit(code="BAG", name="Bag")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def material(unit):
    m = Material(code="MAT-CEM", name="Cement", unit_id=unit.id, unit_price=Decimal("12.50"))
    db.session.add(m)
    db.session.commit()
    return m


@pytest.fixture
def material2(unit):
    m = Material(code="MAT-SAND", name="Sand", unit_id=unit.id, unit_price=Decimal("3.00"))
    db.session.add(m)
    db.session.commit()
    return m


@pytest.fixture
def stock_in(store):
    """Book `qty` of a material into the test store through a goods-receipt movement."""

    def _in(material, qty, grn_id=1):
        return inv_dao.record_movement(store.id, material.id, MovementType.IN, GrnRef(grn_id), qty)

    return _in


@pytest.fixture
def approved_request(users, site):
    """Raise a request and walk it through both review levels."""

    def _make(lines, qty_approved=None):
        req = request_dao.create_request(site.id, users["engineer"].id, "for tests", lines)
        request_dao.submit_request(req.id, users["engineer"].id)
        mods = None
        if qty_approved is not None:
            mods = [{"request_item_id": i.id, "qty_approved": qty_approved} for i in req.items]
        request_dao.review_request(req.id, users["dse"].id, "DSE", "APPROVED", item_modifications=mods)
        request_dao.review_request(req.id, users["padiri"].id, "PADIRI", "APPROVED")
        return request_dao.get_request(req.id)

    return _make


@pytest.fixture
def client_for(app):
    """Test client already logged in as `user`."""

    def _client(user):
        client = app.test_client()
        resp = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return client

    return _client
