from decimal import Decimal

import pytest

from dao import request as request_dao
from dao import system_config as config_dao
from db.models.audit import AuditLog
from db.models.system_config import ConfigType
from utils.errors import Conflict, Forbidden, NotFound, ValidationError


def test_typed_values(app):
    config_dao.create_config("stock.alerts", "true", value_type="BOOLEAN", category="stock")
    config_dao.create_config("requests.max_items", 20, value_type=ConfigType.NUMBER)
    config_dao.create_config("sites.regions", ["north", "south"], value_type="ARRAY")

    assert config_dao.config_value("stock.alerts") is True
    assert config_dao.config_value("requests.max_items") == Decimal("20")
    assert config_dao.config_value("sites.regions") == ["north", "south"]
    assert config_dao.config_value("missing", "fallback") == "fallback"
    assert [c.key for c in config_dao.list_configs(category="stock")] == ["stock.alerts"]


def test_duplicate_key_and_bad_type(app):
    config_dao.create_config("app.name", "Materials")
    with pytest.raises(Conflict):
        config_dao.create_config("app.name", "Other")
    with pytest.raises(ValidationError):
        config_dao.create_config("app.colour", "red", value_type="COLOUR")
    with pytest.raises(ValidationError):
        config_dao.create_config("app.flag", "maybe", value_type="BOOLEAN")


def test_set_config_checks_rules_and_editability(users):
    config_dao.create_config(
        "requests.max_items", 10, value_type="NUMBER", validation_rules={"min": 1, "max": 100}
    )
    config_dao.create_config("app.version", "1.0", is_editable=False)

    cfg = config_dao.set_config("requests.max_items", "25", users["admin"].id)
    assert cfg.value == "25"
    assert cfg.updated_by == users["admin"].id
    with pytest.raises(ValidationError):
        config_dao.set_config("requests.max_items", 0, users["admin"].id)
    with pytest.raises(ValidationError):
        config_dao.set_config("requests.max_items", "lots", users["admin"].id)
    assert config_dao.config_value("requests.max_items") == Decimal("25")

    with pytest.raises(Conflict):
        config_dao.set_config("app.version", "2.0", users["admin"].id)
    with pytest.raises(NotFound):
        config_dao.set_config("nope", 1, users["admin"].id)
    assert AuditLog.query.filter_by(entity="SYSTEM_CONFIG", action="UPDATE").count() == 1


def test_public_lookup(app):
    config_dao.create_config("app.name", "Materials", is_public=True)
    config_dao.create_config("smtp.host", "mail.local")
    assert config_dao.get_public_config("app.name").value == "Materials"
    with pytest.raises(Forbidden):
        config_dao.get_public_config("smtp.host")


def test_max_items_limits_requests(users, site, material, material2):
    config_dao.create_config("requests.max_items", 1, value_type="NUMBER")
    lines = [{"material_id": material.id, "qty": 1}, {"material_id": material2.id, "qty": 1}]
    with pytest.raises(ValidationError):
        request_dao.create_request(site.id, users["engineer"].id, None, lines)
    req = request_dao.create_request(site.id, users["engineer"].id, None, lines[:1])
    assert len(req.items) == 1


def test_config_endpoints(client_for, users):
    admin = client_for(users["admin"])
    resp = admin.post(
        "/api/system-configs",
        json={"key": "stock.alerts", "value": True, "type": "BOOLEAN", "category": "STOCK", "is_public": True},
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["value"] is True
    admin.post("/api/system-configs", json={"key": "smtp.host", "value": "mail.local"})

    resp = admin.put("/api/system-configs/stock.alerts", json={"value": "false"})
    assert resp.get_json()["data"]["value"] is False

    engineer = client_for(users["engineer"])
    assert engineer.get("/api/system-configs").status_code == 403
    assert engineer.put("/api/system-configs/stock.alerts", json={"value": True}).status_code == 403
    public = engineer.get("/api/system-configs/public").get_json()["data"]
    assert [c["key"] for c in public] == ["stock.alerts"]
    assert engineer.get("/api/system-configs/smtp.host").status_code == 403
    assert admin.get("/api/system-configs/smtp.host").get_json()["data"]["value"] == "mail.local"
