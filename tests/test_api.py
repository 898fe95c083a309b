def test_login_required(app):
    resp = app.test_client().get("/api/requests")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_bad_login(app, users):
    resp = app.test_client().post("/api/auth/login", json={"email": users["dse"].email, "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "INVALID_CREDENTIALS"


def test_me_and_change_password(client_for, users):
    client = client_for(users["dse"])
    body = client.get("/api/auth/me").get_json()
    assert body["data"]["role"] == "DIOCESAN_SITE_ENGINEER"
    assert "password_hash" not in body["data"]

    resp = client.post(
        "/api/auth/change-password",
        json={"current_password": "s3cret-pass", "new_password": "even-better-1"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["first_login"] is False


def test_clients_keep_their_own_login(client_for, users):
    engineer = client_for(users["engineer"])
    keeper = client_for(users["storekeeper"])
    assert engineer.get("/api/auth/me").get_json()["data"]["id"] == users["engineer"].id
    assert keeper.get("/api/auth/me").get_json()["data"]["id"] == users["storekeeper"].id
    assert engineer.get("/api/auth/me").get_json()["data"]["role"] == "SITE_ENGINEER"


def test_full_request_workflow_over_http(client_for, users, site, store, material, stock_in):
    stock_in(material, 100)
    engineer = client_for(users["engineer"])
    resp = engineer.post(
        "/api/requests",
        json={"site_id": site.id, "notes": "foundation", "items": [{"material_id": material.id, "qty_requested": 100}]},
    )
    assert resp.status_code == 201
    req = resp.get_json()["data"]
    assert engineer.post(f"/api/requests/{req['id']}/submit").status_code == 200

    dse = client_for(users["dse"])
    resp = dse.post(f"/api/requests/{req['id']}/review", json={"level": "PADIRI", "action": "APPROVED"})
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "FORBIDDEN"

    assert dse.post(f"/api/requests/{req['id']}/review", json={"level": "DSE", "action": "APPROVED"}).status_code == 200
    padiri = client_for(users["padiri"])
    resp = padiri.post(f"/api/requests/{req['id']}/review", json={"level": "PADIRI", "action": "APPROVED"})
    assert resp.get_json()["data"]["request"]["status"] == "APPROVED"

    keeper = client_for(users["storekeeper"])
    item_id = resp.get_json()["data"]["request"]["items"][0]["id"]
    resp = keeper.post(f"/api/requests/{req['id']}/issue", json={"store_id": store.id, "items": [{"request_item_id": item_id, "qty": 60}]})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["request"]["status"] == "PARTIALLY_ISSUED"

    resp = keeper.post(f"/api/requests/items/{item_id}/issue", json={"store_id": store.id, "qty": 50})
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["code"] == "OVER_ISSUE"
    assert body["context"]["request_item_id"] == item_id

    resp = keeper.post(f"/api/requests/items/{item_id}/issue", json={"store_id": store.id, "qty": 40})
    assert resp.get_json()["data"]["qty_remaining"] == 0

    resp = engineer.post(f"/api/requests/{req['id']}/receive", json={})
    assert resp.get_json()["data"]["status"] == "CLOSED"

    resp = keeper.get("/api/stock", query_string={"store_id": store.id})
    body = resp.get_json()
    assert body["data"][0]["qty_on_hand"] == 0
    assert body["pagination"]["total_items"] == 1


def test_invalid_transition_payload(client_for, users, site, material):
    engineer = client_for(users["engineer"])
    req = engineer.post(
        "/api/requests", json={"site_id": site.id, "items": [{"material_id": material.id, "qty": 1}]}
    ).get_json()["data"]
    resp = client_for(users["storekeeper"]).post(f"/api/requests/{req['id']}/start-issue")
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["code"] == "INVALID_TRANSITION"
    assert body["context"]["current_status"] == "PENDING"


def test_role_gate(client_for, users, store, material):
    engineer = client_for(users["engineer"])
    resp = engineer.post("/api/stock", json={"store_id": store.id, "material_id": material.id, "qty_on_hand": 5})
    assert resp.status_code == 403

    keeper = client_for(users["storekeeper"])
    resp = keeper.post("/api/stock", json={"store_id": store.id, "material_id": material.id, "qty_on_hand": 5})
    assert resp.status_code == 201
    stock_id = resp.get_json()["data"]["id"]

    resp = keeper.post(f"/api/stock/{stock_id}/adjust", json={"delta": -2, "notes": "breakage"})
    assert resp.get_json()["data"]["stock"]["qty_on_hand"] == 3
    history = keeper.get(f"/api/stock/{stock_id}/history").get_json()["data"]
    assert [h["qty_after"] for h in history] == [3, 5]


def test_validation_error_shape(client_for, users, site):
    engineer = client_for(users["engineer"])
    resp = engineer.post("/api/requests", json={"site_id": site.id, "items": []})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"


def test_admin_lists_audit_logs(client_for, users, site, material):
    client_for(users["engineer"]).post(
        "/api/requests", json={"site_id": site.id, "items": [{"material_id": material.id, "qty": 1}]}
    )
    body = client_for(users["admin"]).get("/api/audit-logs", query_string={"entity": "request"}).get_json()
    assert body["data"][0]["action"] == "CREATE"
    assert client_for(users["engineer"]).get("/api/audit-logs").status_code == 403


def test_reports(client_for, users, store, material, stock_in):
    stock_in(material, 4)
    client = client_for(users["padiri"])
    statuses = client.get("/api/reports/requests-by-status").get_json()["data"]
    assert statuses["PENDING"] == 0
    value = client.get("/api/reports/stock-value").get_json()["data"]
    assert value[0]["value"] == 50.0


def test_health(app):
    assert app.test_client().get("/api/health").get_json()["data"] == {"database": "ok"}
