from conftest import ADMIN_PASS, ADMIN_USER, LOCATED_SCRIPT


# ---------------------------------------------------------------------------
# Setup & login
# ---------------------------------------------------------------------------


def test_app_info_before_and_after_setup(client) -> None:
    info = client.get("/api/app-info").get_json()
    assert info == {"name": "ARIOT Platform", "configured": False}

    client.post(
        "/api/complete-setup",
        json={"appName": "Site A", "adminUser": ADMIN_USER, "adminPass": ADMIN_PASS},
    )
    assert client.get("/api/app-info").get_json() == {"name": "Site A", "configured": True}


def test_api_is_gated_until_setup(client) -> None:
    resp = client.get("/api/integrations")
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Setup required"}


def test_setup_only_runs_once(admin) -> None:
    resp = admin.post(
        "/api/complete-setup",
        json={"appName": "Again", "adminUser": "x", "adminPass": "y"},
    )
    assert resp.status_code == 409


def test_setup_requires_every_field(client) -> None:
    resp = client.post("/api/complete-setup", json={"appName": "Site", "adminUser": "admin"})
    assert resp.status_code == 400
    assert client.get("/api/app-info").get_json()["configured"] is False


def test_password_is_stored_hashed(admin, rows) -> None:
    stored = rows("SELECT value FROM app_config WHERE key = 'admin_pass'")[0]["value"]
    assert stored != ADMIN_PASS
    assert "$" in stored


def test_wrong_password_is_rejected(admin) -> None:
    admin.post("/api/logout")
    resp = admin.post("/api/login", json={"user": ADMIN_USER, "pass": "wrong"})
    assert resp.status_code == 401
    assert admin.get("/api/integrations").status_code == 401


def test_login_rejects_non_object_bodies(admin) -> None:
    admin.post("/api/logout")
    resp = admin.post("/api/login", json=[ADMIN_USER, ADMIN_PASS])
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid credentials"}


def test_plaintext_password_is_upgraded_on_login(app, client, con, rows) -> None:
    with con:
        con.executemany(
            "INSERT INTO app_config (key, value) VALUES (?, ?)",
            [("app_name", "Legacy"), ("admin_user", "admin"), ("admin_pass", "legacy-pass"), ("is_configured", "true")],
        )
    app.extensions["ariot.settings"].reload(con)

    assert client.post("/api/login", json={"user": "admin", "pass": "legacy-pass"}).status_code == 200
    stored = rows("SELECT value FROM app_config WHERE key = 'admin_pass'")[0]["value"]
    assert stored != "legacy-pass"

    client.post("/api/logout")
    assert client.post("/api/login", json={"user": "admin", "pass": "legacy-pass"}).status_code == 200


def test_management_requires_login(client) -> None:
    client.post(
        "/api/complete-setup",
        json={"appName": "Site", "adminUser": ADMIN_USER, "adminPass": ADMIN_PASS},
    )
    for path in ("/api/integrations", "/api/system-logs", "/api/get-all-data", "/api/export-csv"):
        resp = client.get(path)
        assert resp.status_code == 401, path
        assert resp.get_json() == {"error": "Unauthorized"}


# ---------------------------------------------------------------------------
# Integrations & audit log
# ---------------------------------------------------------------------------


def test_integration_crud(admin) -> None:
    resp = admin.post("/api/integrations", json={"name": "TTN", "slug": "ttn", "script": "return {}"})
    assert resp.status_code == 201
    created = resp.get_json()["integration"]

    listed = admin.get("/api/integrations").get_json()
    assert [i["endpoint_slug"] for i in listed] == ["ttn"]
    assert "decoder_script" not in listed[0]

    assert admin.delete(f"/api/integrations/{created['id']}").get_json() == {"success": True}
    assert admin.get("/api/integrations").get_json() == []


def test_duplicate_and_invalid_integrations(admin) -> None:
    body = {"name": "TTN", "slug": "ttn", "script": "return {}"}
    assert admin.post("/api/integrations", json=body).status_code == 201
    assert admin.post("/api/integrations", json=body).status_code == 409
    assert admin.post("/api/integrations", json={**body, "slug": "bad slug"}).status_code == 400
    assert admin.post("/api/integrations", data="not json").status_code == 400


def test_delete_missing_integration_twice(admin, rows) -> None:
    for _ in range(2):
        resp = admin.delete("/api/integrations/4242")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "not_found"}
    assert rows("SELECT * FROM integrations") == []


def test_system_logs_newest_first_and_capped(admin) -> None:
    admin.post("/api/integrations", json={"name": "A", "slug": "a", "script": "return {}"})
    for i in range(55):
        admin.post(f"/webhook/missing-{i}", json={"n": i})

    logs = admin.get("/api/system-logs").get_json()
    assert len(logs) == 50
    assert logs[0]["details"]["slug"] == "missing-54"
    assert logs[0]["details"]["payload"] == {"n": 54}

    assert len(admin.get("/api/system-logs?limit=5").get_json()) == 5
    assert len(admin.get("/api/system-logs?limit=500").get_json()) == 50


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


def test_webhook_round_trip_through_data_listing(admin) -> None:
    admin.post("/api/integrations", json={"name": "F", "slug": "field", "script": LOCATED_SCRIPT})
    admin.post("/webhook/field", json={"lat": 41.5, "lng": 29.25, "rssi": -101, "snr": -3.5})
    admin.post("/api/integrations", json={"name": "U", "slug": "unlocated", "script": "return {}"})
    admin.post("/webhook/unlocated", json={})

    data = admin.get("/api/get-all-data").get_json()
    assert len(data) == 1
    point = data[0]
    assert point["type"] == "live"
    assert point["rssi"] == -101.0 and isinstance(point["rssi"], float)
    assert point["snr"] == -3.5 and isinstance(point["snr"], float)
    assert point["latitude"] == 41.5
    assert point["longitude"] == 29.25


def test_saved_points_appear_in_listing_and_export(admin) -> None:
    resp = admin.post("/api/save-point", json={"avg_rssi": -88.5, "avg_snr": 4, "lat": 40.0, "lng": 30.0})
    assert resp.status_code == 200

    data = admin.get("/api/get-all-data").get_json()
    assert [(p["type"], p["rssi"]) for p in data] == [("saved", -88.5)]

    resp = admin.get("/api/export-csv")
    assert resp.mimetype == "text/csv"
    assert "attachment" in resp.headers["Content-Disposition"]
    lines = resp.get_data(as_text=True).strip().splitlines()
    assert lines[0] == "type,gateway,rssi,snr,latitude,longitude,timestamp"
    assert lines[1].startswith("saved,manual,-88.5,4.0,40.0,30.0,")


def test_save_point_requires_coordinates(admin) -> None:
    assert admin.post("/api/save-point", json={"avg_rssi": -90}).status_code == 400


def test_save_scenario(admin, rows) -> None:
    resp = admin.post(
        "/api/save-scenario",
        json={"gateways": [{"lat": 41.0, "lng": 29.0, "radius": 2500, "freq": 868}]},
    )
    assert resp.get_json() == {"success": True, "saved": 1}
    assert rows("SELECT radius FROM planned_gateways")[0]["radius"] == 2500

    resp = admin.post("/api/save-scenario", json={"gateways": "nope"})
    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "Invalid data"


def test_survey_session_averages_first_three_readings(admin) -> None:
    assert admin.get("/api/poll-session").status_code == 400

    admin.post("/api/integrations", json={"name": "F", "slug": "field", "script": LOCATED_SCRIPT})
    assert admin.get("/api/start-session").get_json()["status"] == "started"

    readings = [(-100, 5), (-90, 7), (-80, 9), (-10, 50)]
    for rssi, snr in readings[:2]:
        admin.post("/webhook/field", json={"lat": 1, "lng": 2, "rssi": rssi, "snr": snr})
    assert admin.get("/api/poll-session").get_json() == {"status": "pending", "count": 2, "required": 3}

    for rssi, snr in readings[2:]:
        admin.post("/webhook/field", json={"lat": 1, "lng": 2, "rssi": rssi, "snr": snr})
    result = admin.get("/api/poll-session").get_json()
    assert result == {"status": "complete", "avg_rssi": -90.0, "avg_snr": 7.0}

    assert admin.get("/api/poll-session").status_code == 400


# ---------------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------------


def test_debug_health_reports_table_counts(admin) -> None:
    admin.post("/api/integrations", json={"name": "A", "slug": "a", "script": "return {}"})
    health = admin.get("/api/debug/health").get_json()
    assert health["status"] == "ok"
    assert health["db"] == "connected"
    assert health["tables"]["integrations"] == 1


def test_debug_config_masks_secret(admin) -> None:
    config = admin.get("/api/debug/config").get_json()
    assert config["constants"]["DEFAULT_SLUG_PRIORITY"] == ["webhook", "chirpstack", "default"]
    assert config["env"]["ARIOT_SECRET_KEY"] in ("***", "(not set)")
