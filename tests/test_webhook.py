from conftest import LOCATED_SCRIPT

from ariot_web.audit import recent_logs
from ariot_web.registry import create_integration

PAYLOAD = {"lat": 41.01, "lng": 28.97, "rssi": -97, "snr": 7.5}


def _logs(rows, source="webhook"):
    return rows("SELECT * FROM system_logs WHERE source = ? ORDER BY id", (source,))


def _measurements(rows):
    return rows("SELECT * FROM measurements ORDER BY id")


def test_located_payload_creates_one_measurement_and_info_log(client, con, rows) -> None:
    create_integration(con, "Field", "field", LOCATED_SCRIPT)

    resp = client.post("/webhook/field", json=PAYLOAD)

    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "OK"
    measurements = _measurements(rows)
    assert len(measurements) == 1
    m = measurements[0]
    assert (m["latitude"], m["longitude"], m["rssi"], m["snr"]) == (41.01, 28.97, -97, 7.5)
    assert m["gateway_id"] == "gw"
    assert m["frequency"] == 868
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "info"
    assert logs[0]["message"] == "Data Processed Successfully"


def test_audit_details_carry_slug_payload_and_decoder_output(client, con) -> None:
    create_integration(con, "Field", "field", LOCATED_SCRIPT)
    client.post("/webhook/field", json=PAYLOAD)

    details = recent_logs(con)[0]["details"]
    assert details["slug"] == "field"
    assert details["payload"] == PAYLOAD
    assert details["parsed"]["latitude"] == 41.01


def test_throwing_script_is_400_with_error_log_and_no_row(client, con, rows) -> None:
    create_integration(con, "Broken", "broken", "raise ValueError('bad frame')")

    resp = client.post("/webhook/broken", json=PAYLOAD)

    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "Decoder Error"
    assert _measurements(rows) == []
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "error"
    assert logs[0]["message"] == "Decoder Script Failed"
    assert "bad frame" in logs[0]["details"]


def test_script_with_syntax_error_is_treated_like_a_throw(client, con, rows) -> None:
    create_integration(con, "Typo", "typo", "return {")

    resp = client.post("/webhook/typo", json=PAYLOAD)

    assert resp.status_code == 400
    assert _measurements(rows) == []
    assert [log["level"] for log in _logs(rows)] == ["error"]


def test_unregistered_slug_is_404_with_warn_log(client, rows) -> None:
    resp = client.post("/webhook/nope", json=PAYLOAD)

    assert resp.status_code == 404
    assert resp.get_data(as_text=True) == "Not Found"
    assert _measurements(rows) == []
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "warn"
    assert logs[0]["message"] == "Endpoint Not Found"


def test_root_webhook_without_default_integration(client, con, rows) -> None:
    create_integration(con, "Other", "other", LOCATED_SCRIPT)

    resp = client.post("/webhook", json=PAYLOAD)

    assert resp.status_code == 404
    assert "No integration configured" in resp.get_data(as_text=True)
    assert _measurements(rows) == []
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "warn"
    details = recent_logs(con)[0]["details"]
    assert details["slug"] is None
    assert details["payload"] == PAYLOAD


def test_root_webhook_prefers_chirpstack_over_default(client, con, rows) -> None:
    create_integration(con, "Default", "default", 'return {"gateway_id": "from-default"}')
    create_integration(con, "ChirpStack", "chirpstack", 'return {"gateway_id": "from-chirpstack"}')

    resp = client.post("/webhook", json={})

    assert resp.status_code == 200
    assert [m["gateway_id"] for m in _measurements(rows)] == ["from-chirpstack"]
    assert '"slug": "chirpstack"' in _logs(rows)[0]["details"]


def test_empty_decoder_output_is_stored_without_location(client, con, rows) -> None:
    create_integration(con, "Drive", "drive", "return {}")

    resp = client.post("/webhook/drive", json={"anything": 1})

    assert resp.status_code == 200
    measurements = _measurements(rows)
    assert len(measurements) == 1
    m = measurements[0]
    assert m["rssi"] == -120
    assert m["snr"] == 0
    assert m["frequency"] == 868
    assert m["gateway_id"] == "gw"
    assert m["latitude"] is None
    assert m["longitude"] is None
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "info"
    assert logs[0]["message"] == "Data Received (Waiting for Location Fix)"


def test_short_field_names_are_reconciled(client, con, rows) -> None:
    create_integration(con, "Short", "short", 'return {"lat": 10, "lon": 20, "sf": 9}')

    client.post("/webhook/short", json={})

    m = _measurements(rows)[0]
    assert (m["latitude"], m["longitude"], m["spreading_factor"]) == (10, 20, 9)


def test_form_encoded_payload_reaches_decoder(client, con, rows) -> None:
    create_integration(con, "Form", "form", 'return {"gateway_id": payload["gw"]}')

    resp = client.post("/webhook/form", data={"gw": "gw-7"})

    assert resp.status_code == 200
    assert _measurements(rows)[0]["gateway_id"] == "gw-7"


def test_webhook_is_public_before_setup(client, con) -> None:
    create_integration(con, "Field", "field", LOCATED_SCRIPT)
    assert client.post("/webhook/field", json=PAYLOAD).status_code == 200


def test_persistence_failure_is_500_with_error_log(client, con, rows, monkeypatch) -> None:
    import ariot_web.pipeline as pipeline
    from ariot_web.errors import PersistenceError

    def boom(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(pipeline, "insert_measurement", boom)
    create_integration(con, "Field", "field", LOCATED_SCRIPT)

    resp = client.post("/webhook/field", json=PAYLOAD)

    assert resp.status_code == 500
    assert resp.get_data(as_text=True) == "Error"
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["level"] == "error"
    assert logs[0]["message"] == "System Error"
    assert "disk full" in logs[0]["details"]


def test_decoder_writing_its_own_stdout_is_a_decode_failure(client, con, rows) -> None:
    script = "import os, sys\nsys.__stdout__.write('[1]')\nsys.__stdout__.flush()\nos._exit(0)"
    create_integration(con, "Raw", "raw", script)

    resp = client.post("/webhook/raw", json=PAYLOAD)

    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "Decoder Error"
    assert _measurements(rows) == []
    logs = _logs(rows)
    assert len(logs) == 1
    assert logs[0]["message"] == "Decoder Script Failed"


def test_json_null_body_reaches_decoder_as_none(client, con, rows) -> None:
    create_integration(con, "Kind", "kind", 'return {"gateway_id": type(payload).__name__}')

    resp = client.post("/webhook/kind", data="null", content_type="application/json")

    assert resp.status_code == 200
    assert _measurements(rows)[0]["gateway_id"] == "NoneType"
    assert recent_logs(con)[0]["details"]["payload"] is None


def test_plain_text_body_reaches_decoder_as_string(client, con, rows) -> None:
    create_integration(con, "Kind", "kind", 'return {"gateway_id": type(payload).__name__ + ":" + payload}')

    client.post("/webhook/kind", data="AQID", content_type="text/plain")

    assert _measurements(rows)[0]["gateway_id"] == "str:AQID"
