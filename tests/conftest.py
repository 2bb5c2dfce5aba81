import pytest

from ariot_web import create_app
from ariot_web.db import open_db, qa

ADMIN_USER = "admin"
ADMIN_PASS = "s3cret-pass"

LOCATED_SCRIPT = """
return {
    "latitude": payload["lat"],
    "longitude": payload["lng"],
    "rssi": payload["rssi"],
    "snr": payload["snr"],
}
"""


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "ariot.db")


@pytest.fixture
def app(db_path):
    return create_app(db_path, TESTING=True, SECRET_KEY="test-key")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(client):
    """A test client that has completed setup and is logged in."""
    resp = client.post(
        "/api/complete-setup",
        json={"appName": "Test Site", "adminUser": ADMIN_USER, "adminPass": ADMIN_PASS},
    )
    assert resp.status_code == 200
    resp = client.post("/api/login", json={"user": ADMIN_USER, "pass": ADMIN_PASS})
    assert resp.status_code == 200
    return client


@pytest.fixture
def rows(db_path):
    """Run a query against the test database and return dict rows."""

    def _rows(sql, params=()):
        con = open_db(db_path)
        try:
            return qa(con, sql, params)
        finally:
            con.close()

    return _rows


@pytest.fixture
def con(db_path, app):
    connection = open_db(db_path)
    yield connection
    connection.close()
