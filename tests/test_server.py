"""
Tests for the HTTP server.
"""

import time

import pytest
from fastapi.testclient import TestClient

from linreg.components.config import Config
from linreg.components.server import Server


LINE = [{"x": 1, "y": 2}, {"x": 2, "y": 4}, {"x": 3, "y": 6}]


class TestRegressionRoute:
    """Tests for the stateless regression endpoint."""

    def test_health(self, api):
        """Health check responds."""
        response = api.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_regression(self, api):
        """A valid point set returns the fitted line."""
        response = api.post("/api/regression", json={"points": LINE})

        assert response.status_code == 200
        data = response.json()
        assert data["n"] == 3
        assert data["slope"] == 2.0
        assert data["r2"] == 1.0
        assert data["minX"] == 1.0
        assert data["maxX"] == 3.0
        assert data["linePoints"] == [{"x": 1.0, "y": 2.0}, {"x": 3.0, "y": 6.0}]
        assert data["equation"] == "y = 2.000000x + 0.000000"

    def test_constant_y_returns_null_r2(self, api):
        """Undefined R² is serialized as null."""
        points = [{"x": 1, "y": 5}, {"x": 2, "y": 5}, {"x": 3, "y": 5}]

        response = api.post("/api/regression", json={"points": points})

        assert response.status_code == 200
        assert response.json()["r2"] is None

    @pytest.mark.parametrize("points", [
        [{"x": 1, "y": 1}],
        [{"x": 5, "y": 1}, {"x": 5, "y": 2}],
    ])
    def test_invalid_points(self, api, points):
        """Validation failures are reported as 400 with a message."""
        response = api.post("/api/regression", json={"points": points})

        assert response.status_code == 400
        assert response.json()["error"]

    def test_malformed_body(self, api):
        """A body that does not match the schema is a 422."""
        response = api.post("/api/regression", json={"points": [{"x": "one"}]})

        assert response.status_code == 422


class TestDatasetRoutes:
    """Tests for the dataset endpoints."""

    def test_create_get_delete(self, api):
        """A dataset can be created, read back and deleted."""
        response = api.post("/api/datasets", json={"name": "line", "points": LINE})
        assert response.status_code == 201
        created = response.json()
        assert created["name"] == "line"
        assert created["points"] == [{"x": 1.0, "y": 2.0}, {"x": 2.0, "y": 4.0}, {"x": 3.0, "y": 6.0}]
        assert created["regression"]["slope"] == 2.0

        response = api.get(f"/api/datasets/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

        response = api.get("/api/datasets")
        assert response.status_code == 200
        assert response.json() == [{
            "id": created["id"],
            "name": "line",
            "createdAtMs": created["createdAtMs"],
            "count": 3,
        }]

        response = api.delete(f"/api/datasets/{created['id']}")
        assert response.status_code == 204

        assert api.get(f"/api/datasets/{created['id']}").status_code == 404
        assert api.get("/api/datasets").json() == []

    def test_missing_dataset(self, api):
        """Unknown IDs are 404 for both read and delete."""
        assert api.get("/api/datasets/999").status_code == 404
        assert api.delete("/api/datasets/999").status_code == 404

    def test_invalid_id(self, api):
        """A non-numeric ID is rejected by request validation."""
        assert api.get("/api/datasets/abc").status_code == 422
        assert api.delete("/api/datasets/abc").status_code == 422

    def test_blank_name(self, api):
        """A blank name is a 400 and nothing is stored."""
        response = api.post("/api/datasets", json={"name": " ", "points": LINE})

        assert response.status_code == 400
        assert api.get("/api/datasets").json() == []

    def test_degenerate_points(self, api):
        """Invalid points are a 400 and nothing is stored."""
        points = [{"x": 1, "y": 1}, {"x": 1, "y": 2}]

        response = api.post("/api/datasets", json={"name": "flat", "points": points})

        assert response.status_code == 400
        assert api.get("/api/datasets").json() == []

    def test_store_failure_is_opaque(self, api, db_client):
        """Database failures become a generic 500."""
        db_client.drop_schema()

        response = api.get("/api/datasets")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_overflowing_points(self, api):
        """Points whose fit overflows are a 400 and nothing is stored."""
        points = [{"x": 1e200, "y": 1}, {"x": 2e200, "y": 2}]

        response = api.post("/api/datasets", json={"name": "huge", "points": points})

        assert response.status_code == 400
        assert "floating-point range" in response.json()["error"]
        assert api.get("/api/datasets").json() == []

        response = api.post("/api/regression", json={"points": points})

        assert response.status_code == 400


class TestStaticFiles:
    """Tests for the optional browser front-end."""

    def test_not_served_by_default(self, api):
        assert api.get("/", follow_redirects=False).status_code == 404

    def test_served_when_configured(self, store, tmp_path):
        """The root redirects to the bundled index page."""
        (tmp_path / "index.html").write_text("<h1>linreg</h1>")
        config = Config({'database': {'url': 'sqlite://'}, 'server': {'static-dir': str(tmp_path)}})

        with TestClient(Server(store, config).app) as client:
            response = client.get("/", follow_redirects=False)
            assert response.status_code == 307
            assert response.headers["location"] == "/static/index.html"

            response = client.get("/static/index.html")
            assert response.status_code == 200
            assert "linreg" in response.text

            # API routes are unaffected
            assert client.get("/api/datasets").json() == []


class TestLifecycle:
    """Tests for starting and stopping the HTTP listener."""

    def test_start_and_stop(self, store):
        """stop() shuts uvicorn down and waits for its thread."""
        server = Server(store, Config({
            'database': {'url': 'sqlite://'},
            'server': {'host': '127.0.0.1', 'port': 0},
            'logging': {'level': 'warning'},
        }))

        server.start()
        thread = server._server_thread
        try:
            deadline = time.monotonic() + 10
            while not server._uvicorn_server.started and time.monotonic() < deadline:
                time.sleep(0.05)
            assert server._uvicorn_server.started
        finally:
            server.stop()

        assert not thread.is_alive()
        assert server._server_thread is None

        # A second stop is harmless
        server.stop()
