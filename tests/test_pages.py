"""Tests des pages statiques et du fallback SPA."""


class TestPages:

    def test_index(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert b"<html" in r.data

    def test_admin_page(self, client):
        r = client.get("/admin")
        assert r.status_code == 200
        assert b"Administration" in r.data

    def test_setup_page(self, client):
        r = client.get("/setup")
        assert r.status_code == 200
        assert b"Installation" in r.data

    def test_access_page(self, client):
        r = client.get("/access/abc123")
        assert r.status_code == 200
        assert "lien d'accès".encode() in r.data

    def test_spa_fallback(self, client):
        r = client.get("/produits/huile-argan")
        assert r.status_code == 200
        assert b"<title>Tabrima Store</title>" in r.data


class TestStaticFiles:

    def test_static_prefix(self, client):
        r = client.get("/static/css/style.css")
        assert r.status_code == 200
        assert b"font-family" in r.data

    def test_public_alias(self, client):
        r = client.get("/public/css/style.css")
        assert r.status_code == 200

    def test_root_level_static(self, client):
        r = client.get("/css/style.css")
        assert r.status_code == 200
        assert r.mimetype == "text/css"

    def test_path_traversal_falls_back(self, client):
        r = client.get("/public/../../config.py")
        assert b"SECRET_KEY" not in r.data


class TestApiErrors:

    def test_unknown_api_route_json_404(self, client):
        r = client.get("/api/inexistant")
        assert r.status_code == 404
        assert r.get_json()["success"] is False

    def test_health(self, client):
        d = client.get("/api/health").get_json()
        assert d["status"] == "ok"
        assert d["database"] == "ok"
        assert d["environment"] == "testing"

    def test_cors_headers(self, client):
        r = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert r.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"

    def test_pages_are_marked_as_placeholders(self, client):
        for url in ("/", "/admin", "/setup", "/access/abc123"):
            assert "Page minimale".encode() in client.get(url).data
