"""
tests/test_error_views.py -- Error view selection and the exception handlers in web/errors.py.

Coverage:
  - status -> view mapping, including the default for unmapped codes
  - unknown routes and wrong methods render their views through the real app
  - a broken/missing error template degrades to plain "Internal server error"
  - unexpected exceptions render the 500 view without leaking detail
  - Unauthenticated raised anywhere becomes a redirect, not an error page
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

import web.views as views
from auth.errors import Unauthenticated
from core.config import Settings
from web.errors import register_error_handlers
from web.views import build_templates, error_view


@pytest.fixture
def bare_client() -> TestClient:
    """A minimal app with only the error handlers, for routes that misbehave on purpose."""
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("db password is hunter2")

    @app.get("/members")
    def members():
        raise Unauthenticated()

    @app.get("/teapot")
    def teapot():
        raise HTTPException(status_code=418)

    @app.get("/slow-down")
    def slow_down():
        raise HTTPException(status_code=429)

    return TestClient(app, follow_redirects=False, raise_server_exceptions=False)


class TestErrorViewMapping:
    @pytest.mark.parametrize("code", [403, 404, 405, 429, 500])
    def test_mapped_codes_have_their_own_view(self, code: int) -> None:
        assert error_view(code) == f"errors/{code}.html"

    @pytest.mark.parametrize("code", [400, 401, 418, 502, 503])
    def test_unmapped_codes_use_default_view(self, code: int) -> None:
        assert error_view(code) == "errors/error.html"


class TestThroughTheApp:
    def test_unknown_route_renders_404_view(self, web_client) -> None:
        client, _ = web_client
        resp = client.get("/no/such/page")
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("text/html")
        assert "Not found" in resp.text

    def test_wrong_method_renders_405_view(self, web_client) -> None:
        client, _ = web_client
        resp = client.delete("/login")
        assert resp.status_code == 405
        assert "Method not allowed" in resp.text

    def test_static_files_are_served(self, web_client) -> None:
        client, _ = web_client
        resp = client.get("/static/style.css")
        assert resp.status_code == 200
        assert "text/css" in resp.headers["content-type"]

    def test_missing_error_template_falls_back_to_plain_text(self, web_client, tmp_path, monkeypatch) -> None:
        """Custom resources without error views: rendering fails, response is a bare 500."""
        (tmp_path / "views").mkdir()
        (tmp_path / "static").mkdir()
        monkeypatch.setattr(views, "templates", build_templates(Settings(resources_dir=str(tmp_path))))
        client, _ = web_client
        resp = client.get("/no/such/page")
        assert resp.status_code == 500
        assert resp.text == "Internal server error"


class TestHandlers:
    def test_unexpected_exception_renders_500_without_detail(self, bare_client: TestClient) -> None:
        resp = bare_client.get("/boom")
        assert resp.status_code == 500
        assert "Internal server error" in resp.text
        assert "hunter2" not in resp.text
        assert "RuntimeError" not in resp.text

    def test_unauthenticated_redirects_to_login(self, bare_client: TestClient) -> None:
        resp = bare_client.get("/members")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    def test_unmapped_status_renders_default_view(self, bare_client: TestClient) -> None:
        resp = bare_client.get("/teapot")
        assert resp.status_code == 418
        assert "Error 418" in resp.text

    def test_too_many_requests_view(self, bare_client: TestClient) -> None:
        resp = bare_client.get("/slow-down")
        assert resp.status_code == 429
        assert "Too many requests" in resp.text
