"""
web/views.py -- Template engine, static file location, and error view selection.

Views and static files come from one of two places:
  - RESOURCES_DIR set: <dir>/views and <dir>/static, read from disk on every
    change (Jinja2's FileSystemLoader re-checks mtimes), for template work
    without restarts.
  - otherwise: the templates/ and static/ directories shipped inside this
    package.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from auth.models import AuthContext
from core.config import Settings, get_settings

logger = logging.getLogger("wuzzlmoasta.web")

_PACKAGE_DIR = Path(__file__).parent

# Finite status -> view mapping. Anything not listed renders the default view,
# which shows the bare status code.
_ERROR_VIEWS: dict[int, str] = {
    403: "errors/403.html",
    404: "errors/404.html",
    405: "errors/405.html",
    429: "errors/429.html",
    500: "errors/500.html",
}
_DEFAULT_ERROR_VIEW = "errors/error.html"


def views_directory(settings: Settings) -> Path:
    if settings.resources_dir:
        return Path(settings.resources_dir) / "views"
    return _PACKAGE_DIR / "templates"


def static_directory(settings: Settings) -> Path:
    if settings.resources_dir:
        return Path(settings.resources_dir) / "static"
    return _PACKAGE_DIR / "static"


def current_auth(request: Request) -> AuthContext:
    """Template global: the AuthContext the session middleware attached, or an anonymous one.

    Reads request.state only. Error pages rendered outside the middleware
    stack must not reach back into the registry.
    """
    ctx = getattr(request.state, "auth", None)
    return ctx if isinstance(ctx, AuthContext) else AuthContext()


def build_templates(settings: Settings) -> Jinja2Templates:
    engine = Jinja2Templates(directory=str(views_directory(settings)))
    engine.env.globals["current_auth"] = current_auth
    return engine


templates = build_templates(get_settings())


def error_view(status_code: int) -> str:
    return _ERROR_VIEWS.get(status_code, _DEFAULT_ERROR_VIEW)


def render_error(request: Request, status_code: int, headers: dict | None = None) -> Response:
    """Render the error view for status_code.

    If the view itself cannot be rendered (missing or broken template), fall
    back to a bare 500 so a templating problem never masks the original error
    as something else.
    """
    try:
        return templates.TemplateResponse(
            request,
            error_view(status_code),
            {"status_code": status_code},
            status_code=status_code,
            headers=headers,
        )
    except TemplateError:
        logger.exception("Failed to render error view for status %d", status_code)
        return PlainTextResponse("Internal server error", status_code=500)


def render_page(request: Request, name: str, context: dict | None = None, status_code: int = 200) -> HTMLResponse:
    return templates.TemplateResponse(request, name, context or {}, status_code=status_code)
