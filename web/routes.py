"""
web/routes.py -- Jinja2 template routes for the wuzzlmoasta web UI.

Routes:
  GET  /        -- the protected page (login required)
  GET  /login   -- login form; logged-in users go straight to /
  POST /login   -- handle password login, set UserSessionId cookie
  POST /logout  -- revoke the session, clear the cookie, redirect /login

The login contract with the templates is deliberately small: login.html gets
invalidLogin (bool), index.html gets user (Identity). Nothing about why a
login failed ever reaches a template.
"""

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from api.limiter import limiter, login_limit
from auth.authenticator import Authenticator
from auth.dependencies import require_user, resolve_auth_context, session_token
from auth.errors import InvalidUsernameOrPassword
from auth.models import Identity
from auth.tokens import clear_session_cookie, set_session_cookie
from web.views import render_page

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def index(request: Request, user: Identity = Depends(require_user)) -> HTMLResponse:
    return render_page(request, "index.html", {"user": user})


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> Response:
    """Render the login page. Already-authenticated users are sent to /."""
    if resolve_auth_context(request).logged_in:
        return RedirectResponse("/", status_code=302)
    return render_page(request, "login.html", {"invalidLogin": False})


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(login_limit)
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> Response:
    """Handle the login form.

    Failure re-renders the form with invalidLogin=true and sets no cookie.
    Success sets the session cookie and redirects to the protected page.
    """
    authenticator: Authenticator = request.app.state.authenticator
    try:
        token = authenticator.login(username, password)
    except InvalidUsernameOrPassword:
        resp = render_page(request, "login.html", {"invalidLogin": True, "username": username})
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = RedirectResponse("/", status_code=302)
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Revoke the current session (if any), clear the cookie and redirect to /login."""
    authenticator: Authenticator = request.app.state.authenticator
    authenticator.logout(session_token(request))
    resp = RedirectResponse("/login", status_code=302)
    clear_session_cookie(resp)
    return resp
