"""
web/errors.py -- Exception handlers that turn failures into pages.

  Unauthenticated        -> 302 /login (never an error page)
  HTTPException (any)    -> the mapped error view with the same status
  RateLimitExceeded      -> 429 view with Retry-After
  Exception (unexpected) -> logged with traceback, 500 view, no detail leaked

register_error_handlers() is called from asgi.py once the web router is
mounted, keeping api/ free of any HTML concerns.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth.dependencies import session_token
from auth.errors import Unauthenticated
from auth.tokens import clear_session_cookie
from web.views import render_error

logger = logging.getLogger("wuzzlmoasta.web")

LOGIN_PATH = "/login"


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> Response:
    """Redirect to the login page.

    A cookie that failed to resolve (expired, revoked, or forged) is deleted
    in the same response so the browser stops presenting it.
    """
    resp = RedirectResponse(LOGIN_PATH, status_code=302)
    if session_token(request):
        clear_session_cookie(resp)
    return resp


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render the 429 view.

    Raised by the @limiter.limit wrapper on POST /login, inside the route, so
    Starlette runs this sync handler in its thread pool like any other.
    """
    logger.warning("Rate limit exceeded on %s %s", request.method, request.url.path)
    retry_after = int(getattr(exc, "retry_after", 60) or 60)
    return render_error(request, 429, headers={"Retry-After": str(retry_after)})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render the view mapped to exc.status_code.

    Covers unknown routes too: Starlette raises HTTPException(404) when nothing
    matches, so every unrouted path lands on the 404 view.
    """
    return render_error(request, exc.status_code, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unexpected server errors.

    The raw exception goes to the log only, never into the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return render_error(request, 500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
