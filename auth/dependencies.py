"""
auth/dependencies.py -- The access gate and its FastAPI Depends() helpers.

AccessGate is plain decision logic (token in, Identity or nothing out) so it can
be tested without HTTP. The functions below adapt it to FastAPI:

  resolve_auth_context() is the soft gate. The session middleware calls it on
      every request and stores the result as request.state.auth; pages that
      render differently for anonymous users read it from there.
  require_user() is the hard gate. It returns the Identity or raises
      Unauthenticated, which the app's exception handler turns into a redirect
      to /login.

Both read the gate from request.app.state.gate, wired up in the lifespan.

Layer rule: no imports from web/ or api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import Unauthenticated
from auth.models import AuthContext, Identity
from auth.sessions import SessionRegistry
from auth.tokens import SESSION_COOKIE


class AccessGate:
    """Turns a request's session token into an Identity, or denies it."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    def authorize(self, token: str | None) -> Identity | None:
        """Return the Identity for token, or None when the request is unauthenticated.

        A missing or empty token short-circuits without touching the registry.
        """
        if not token:
            return None
        return self.registry.resolve(token)

    def require(self, token: str | None) -> Identity:
        identity = self.authorize(token)
        if identity is None:
            raise Unauthenticated()
        return identity


def session_token(request: Request) -> str:
    """Return the session token carried by the request's cookie, or ""."""
    return request.cookies.get(SESSION_COOKIE, "")


def resolve_auth_context(request: Request) -> AuthContext:
    """Soft gate. Never raises for an unauthenticated request.

    Reuses request.state.auth when the middleware has already resolved it, so
    the registry is consulted once per request.
    """
    existing = getattr(request.state, "auth", None)
    if isinstance(existing, AuthContext):
        return existing
    gate: AccessGate = request.app.state.gate
    return AuthContext(identity=gate.authorize(session_token(request)))


def require_user(request: Request) -> Identity:
    """Hard gate. Use as a FastAPI dependency:

        @router.get("/")
        def index(request: Request, user: Identity = Depends(require_user)): ...
    """
    ctx = resolve_auth_context(request)
    if ctx.identity is None:
        raise Unauthenticated()
    return ctx.identity
