"""
api/main.py -- FastAPI application object for wuzzlmoasta.

Owns everything that is not a page: the lifespan that builds the auth core,
the middleware stack, and the JSON health endpoint. Pages, error views and the
login redirect live in web/ and are attached by asgi.py.

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. SlowAPIMiddleware     -- application-wide default limits (POST /login carries its own)
  3. log_requests          -- one log line per request with latency
  4. attach_auth_context   -- soft gate: request.state.auth on every request

Lifespan handles startup (credential store, session registry, authenticator,
access gate, purge task) and shutdown (cancel purge task, close DB) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import HealthComponents, HealthResponse
from auth.authenticator import Authenticator
from auth.dependencies import AccessGate, resolve_auth_context
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from core.config import get_settings

__version__ = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("wuzzlmoasta.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def install_auth(app: FastAPI, credentials: CredentialStore, registry: SessionRegistry) -> None:
    """Attach the auth core to app.state.

    The registry is created here, once, and passed by reference to both the
    Authenticator and the AccessGate. Tests call this from their own lifespan
    to wire in-memory stores.
    """
    app.state.credentials = credentials
    app.state.sessions = registry
    app.state.authenticator = Authenticator(credentials, registry)
    app.state.gate = AccessGate(registry)


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Evict expired sessions every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        app.state.sessions.purge_expired()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth core on startup, tear it down on shutdown.

    The purge task only runs when sessions can expire; with no TTL there is
    nothing to purge and expired-on-lookup eviction never triggers either.
    """
    logger.info("wuzzlmoasta starting up")
    credentials = CredentialStore(db_url=_settings.users_db_url)
    install_auth(app, credentials, SessionRegistry(ttl_seconds=_settings.session_ttl_seconds))
    user_count = credentials.count_users()
    if user_count:
        logger.info("Auth initialized (%d user(s), session_ttl=%ds)", user_count, _settings.session_ttl_seconds)
    else:
        logger.warning("No users provisioned -- nobody can log in. Run: python main.py add-user <name>")

    purge_task = None
    if _settings.session_ttl_seconds > 0:
        purge_task = asyncio.create_task(_purge_loop(app, _settings.session_purge_interval_seconds))

    yield

    if purge_task is not None:
        purge_task.cancel()
    app.state.credentials.close()
    logger.info("wuzzlmoasta shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="wuzzlmoasta",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

@app.middleware("http")
async def attach_auth_context(request: Request, call_next):
    """Soft gate: resolve the session cookie once and store it as request.state.auth.

    Never redirects. Routes that require login use auth.dependencies.require_user,
    which reads the context stored here.
    """
    request.state.auth = resolve_auth_context(request)
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# Each add_middleware() wraps everything registered before it, so the last one
# added is outermost: TrustedHost -> SlowAPI -> log_requests -> attach_auth_context.
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Health endpoint
#
# No authentication and no rate limit -- load balancers must always reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and credential database reachability."""
    try:
        request.app.state.credentials.count_users()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: credential database unreachable")
        database = "error"
    return HealthResponse(
        version=__version__,
        components=HealthComponents(database=database),
    )
