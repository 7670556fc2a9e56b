"""
auth/sessions.py -- In-process registry of live sessions.

The registry is the only shared mutable state in the auth core. One instance is
created in the application lifespan and handed to the Authenticator and the
AccessGate; nothing reaches it through module globals.

Storage: dict[SHA-256(token) -> Session] behind a threading.Lock. Every public
method takes the lock for its whole read-modify-write, so issue/resolve/revoke
are atomic with respect to one another. Route handlers run in Starlette's
thread pool, which is why this is a threading lock and not an asyncio one.
Critical sections are dict operations only -- no I/O happens under the lock.

Lookup: the dict is keyed by digest, never by raw token, and a hit is confirmed
with hmac.compare_digest. Timing of the dict probe can at most leak bits of a
SHA-256 output, which says nothing useful about any live token.

Lifetime: nothing is persisted. A restart drops every session and users log in
again.
"""

from __future__ import annotations

import hmac
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.models import Identity, Session
from auth.tokens import digest_token, generate_session_token, is_well_formed

logger = logging.getLogger("wuzzlmoasta.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionRegistry:
    """Maps opaque session tokens to identities.

    Usage:
        registry = SessionRegistry(ttl_seconds=3600)
        token = registry.issue(identity)
        registry.resolve(token)   # -> Identity, or None once expired/revoked
        registry.revoke(token)
    """

    def __init__(
        self,
        ttl_seconds: int = 0,
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], str] = generate_session_token,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._token_factory = token_factory
        self._sessions: dict[bytes, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def issue(self, identity: Identity, ttl_seconds: int | None = None) -> str:
        """Create a session for identity and return its token.

        ttl_seconds overrides the registry default for this one session; 0
        means no expiry. A freshly drawn token that collides with a live one is
        discarded and redrawn, so the returned token is never already in use.
        Errors from the randomness source propagate.
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        while True:
            token = self._token_factory()
            digest = digest_token(token)
            now = self._clock()
            session = Session(
                token_digest=digest,
                identity=identity,
                created_at=now,
                expires_at=now + timedelta(seconds=ttl) if ttl > 0 else None,
            )
            with self._lock:
                if digest not in self._sessions:
                    self._sessions[digest] = session
                    break
            logger.warning("Session token collision; drawing a new token")
        logger.debug("Issued session for %r (ttl=%ds)", identity.username, ttl)
        return token

    def resolve(self, token: str | None) -> Identity | None:
        """Return the Identity behind token, or None if it is absent, malformed or expired.

        An expired session found during lookup is evicted on the spot.
        """
        if not is_well_formed(token):
            return None
        digest = digest_token(token)
        now = self._clock()
        with self._lock:
            session = self._sessions.get(digest)
            if session is None or not hmac.compare_digest(session.token_digest, digest):
                return None
            if session.is_expired(now):
                del self._sessions[digest]
                return None
            return session.identity

    def revoke(self, token: str | None) -> None:
        """Forget token. Revoking an unknown or already-revoked token is a no-op."""
        if not is_well_formed(token):
            return
        with self._lock:
            self._sessions.pop(digest_token(token), None)

    def revoke_user(self, username: str) -> int:
        """Drop every session belonging to username. Returns the number removed."""
        with self._lock:
            doomed = [d for d, s in self._sessions.items() if s.identity.username == username]
            for d in doomed:
                del self._sessions[d]
        return len(doomed)

    def purge_expired(self) -> int:
        """Delete all expired sessions. Returns number of sessions removed."""
        now = self._clock()
        with self._lock:
            doomed = [d for d, s in self._sessions.items() if s.is_expired(now)]
            for d in doomed:
                del self._sessions[d]
        if doomed:
            logger.info("Purged %d expired session(s)", len(doomed))
        return len(doomed)
