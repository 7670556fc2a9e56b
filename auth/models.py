"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). Stores, the
session registry and routes do the work.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Identity:
    """The authenticated principal a session resolves to.

    This is the viewable part of a user record: everything a page may render,
    nothing that could be used to authenticate. Frozen so a resolved identity
    handed to a request cannot be mutated behind the credential store's back.
    """

    username: str
    display_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.username


@dataclass
class User:
    """A credential record as persisted in the users table.

    One record per identity. Created at provisioning time (CLI), read-only
    while the server is running.
    """

    username: str
    hashed_password: str
    display_name: str = ""
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True

    def identity(self) -> Identity:
        return Identity(username=self.username, display_name=self.display_name)


@dataclass(frozen=True)
class Session:
    """One authenticated browser session.

    token_digest is SHA-256(token) -- the raw token is returned to the caller
    once at issue time and never stored. expires_at is None for sessions that
    live until logout or process restart.
    """

    token_digest: bytes
    identity: Identity
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True)
class AuthContext:
    """Per-request authentication state attached as request.state.auth.

    Set once by the session middleware; identity is None for anonymous
    requests.
    """

    identity: Identity | None = None

    @property
    def logged_in(self) -> bool:
        return self.identity is not None
