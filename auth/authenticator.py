"""
auth/authenticator.py -- Login orchestration: verify credentials, then issue a session.

No partial success: a token is registered only after verification succeeds,
and a failed verification leaves the registry untouched.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging

from auth.errors import InvalidUsernameOrPassword
from auth.sessions import SessionRegistry
from auth.store import CredentialStore

logger = logging.getLogger("wuzzlmoasta.auth")


class Authenticator:
    def __init__(self, credentials: CredentialStore, registry: SessionRegistry) -> None:
        self.credentials = credentials
        self.registry = registry

    def login(self, username: str, password: str) -> str:
        """Return a new session token for a valid username/password pair.

        Raises InvalidUsernameOrPassword on any mismatch. The exception says
        nothing about which half of the pair was wrong.
        """
        identity = self.credentials.verify(username, password)
        if identity is None:
            logger.warning("Login failed for %r", username)
            raise InvalidUsernameOrPassword()
        token = self.registry.issue(identity)
        logger.info("Login succeeded for %r", identity.username)
        return token

    def logout(self, token: str | None) -> None:
        """End the session behind token. Idempotent."""
        self.registry.revoke(token)
