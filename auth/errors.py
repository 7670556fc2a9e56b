"""
auth/errors.py -- Authentication outcomes that are decisions, not faults.

Both exceptions are terminal: nothing retries them. Callers translate them into
exactly one user-facing result each:

  InvalidUsernameOrPassword -> login view re-rendered with invalidLogin=true
  Unauthenticated           -> redirect to /login

Neither carries detail about *why* authentication failed. Unexpected faults
(database down, exhausted randomness) are not AuthErrors and propagate as 500s.
"""


class AuthError(Exception):
    """Base class for authentication decisions."""


class InvalidUsernameOrPassword(AuthError):
    """Credential mismatch. Deliberately silent on which field was wrong."""

    def __init__(self) -> None:
        super().__init__("invalid username or password")


class Unauthenticated(AuthError):
    """The request carries no session token, or one that does not resolve."""

    def __init__(self) -> None:
        super().__init__("authentication required")
