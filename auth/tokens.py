"""
auth/tokens.py -- Password hashing, session token primitives, and the cookie helper.

Security design decisions:
  Passwords: bcrypt, used directly. Bcrypt's cost factor makes brute-force of
       low-entropy secrets expensive. _DUMMY_HASH lets the credential store run
       a full bcrypt check for unknown usernames so response time does not
       reveal whether an account exists.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy from the
       OS CSPRNG, encoded as 43 URL-safe characters. Tokens carry no data --
       they are opaque handles into the server-side session registry, so there
       is nothing to sign and nothing to decode.

  Token digests: the registry keys sessions by SHA-256(token). A plain SHA-256
       is enough here (no HMAC key, no bcrypt) because the input already has
       256 bits of entropy; the digest only keeps raw tokens out of memory
       dumps and out of dict-lookup timing.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import re
import secrets

import bcrypt

from core.config import get_settings

SESSION_COOKIE = "UserSessionId"

_TOKEN_BYTES = 32
# token_urlsafe(32) -> base64url without padding -> exactly 43 characters.
_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]{43}")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; longer passwords are rejected by
    bcrypt 4.x, so callers (the CLI) cap input length before hashing.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long input.
        return False


# Computed once at module load so the first failed login is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_password("wuzzlmoasta_timing_dummy")


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a fresh opaque session token (256 bits, URL-safe)."""
    return secrets.token_urlsafe(_TOKEN_BYTES)


def is_well_formed(token: str | None) -> bool:
    """Cheap shape check run before any registry lookup."""
    return bool(token) and _TOKEN_RE.fullmatch(token) is not None


def digest_token(token: str) -> bytes:
    return hashlib.sha256(token.encode("ascii")).digest()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs (CSRF mitigation).
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the session TTL when one is configured; otherwise the
        cookie is a browser-session cookie, like the session itself.
    """
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_ttl_seconds or None,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
