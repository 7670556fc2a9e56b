"""
auth/store.py -- SQLAlchemy Core persistence layer for credential records.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user is the mapper. Route and gate code never touches SQL directly.

Records are written at provisioning time (main.py add-user) and only read
while the server runs, so the store needs no locking of its own: SQLite in WAL
mode serves concurrent readers without blocking.

Security:
  All queries use bound parameters. No f-strings in SQL.
  verify() always runs exactly one bcrypt check, against the real hash or
  DUMMY_HASH, so response time does not reveal whether a username exists.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from auth.models import Identity, User
from auth.tokens import DUMMY_HASH, verify_password
from core.config import get_settings

logger = logging.getLogger("wuzzlmoasta.auth")

# Connections held open at once. Must cover the server's worker threads;
# SQLAlchemy's default for in-memory SQLite (SingletonThreadPool) closes
# connections other threads are still using once it holds more than five.
_POOL_SIZE = 20

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("display_name", String(255), nullable=False, server_default=""),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on the provisioning writer."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for credential records.

    Usage:
        store = CredentialStore()
        store.create_user(User(username="alice", hashed_password=hash_password("secret1")))
        identity = store.verify("alice", "secret1")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().users_db_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(
            db_url,
            connect_args=connect_args,
            poolclass=QueuePool,
            pool_size=_POOL_SIZE,
            max_overflow=_POOL_SIZE,
        )
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, username: str, password: str) -> Identity | None:
        """Return the Identity for a matching username/password pair, else None.

        Unknown username, wrong password and inactive account all collapse to
        None. The caller cannot tell them apart, and neither can a stopwatch:
        bcrypt runs once on every path.
        """
        user = self.get_by_username(username)
        if user is None:
            verify_password(password, DUMMY_HASH)
            return None
        if not verify_password(password, user.hashed_password):
            return None
        if not user.is_active:
            return None
        return user.identity()

    # ------------------------------------------------------------------
    # Provisioning and queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new credential record and return its database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    display_name=user.display_name,
                    hashed_password=user.hashed_password,
                    created_at=_now_iso(),
                    is_active=1 if user.is_active else 0,
                )
            )
            conn.commit()
            user_id = result.inserted_primary_key[0]
        logger.info("Provisioned user %r (id=%d)", user.username, user_id)
        return user_id

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        display_name=row.display_name or "",
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )
