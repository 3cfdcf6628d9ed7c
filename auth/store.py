"""
auth/store.py -- SQLAlchemy Core persistence layer for User records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Service and route
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash is excluded from normal reads. Only
  get_by_email_with_password() selects it, so a login path has to opt in
  explicitly. Only set_password_hash() writes it, so no other save can wipe
  or replace the stored credential.

Writes:
  Every write method UPDATEs only its own columns (plus updated_at). A flow
  that loaded a User before a slow step (bcrypt, SMTP) cannot revert a
  concurrent role or active-flag change by writing the whole record back.

Uniqueness:
  email and phone carry UNIQUE constraints. Emails are lower-cased and phones
  reduced to their digits on every write and lookup, so "A@X.com" and
  "a@x.com", or "555-123-4567" and "5551234567", are the same key. Callers
  pre-check for friendly errors and treat sqlalchemy IntegrityError as the
  authoritative signal for the race where two inserts pass the pre-check.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    or_,
    select,
    text,
)
from sqlalchemy.engine import Engine

from auth.models import User
from auth.validators import normalize_email, normalize_phone

_DEFAULT_DB_URL = "sqlite:///./onushilon.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32), nullable=False, unique=True),
    Column("age", Integer, nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default="user"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("reset_otp", String(6), nullable=False, server_default=""),
    Column("reset_otp_expire_at", Integer, nullable=False, server_default="0"),  # epoch millis
    Column("last_login", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Every column except the hash -- the default projection for reads.
_public_columns = [c for c in _users.c if c.name != "hashed_password"]


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///./onushilon.db")
        user_id = store.create_user(user)   # user.hashed_password must be set
        user = store.get_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its assigned id.

        The User must already carry a hash from CredentialStore.set_password().
        Raises sqlalchemy.exc.IntegrityError if the email or phone is taken.
        """
        if not user.hashed_password:
            raise ValueError("create_user() requires a hashed password.")
        user.email = normalize_email(user.email)
        user.phone = normalize_phone(user.phone)
        user_id = _new_id()
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    phone=user.phone,
                    age=user.age,
                    hashed_password=user.hashed_password,
                    role=user.role,
                    is_active=user.is_active,
                    reset_otp=user.reset_otp,
                    reset_otp_expire_at=user.reset_otp_expire_at,
                    last_login=user.last_login,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        user.id = user_id
        user.created_at = now
        user.updated_at = now
        return user_id

    def save(self, user: User) -> bool:
        """Write the self-editable profile fields (name, email, phone, age).

        Role, active flag, credential, OTP and last_login each have their own
        targeted write below. Every write touches only its own columns, so a
        flow holding a stale User cannot revert a concurrent change to a
        field it never meant to modify.

        Returns False if the id was not found. Raises
        sqlalchemy.exc.IntegrityError if a changed email or phone collides
        with another account.
        """
        updated_at = self._update(
            user.id,
            name=user.name,
            email=normalize_email(user.email),
            phone=normalize_phone(user.phone),
            age=user.age,
        )
        if updated_at is None:
            return False
        user.updated_at = updated_at
        return True

    def set_role(self, user_id: str, role: str) -> bool:
        return self._update(user_id, role=role) is not None

    def set_active(self, user_id: str, is_active: bool) -> bool:
        return self._update(user_id, is_active=is_active) is not None

    def touch_last_login(self, user_id: str, when: str) -> bool:
        return self._update(user_id, last_login=when) is not None

    def set_reset_otp(self, user_id: str, otp: str, expire_at: int) -> bool:
        """Store a pending OTP. Code and expiry always land in one statement."""
        return self._update(user_id, reset_otp=otp, reset_otp_expire_at=expire_at) is not None

    def clear_reset_otp(self, user_id: str) -> bool:
        return self._update(user_id, reset_otp="", reset_otp_expire_at=0) is not None

    def set_password_hash(self, user_id: str, hashed_password: str) -> bool:
        """Replace the stored hash and clear any pending OTP in the same UPDATE.

        The hash must come from CredentialStore.set_password(); the store
        never hashes on its own.
        """
        if not hashed_password:
            raise ValueError("set_password_hash() requires a hashed password.")
        updated_at = self._update(
            user_id,
            hashed_password=hashed_password,
            reset_otp="",
            reset_otp_expire_at=0,
        )
        return updated_at is not None

    def _update(self, user_id: str, **values) -> str | None:
        """UPDATE only the given columns plus updated_at. Returns the new updated_at, or None if not found."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(updated_at=now, **values))
            conn.commit()
        return now if result.rowcount > 0 else None

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by id. The hash is not loaded."""
        return self._fetch_one(select(*_public_columns).where(_users.c.id == user_id))

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). The hash is not loaded."""
        return self._fetch_one(select(*_public_columns).where(_users.c.email == normalize_email(email)))

    def get_by_email_with_password(self, email: str) -> User | None:
        """Look up a user by email including the password hash. Login path only."""
        return self._fetch_one(_users.select().where(_users.c.email == normalize_email(email)))

    def get_by_phone(self, phone: str) -> User | None:
        return self._fetch_one(select(*_public_columns).where(_users.c.phone == normalize_phone(phone)))

    def has_admin(self) -> bool:
        """Return True if at least one admin account exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users).where(_users.c.role == "admin")).scalar()
        return (result or 0) > 0

    def list_users(
        self,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[User], int]:
        """Return (page, total) for the filtered user list, newest first.

        search is a case-insensitive substring match on name or email. LIKE
        wildcards in the search term are escaped so they match literally.
        """
        conditions = []
        if role is not None:
            conditions.append(_users.c.role == role)
        if is_active is not None:
            conditions.append(_users.c.is_active == is_active)
        if search:
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped.lower()}%"
            conditions.append(
                or_(
                    func.lower(_users.c.name).like(pattern, escape="\\"),
                    _users.c.email.like(pattern, escape="\\"),
                )
            )
        query = select(*_public_columns).where(*conditions)
        count_query = select(func.count()).select_from(_users).where(*conditions)
        with self.engine.connect() as conn:
            total = conn.execute(count_query).scalar() or 0
            rows = conn.execute(
                query.order_by(_users.c.created_at.desc(), _users.c.id).offset(offset).limit(limit)
            ).fetchall()
        return [_row_to_user(r) for r in rows], total

    def count_users(self, is_active: bool | None = None) -> int:
        query = select(func.count()).select_from(_users)
        if is_active is not None:
            query = query.where(_users.c.is_active == is_active)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def count_by_role(self) -> dict[str, int]:
        """Return {role: count} for every role that has at least one user."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(_users.c.role, func.count()).group_by(_users.c.role)).fetchall()
        return {role: count for role, count in rows}

    def recent_users(self, limit: int = 5) -> list[User]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(*_public_columns).order_by(_users.c.created_at.desc(), _users.c.id).limit(limit)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, query) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # hashed_password is absent from the default projection.
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        age=row.age,
        hashed_password=getattr(row, "hashed_password", None),
        role=row.role,
        is_active=bool(row.is_active),
        reset_otp=row.reset_otp or "",
        reset_otp_expire_at=row.reset_otp_expire_at or 0,
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
