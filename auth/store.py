"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository; _row_to_account
is the mapper. The engine components never touch SQL directly -- they call the
four store operations below and nothing else:

  find_account_by(email=|phone=|username=)  -> Account | None
  find_account_by_id(id, projection)        -> dict | None
  update_verification(id, channel, ts)      -> bool
  create_account(account)                   -> str   (seeding / registration)

Security:
  All queries use bound parameters. No f-strings in SQL.
  Projection column names are checked against _PROJECTABLE before they reach
  the select() call, so callers cannot request hashed_password.

Consistency:
  update_verification() is a single-row UPDATE touching exactly one timestamp
  column. Concurrent logins for different accounts never contend; concurrent
  logins for the same account each write "now" to the same column, which is
  last-writer-wins and harmless.

  Transport/database failures (OperationalError etc.) are not caught here.
  They propagate to the caller, which lets them surface as a 500 upstream.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine

from auth.models import Account, LookupField, VerificationChannel

_DEFAULT_DB_URL = "sqlite:///grihome_accounts.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(36), primary_key=True),
    # email/phone/username are unique-ish: the registration flow enforces it,
    # but legacy rows may collide, so lookups take the first match by id.
    Column("email", String(255), index=True),
    Column("phone", String(32), index=True),
    Column("username", String(255), index=True),
    Column("name", String(255)),
    Column("hashed_password", Text),  # NULL for code-only accounts
    Column("role", String(30), nullable=False, server_default="USER"),
    Column("company_name", String(255)),
    Column("avatar_url", Text),
    Column("email_verified_at", String(32)),  # ISO 8601 UTC, NULL = never verified
    Column("mobile_verified_at", String(32)),
    Column("created_at", String(32), nullable=False),
)

# Columns a caller may request through find_account_by_id(). hashed_password
# is deliberately absent.
_PROJECTABLE: frozenset[str] = frozenset(
    {
        "id",
        "email",
        "phone",
        "username",
        "name",
        "role",
        "company_name",
        "avatar_url",
        "email_verified_at",
        "mobile_verified_at",
        "created_at",
    }
)

_VERIFICATION_COLUMNS: dict[VerificationChannel, str] = {
    VerificationChannel.email: "email_verified_at",
    VerificationChannel.mobile: "mobile_verified_at",
}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by verification writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_iso(value: datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account rows.

    Usage:
        store = AccountStore()
        account_id = store.create_account(Account(email="a@x.com", hashed_password=hash_password("pw")))
        account = store.find_account_by(email="a@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> str:
        """Insert a new account and return its id.

        A fresh UUID is assigned when account.id is None. Verification
        timestamps are copied as given so tests and seed scripts can create
        pre-verified accounts.
        """
        account_id = account.id or str(uuid.uuid4())
        with self.engine.connect() as conn:
            conn.execute(
                _accounts.insert().values(
                    id=account_id,
                    email=account.email,
                    phone=account.phone,
                    username=account.username,
                    name=account.name,
                    hashed_password=account.hashed_password,
                    role=account.role,
                    company_name=account.company_name,
                    avatar_url=account.avatar_url,
                    email_verified_at=_to_iso(account.email_verified_at),
                    mobile_verified_at=_to_iso(account.mobile_verified_at),
                    created_at=account.created_at or _now_iso(),
                )
            )
            conn.commit()
        return account_id

    def update_verification(
        self,
        account_id: str,
        channel: VerificationChannel,
        timestamp: datetime | str,
    ) -> bool:
        """Set one channel's verified-at timestamp. The other channel is not touched.

        Returns True if a row was updated, False if account_id was not found.
        """
        column = _VERIFICATION_COLUMNS[VerificationChannel(channel)]
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values({column: _to_iso(timestamp)})
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_account_by(
        self,
        *,
        email: str | None = None,
        phone: str | None = None,
        username: str | None = None,
    ) -> Account | None:
        """Return the first account matching exactly one key, or None.

        Exactly one of email/phone/username must be given. Matching is exact
        and case-sensitive, like the registration flow stores it.
        """
        keys = {k: v for k, v in (("email", email), ("phone", phone), ("username", username)) if v is not None}
        if len(keys) != 1:
            raise ValueError("find_account_by() takes exactly one of email, phone or username")
        (field_name, value), = keys.items()
        return self.find_account_by_field(LookupField(field_name), value)

    def find_account_by_field(self, lookup: LookupField, value: str) -> Account | None:
        """Return the first account whose `lookup` column equals value, or None."""
        column = _accounts.c[LookupField(lookup).value]
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(column == value).order_by(_accounts.c.id).limit(1)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_account_by_id(self, account_id: str, projection: Iterable[str]) -> dict[str, Any] | None:
        """Return only the requested columns for one account, or None if absent.

        The result dict always contains every requested key (value may be None)
        so callers can rely on the shape.
        """
        wanted = tuple(projection)
        unknown = set(wanted) - _PROJECTABLE
        if unknown:
            raise ValueError(f"Unknown projection fields: {unknown!r}")
        if not wanted:
            raise ValueError("projection must name at least one field")
        columns = [_accounts.c[name] for name in wanted]
        with self.engine.connect() as conn:
            row = conn.execute(select(*columns).where(_accounts.c.id == account_id)).fetchone()
        if row is None:
            return None
        return {name: row._mapping[name] for name in wanted}

    def get_account(self, account_id: str) -> Account | None:
        """Return the full account by primary key, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        phone=row.phone,
        username=row.username,
        name=row.name,
        hashed_password=row.hashed_password,
        role=row.role,
        company_name=row.company_name,
        avatar_url=row.avatar_url,
        email_verified_at=row.email_verified_at,
        mobile_verified_at=row.mobile_verified_at,
        created_at=row.created_at,
    )
