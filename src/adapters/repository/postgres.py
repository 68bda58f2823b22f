"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **UNIQUE constraints** on email and username settle concurrent
   registrations: exactly one INSERT wins, the loser gets a
   UniqueViolation which is translated to EmailTaken / UsernameTaken.

2. **Compare-and-swap updates**: every UPDATE carries
   ``WHERE id = %s AND version = %s`` and bumps the version. A writer that
   read an older row updates zero rows and gets StaleAccount, so two
   concurrent verifications can never both flip an account to verified.

3. **CHECK constraints** keep pending code columns paired and forbid a
   pending OTP on a verified account.

Connectivity failures (including pool timeouts) surface as
StoreUnavailable so callers can tell them apart from domain errors.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import EmailTaken, StaleAccount, StoreUnavailable, UsernameTaken
from src.domain.models import Account, PendingCode

logger = logging.getLogger(__name__)

# src/adapters/repository/postgres.py -> <project root>/migrations
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"

_COLUMNS = """
    id, username, email, password_hash, verified,
    otp_code, otp_issued_at, reset_code, reset_issued_at,
    created_at, updated_at, version
"""


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_id(self, account_id: int) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE id = %s", (account_id,))

    def find_by_username(self, username: str) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE username = %s", (username,))

    def find_by_email(self, email: str) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE email = %s", (email,))

    def find_by_pending_reset_code(self, code: str) -> Account | None:
        """Newest holder of the code wins when several accounts share it."""
        sql = f"""
            SELECT {_COLUMNS} FROM accounts
            WHERE reset_code = %s
            ORDER BY reset_issued_at DESC
            LIMIT 1
        """
        return self._fetch_one(sql, (code,))

    def save(self, account: Account) -> Account:
        """
        Insert a new account or update an existing one atomically.

        Inserts when account.id is None. Updates are conditional on the
        version the caller read; the database assigns version and
        updated_at and both are written back onto the passed account.

        Raises:
            EmailTaken / UsernameTaken: UNIQUE constraint violated
            StaleAccount: Row changed or was deleted since it was read
            StoreUnavailable: Database unreachable
        """
        if account.id is None:
            return self._insert(account)
        return self._update(account)

    def delete_by_id(self, account_id: int) -> bool:
        with self._translate_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM accounts WHERE id = %s", (account_id,))
            conn.commit()
            return cursor.rowcount == 1

    def find_all(self) -> list[Account]:
        sql = f"SELECT {_COLUMNS} FROM accounts ORDER BY id"
        with self._translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql)
                return [_row_to_account(row) for row in cursor.fetchall()]

    def _insert(self, account: Account) -> Account:
        sql = """
            INSERT INTO accounts (
                username, email, password_hash, verified,
                otp_code, otp_issued_at, reset_code, reset_issued_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, version, created_at, updated_at
        """
        with self._translate_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (account.username, account.email, account.password_hash, account.verified, *_code_columns(account)))
            row = cursor.fetchone()
            conn.commit()

        account.id, account.version, account.created_at, account.updated_at = row
        return account

    def _update(self, account: Account) -> Account:
        sql = """
            UPDATE accounts
            SET username = %s,
                email = %s,
                password_hash = %s,
                verified = %s,
                otp_code = %s,
                otp_issued_at = %s,
                reset_code = %s,
                reset_issued_at = %s,
                version = version + 1,
                updated_at = NOW()
            WHERE id = %s AND version = %s
            RETURNING version, updated_at
        """
        params = (
            account.username,
            account.email,
            account.password_hash,
            account.verified,
            *_code_columns(account),
            account.id,
            account.version,
        )
        with self._translate_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise StaleAccount()
        account.version, account.updated_at = row
        return account

    def _fetch_one(self, sql: str, params: tuple) -> Account | None:
        with self._translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except UniqueViolation as e:
            constraint = e.diag.constraint_name or ""
            if "username" in constraint:
                raise UsernameTaken() from e
            raise EmailTaken() from e
        except psycopg.OperationalError as e:
            logger.error("Database unavailable: %s", e)
            raise StoreUnavailable() from e


def _code_columns(account: Account) -> tuple:
    otp, reset = account.pending_otp, account.pending_reset
    return (
        otp.code if otp else None,
        otp.issued_at if otp else None,
        reset.code if reset else None,
        reset.issued_at if reset else None,
    )


def _row_to_account(row: dict) -> Account:
    pending_otp = None
    if row["otp_code"] is not None:
        pending_otp = PendingCode(code=row["otp_code"], issued_at=row["otp_issued_at"])
    pending_reset = None
    if row["reset_code"] is not None:
        pending_reset = PendingCode(code=row["reset_code"], issued_at=row["reset_issued_at"])

    return Account(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        verified=row["verified"],
        pending_otp=pending_otp,
        pending_reset=pending_reset,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=row["version"],
    )


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply the SQL files in migrations_dir in filename order.

    Every startup replays all files, so each must be idempotent
    (CREATE ... IF NOT EXISTS).

    Raises:
        RuntimeError: A migration failed to apply
    """
    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    logger.info("Applying %d migration(s) from %s", len(sql_files), migrations_dir)

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except psycopg.Error as e:
            logger.error("Migration %s failed: %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Applied migration %s", sql_file.name)
