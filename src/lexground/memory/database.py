"""SQLite database shared by the authority store and the missing-authority log.

Each operation opens its own connection, so the database can be shared by
threads and worker processes without any in-process coordination. Uniqueness
of ``canonical_url`` is enforced by the schema; immutability of authority
records and of the audit log is enforced by triggers.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from lexground.errors import AuthorityStoreError
from lexground.logging import get_logger

logger = get_logger(__name__)

DB_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS authority_records (
    id             TEXT PRIMARY KEY,
    source_tier    TEXT NOT NULL,
    source_type    TEXT NOT NULL,
    domain         TEXT NOT NULL,
    canonical_url  TEXT NOT NULL UNIQUE,
    title          TEXT NOT NULL,
    jurisdiction   TEXT NOT NULL,
    court          TEXT,
    citation       TEXT,
    decision_date  TEXT,
    act_name       TEXT,
    section_path   TEXT,
    license_tag    TEXT NOT NULL,
    content_hash   TEXT NOT NULL,
    raw_text       TEXT NOT NULL,
    is_verified    INTEGER NOT NULL DEFAULT 1,
    created_at     TEXT NOT NULL,
    CHECK (source_tier IN ('A', 'B', 'C')),
    CHECK (source_type IN ('CASE', 'STATUTE', 'REGULATION', 'ARTICLE', 'TEXTBOOK', 'OTHER')),
    CHECK (license_tag IN ('PUBLIC_LEGAL_TEXT', 'CC_BY_SA', 'RESTRICTED', 'UNKNOWN'))
);

CREATE TABLE IF NOT EXISTS authority_passages (
    id             TEXT PRIMARY KEY,
    authority_id   TEXT NOT NULL,
    passage_text   TEXT NOT NULL,
    locator_json   TEXT NOT NULL,
    snippet_hash   TEXT NOT NULL,
    created_at     TEXT NOT NULL,
    FOREIGN KEY (authority_id) REFERENCES authority_records(id),
    UNIQUE (authority_id, snippet_hash)
);

CREATE INDEX IF NOT EXISTS idx_authority_passages_authority
    ON authority_passages(authority_id);

CREATE TABLE IF NOT EXISTS missing_authority_log (
    id                   TEXT PRIMARY KEY,
    claim_text           TEXT NOT NULL,
    requested_skill_ids  TEXT NOT NULL,
    search_query         TEXT NOT NULL,
    search_results       TEXT,
    error_tag            TEXT NOT NULL,
    session_id           TEXT,
    asset_id             TEXT,
    created_at           TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_missing_authority_log_tag
    ON missing_authority_log(error_tag, created_at);

CREATE TRIGGER IF NOT EXISTS authority_records_immutable
BEFORE UPDATE ON authority_records
BEGIN
    SELECT RAISE(ABORT, 'authority records are immutable');
END;

CREATE TRIGGER IF NOT EXISTS authority_records_never_deleted
BEFORE DELETE ON authority_records
BEGIN
    SELECT RAISE(ABORT, 'authority records are never deleted');
END;

CREATE TRIGGER IF NOT EXISTS missing_authority_log_append_only_update
BEFORE UPDATE ON missing_authority_log
BEGIN
    SELECT RAISE(ABORT, 'missing authority log is append-only');
END;

CREATE TRIGGER IF NOT EXISTS missing_authority_log_append_only_delete
BEFORE DELETE ON missing_authority_log
BEGIN
    SELECT RAISE(ABORT, 'missing authority log is append-only');
END;
"""


class AuthorityDatabase:
    """Connection factory and schema owner for one SQLite file."""

    def __init__(self, path: Path, *, busy_timeout_s: float = 30.0, enable_wal: bool = True) -> None:
        self.path = Path(path)
        self._busy_timeout_s = busy_timeout_s
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize(enable_wal=enable_wal)

    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly with BEGIN IMMEDIATE
        conn = sqlite3.connect(self.path, timeout=self._busy_timeout_s, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _initialize(self, *, enable_wal: bool) -> None:
        conn = self._open()
        try:
            if enable_wal:
                conn.execute("PRAGMA journal_mode = WAL;")
            conn.execute("PRAGMA synchronous = NORMAL;")
            conn.executescript(_SCHEMA)
            version = conn.execute("PRAGMA user_version;").fetchone()[0]
            if version == 0:
                conn.execute(f"PRAGMA user_version = {DB_VERSION};")
            elif version != DB_VERSION:
                raise AuthorityStoreError(
                    f"Database version mismatch: found {version}, expected {DB_VERSION}. "
                    "Migration required."
                )
        except sqlite3.Error as e:
            raise AuthorityStoreError(f"Cannot initialize authority database at {self.path}: {e}") from e
        finally:
            conn.close()
        logger.debug("Authority database ready at %s", self.path)

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Connection for read-only queries."""

        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction; commits on success, rolls back on exception.

        ``BEGIN IMMEDIATE`` takes the write lock up front so that concurrent
        writers queue on the busy timeout instead of failing on lock upgrade.
        """

        conn = self._open()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()
