"""Missing-authority log.

Append-only audit trail of every retrieval failure and every failed grounding
validation. Nothing downstream reads it back into content; it exists for
operators to see where the authority corpus has gaps.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from lexground.logging import get_logger
from lexground.memory.database import AuthorityDatabase
from lexground.models.retrieval import MissingAuthorityLogEntry, MissingAuthorityTag
from lexground.utils.ids import new_log_id

logger = get_logger(__name__)


class MissingAuthorityLog:
    """Append-only log stored next to the authority records."""

    def __init__(self, database: AuthorityDatabase) -> None:
        self._db = database

    def append(
        self,
        *,
        claim_text: str,
        error_tag: MissingAuthorityTag,
        search_query: str,
        requested_skill_ids: Sequence[str] = (),
        search_results: dict[str, Any] | None = None,
        session_id: str | None = None,
        asset_id: str | None = None,
    ) -> MissingAuthorityLogEntry:
        """Write one entry and return it."""

        entry = MissingAuthorityLogEntry(
            id=new_log_id(),
            claim_text=claim_text,
            requested_skill_ids=list(requested_skill_ids),
            search_query=search_query,
            search_results=search_results,
            error_tag=error_tag,
            session_id=session_id,
            asset_id=asset_id,
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO missing_authority_log (
                    id, claim_text, requested_skill_ids, search_query, search_results,
                    error_tag, session_id, asset_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.claim_text,
                    json.dumps(entry.requested_skill_ids, ensure_ascii=False),
                    entry.search_query,
                    json.dumps(entry.search_results, ensure_ascii=False, default=str)
                    if entry.search_results is not None
                    else None,
                    entry.error_tag.value,
                    entry.session_id,
                    entry.asset_id,
                    entry.created_at.isoformat(),
                ),
            )
        logger.warning(
            "Missing authority logged: tag=%s id=%s query=%r",
            entry.error_tag.value,
            entry.id,
            entry.search_query,
        )
        return entry

    def get(self, entry_id: str) -> MissingAuthorityLogEntry | None:
        with self._db.read() as conn:
            row = conn.execute(
                "SELECT * FROM missing_authority_log WHERE id = ?", (entry_id,)
            ).fetchone()
        return _row_to_entry(row) if row else None

    def list_recent(
        self,
        *,
        limit: int = 20,
        error_tag: MissingAuthorityTag | None = None,
    ) -> list[MissingAuthorityLogEntry]:
        """Newest entries first, optionally filtered by tag."""

        sql = "SELECT * FROM missing_authority_log"
        params: list[object] = []
        if error_tag is not None:
            sql += " WHERE error_tag = ?"
            params.append(error_tag.value)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        with self._db.read() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_entry(r) for r in rows]

    def count(self, error_tag: MissingAuthorityTag | None = None) -> int:
        with self._db.read() as conn:
            if error_tag is None:
                row = conn.execute("SELECT COUNT(*) FROM missing_authority_log").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM missing_authority_log WHERE error_tag = ?",
                    (error_tag.value,),
                ).fetchone()
        return int(row[0])


def _row_to_entry(row: Any) -> MissingAuthorityLogEntry:
    return MissingAuthorityLogEntry(
        id=row["id"],
        claim_text=row["claim_text"],
        requested_skill_ids=json.loads(row["requested_skill_ids"]),
        search_query=row["search_query"],
        search_results=json.loads(row["search_results"]) if row["search_results"] else None,
        error_tag=MissingAuthorityTag(row["error_tag"]),
        session_id=row["session_id"],
        asset_id=row["asset_id"],
        created_at=row["created_at"],
    )
