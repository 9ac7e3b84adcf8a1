"""Authority store.

The authoritative, persistent store of verified sources and their verified
passages. Records are deduplicated by ``canonical_url``: a second writer for
the same URL adopts the first writer's record instead of failing.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Sequence

from lexground.errors import AuthorityStoreError
from lexground.logging import get_logger
from lexground.memory.database import AuthorityDatabase
from lexground.models.authority import (
    AuthorityPassage,
    AuthorityRecord,
    LicenseTag,
    Locator,
    SourceTier,
    SourceType,
)
from lexground.models.retrieval import ExtractedPassage
from lexground.tools.passage_verifier import verify_passage_in_source
from lexground.utils.ids import new_passage_id, sha256_hex

logger = get_logger(__name__)

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on older builds.
_MAX_IN_PARAMS = 500


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of :meth:`AuthorityStore.upsert_authority`."""

    record: AuthorityRecord
    passages: list[AuthorityPassage]
    created: bool


class AuthorityStore:
    """SQLite-backed store of :class:`AuthorityRecord` and :class:`AuthorityPassage`."""

    def __init__(self, database: AuthorityDatabase) -> None:
        self._db = database

    # ----------------------------------------------------------------- writes

    def upsert_authority(
        self,
        record: AuthorityRecord,
        passages: Sequence[ExtractedPassage],
    ) -> UpsertOutcome:
        """Insert ``record`` with its passages, or adopt the existing record for its URL.

        The record and its passages are written in one transaction. When
        another writer already owns ``record.canonical_url`` nothing is
        written and the existing record with its passages is returned.

        Raises:
            AuthorityStoreError: If a passage is not verbatim in ``record.raw_text``.
        """

        for p in passages:
            if not verify_passage_in_source(p.text, record.raw_text):
                raise AuthorityStoreError(
                    f"Refusing to store passage not found in source text of {record.canonical_url}"
                )

        with self._db.transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO authority_records (
                    id, source_tier, source_type, domain, canonical_url, title,
                    jurisdiction, court, citation, decision_date, act_name,
                    section_path, license_tag, content_hash, raw_text,
                    is_verified, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(canonical_url) DO NOTHING
                """,
                (
                    record.id,
                    record.source_tier.value,
                    record.source_type.value,
                    record.domain,
                    record.canonical_url,
                    record.title,
                    record.jurisdiction,
                    record.court,
                    record.citation,
                    record.decision_date.isoformat() if record.decision_date else None,
                    record.act_name,
                    record.section_path,
                    record.license_tag.value,
                    record.content_hash,
                    record.raw_text,
                    1 if record.is_verified else 0,
                    record.created_at.isoformat(),
                ),
            )
            if cur.rowcount == 0:
                existing = self._select_by_url(conn, record.canonical_url)
                if existing is None:  # pragma: no cover - conflict implies a row
                    raise AuthorityStoreError(f"Conflict without a row for {record.canonical_url}")
                logger.info(
                    "Authority already stored by another writer; adopting %s for %s",
                    existing.id,
                    existing.canonical_url,
                )
                return UpsertOutcome(
                    record=existing,
                    passages=self._select_passages(conn, existing.id, limit=None),
                    created=False,
                )

            stored: list[AuthorityPassage] = []
            for p in passages:
                passage = AuthorityPassage(
                    id=new_passage_id(),
                    authority_id=record.id,
                    passage_text=p.text,
                    locator=p.locator,
                    snippet_hash=sha256_hex(p.text),
                )
                inserted = conn.execute(
                    """
                    INSERT INTO authority_passages (
                        id, authority_id, passage_text, locator_json, snippet_hash, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(authority_id, snippet_hash) DO NOTHING
                    """,
                    (
                        passage.id,
                        passage.authority_id,
                        passage.passage_text,
                        passage.locator.model_dump_json(exclude_none=True),
                        passage.snippet_hash,
                        passage.created_at.isoformat(),
                    ),
                ).rowcount
                if inserted:
                    stored.append(passage)

        logger.info(
            "Stored authority %s (%s) with %d passages",
            record.id,
            record.canonical_url,
            len(stored),
        )
        return UpsertOutcome(record=record, passages=stored, created=True)

    # ------------------------------------------------------------------ reads

    def get(self, authority_id: str) -> AuthorityRecord | None:
        with self._db.read() as conn:
            row = conn.execute(
                "SELECT * FROM authority_records WHERE id = ?", (authority_id,)
            ).fetchone()
        return _row_to_record(row) if row else None

    def get_by_url(self, canonical_url: str) -> AuthorityRecord | None:
        """Return the record for an exact canonical URL."""

        with self._db.read() as conn:
            return self._select_by_url(conn, canonical_url)

    def get_passages(self, authority_id: str, *, limit: int | None = None) -> list[AuthorityPassage]:
        with self._db.read() as conn:
            return self._select_passages(conn, authority_id, limit=limit)

    def passage_ids_for(self, authority_id: str) -> list[str]:
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT id FROM authority_passages WHERE authority_id = ? ORDER BY created_at, id",
                (authority_id,),
            ).fetchall()
        return [r["id"] for r in rows]

    def verified_tiers(self, authority_ids: Iterable[str]) -> dict[str, SourceTier]:
        """Batched existence check: map each existing verified id to its tier.

        Ids that do not exist, or exist unverified, are absent from the result.
        """

        ids = sorted({i for i in authority_ids if i})
        out: dict[str, SourceTier] = {}
        if not ids:
            return out
        with self._db.read() as conn:
            for start in range(0, len(ids), _MAX_IN_PARAMS):
                chunk = ids[start : start + _MAX_IN_PARAMS]
                placeholders = ",".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT id, source_tier FROM authority_records "
                    f"WHERE is_verified = 1 AND id IN ({placeholders})",
                    chunk,
                ).fetchall()
                for r in rows:
                    out[r["id"]] = SourceTier(r["source_tier"])
        return out

    def existing_verified_ids(self, authority_ids: Iterable[str]) -> set[str]:
        return set(self.verified_tiers(authority_ids))

    def search_by_keywords(
        self,
        keywords: Sequence[str],
        *,
        min_overlap: int = 1,
        limit: int = 5,
    ) -> list[AuthorityRecord]:
        """Find verified records whose title, citation or text mention the keywords.

        A record qualifies when at least ``min_overlap`` distinct keywords
        (capped at the number of keywords given) occur case-insensitively in
        any of the three fields. Records with more matching keywords come first.
        """

        kws = [k for k in dict.fromkeys(keywords) if k]
        if not kws:
            return []
        required = max(1, min(min_overlap, len(kws)))

        terms: list[str] = []
        params: list[str] = []
        for kw in kws:
            pattern = f"%{_escape_like(kw)}%"
            terms.append(
                "((title LIKE ? ESCAPE '\\') OR (IFNULL(citation, '') LIKE ? ESCAPE '\\') "
                "OR (raw_text LIKE ? ESCAPE '\\'))"
            )
            params.extend([pattern, pattern, pattern])
        overlap_expr = " + ".join(terms)

        sql = (
            f"SELECT * FROM (SELECT *, ({overlap_expr}) AS overlap "
            f"FROM authority_records WHERE is_verified = 1) "
            f"WHERE overlap >= ? ORDER BY overlap DESC, created_at ASC LIMIT ?"
        )
        with self._db.read() as conn:
            rows = conn.execute(sql, [*params, required, limit]).fetchall()
        return [_row_to_record(r) for r in rows]

    def count(self) -> int:
        with self._db.read() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM authority_records").fetchone()[0])

    def count_passages(self) -> int:
        with self._db.read() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM authority_passages").fetchone()[0])

    def list_all(self) -> list[AuthorityRecord]:
        with self._db.read() as conn:
            rows = conn.execute("SELECT * FROM authority_records ORDER BY created_at, id").fetchall()
        return [_row_to_record(r) for r in rows]

    # -------------------------------------------------------------- internals

    @staticmethod
    def _select_by_url(conn: sqlite3.Connection, canonical_url: str) -> AuthorityRecord | None:
        row = conn.execute(
            "SELECT * FROM authority_records WHERE canonical_url = ?", (canonical_url,)
        ).fetchone()
        return _row_to_record(row) if row else None

    @staticmethod
    def _select_passages(
        conn: sqlite3.Connection, authority_id: str, *, limit: int | None
    ) -> list[AuthorityPassage]:
        sql = "SELECT * FROM authority_passages WHERE authority_id = ? ORDER BY created_at, id"
        params: list[object] = [authority_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = conn.execute(sql, params).fetchall()
        return [_row_to_passage(r) for r in rows]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_record(row: sqlite3.Row) -> AuthorityRecord:
    return AuthorityRecord(
        id=row["id"],
        source_tier=SourceTier(row["source_tier"]),
        source_type=SourceType(row["source_type"]),
        domain=row["domain"],
        canonical_url=row["canonical_url"],
        title=row["title"],
        jurisdiction=row["jurisdiction"],
        court=row["court"],
        citation=row["citation"],
        decision_date=date.fromisoformat(row["decision_date"]) if row["decision_date"] else None,
        act_name=row["act_name"],
        section_path=row["section_path"],
        license_tag=LicenseTag(row["license_tag"]),
        content_hash=row["content_hash"],
        raw_text=row["raw_text"],
        is_verified=bool(row["is_verified"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_passage(row: sqlite3.Row) -> AuthorityPassage:
    return AuthorityPassage(
        id=row["id"],
        authority_id=row["authority_id"],
        passage_text=row["passage_text"],
        locator=Locator.model_validate(json.loads(row["locator_json"])),
        snippet_hash=row["snippet_hash"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )
