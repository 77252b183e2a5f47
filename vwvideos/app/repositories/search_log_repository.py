from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

from vwvideos.app.repositories.common import text_or_none, utc_now_iso
from vwvideos.app.repositories.database import Database

SearchLogSortColumn = Literal["term", "partial_ip_address", "results_count", "created_at"]
_SORTABLE_COLUMNS: frozenset[str] = frozenset(get_args(SearchLogSortColumn))


@dataclass(frozen=True)
class SearchLogRecord:
    log_id: int
    term: str
    partial_ip_address: str | None
    results_count: int | None
    created_at: str


class SearchLogRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def record_search(
        self,
        *,
        term: str,
        partial_ip_address: str | None,
        results_count: int | None,
    ) -> SearchLogRecord:
        created_at = utc_now_iso()
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO search_logs (term, partial_ip_address, results_count, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (term, partial_ip_address, results_count, created_at),
            )
        return SearchLogRecord(
            log_id=int(cursor.lastrowid or 0),
            term=term,
            partial_ip_address=partial_ip_address,
            results_count=results_count,
            created_at=created_at,
        )

    def list_search_logs(
        self,
        *,
        limit: int,
        offset: int,
        sort_column: SearchLogSortColumn = "created_at",
        descending: bool = True,
    ) -> tuple[list[SearchLogRecord], int]:
        if sort_column not in _SORTABLE_COLUMNS:
            raise ValueError(f"unsupported search log sort column: {sort_column}")
        direction = "DESC" if descending else "ASC"
        with self._db.connection() as conn:
            total_row = conn.execute("SELECT COUNT(*) AS total FROM search_logs").fetchone()
            rows = conn.execute(
                f"""
                SELECT id, term, partial_ip_address, results_count, created_at
                FROM search_logs
                ORDER BY {sort_column} {direction}, id {direction}
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
        records = [
            SearchLogRecord(
                log_id=int(row["id"]),
                term=str(row["term"]),
                partial_ip_address=text_or_none(row["partial_ip_address"]),
                results_count=(
                    int(row["results_count"]) if row["results_count"] is not None else None
                ),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]
        return records, int(total_row["total"])
