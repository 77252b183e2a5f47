from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from vwvideos.app.repositories.common import (
    RecordNotFoundError,
    placeholders,
    text_or_none,
    translate_integrity_error,
    utc_now_iso,
)
from vwvideos.app.repositories.database import Database

ALL_TYPES_SLUG = "all"

_SELECT_WITH_COUNTS = """
    SELECT w.id, w.name, w.slug, w.description, w.sort_order, w.created_at, w.updated_at,
           COUNT(wv.video_id) AS video_count
    FROM vw_types w
    LEFT JOIN vw_types_on_videos wv ON wv.vw_type_id = w.id
"""
_UPDATABLE_COLUMNS: frozenset[str] = frozenset({"name", "slug", "description", "sort_order"})


@dataclass(frozen=True)
class VWTypeRecord:
    vw_type_id: int
    name: str
    slug: str
    description: str | None
    sort_order: int
    created_at: str
    updated_at: str
    video_count: int = 0


class VWTypeRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_vw_types(self, *, include_all_type: bool = True) -> list[VWTypeRecord]:
        query = _SELECT_WITH_COUNTS
        params: tuple[object, ...] = ()
        if not include_all_type:
            query += " WHERE w.slug != ?"
            params = (ALL_TYPES_SLUG,)
        query += " GROUP BY w.id ORDER BY w.sort_order ASC, w.name ASC"
        with self._db.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_vw_type(row) for row in rows]

    def get_vw_type(self, vw_type_id: int) -> VWTypeRecord | None:
        with self._db.connection() as conn:
            return _fetch_vw_type(conn, "w.id = ?", vw_type_id)

    def get_by_slug(self, slug: str) -> VWTypeRecord | None:
        with self._db.connection() as conn:
            return _fetch_vw_type(conn, "w.slug = ?", slug)

    def resolve_ids(self, identifiers: list[str]) -> list[int]:
        """Map slugs or names (case-insensitive) to ids, silently skipping unknown values."""
        resolved: list[int] = []
        with self._db.connection() as conn:
            for identifier in identifiers:
                normalized = identifier.strip()
                if not normalized:
                    continue
                row = conn.execute(
                    """
                    SELECT id FROM vw_types
                    WHERE slug = lower(?) OR lower(name) = lower(?)
                    ORDER BY CASE WHEN slug = lower(?) THEN 0 ELSE 1 END
                    LIMIT 1
                    """,
                    (normalized, normalized, normalized),
                ).fetchone()
                if row is not None and int(row["id"]) not in resolved:
                    resolved.append(int(row["id"]))
        return resolved

    def create_vw_type(
        self,
        *,
        name: str,
        slug: str,
        description: str | None,
        sort_order: int,
    ) -> VWTypeRecord:
        now_iso = utc_now_iso()
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO vw_types (
                        name, slug, description, sort_order, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (name, slug, description, sort_order, now_iso, now_iso),
                )
                record = _fetch_vw_type(conn, "w.id = ?", int(cursor.lastrowid or 0))
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def update_vw_type(self, vw_type_id: int, changes: dict[str, Any]) -> VWTypeRecord:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"unsupported vw_type columns: {sorted(unknown)}")
        try:
            with self._db.connection() as conn:
                if changes:
                    assignments = ", ".join(f"{column} = ?" for column in changes)
                    cursor = conn.execute(
                        f"UPDATE vw_types SET {assignments}, updated_at = ? WHERE id = ?",
                        (*changes.values(), utc_now_iso(), vw_type_id),
                    )
                    if cursor.rowcount == 0:
                        raise RecordNotFoundError(f"vw_type {vw_type_id} not found")
                record = _fetch_vw_type(conn, "w.id = ?", vw_type_id)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        if record is None:
            raise RecordNotFoundError(f"vw_type {vw_type_id} not found")
        return record

    def delete_vw_type(self, vw_type_id: int) -> None:
        try:
            with self._db.connection() as conn:
                cursor = conn.execute("DELETE FROM vw_types WHERE id = ?", (vw_type_id,))
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"vw_type {vw_type_id} not found")

    def delete_vw_types(self, vw_type_ids: list[int]) -> int:
        if not vw_type_ids:
            return 0
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    f"DELETE FROM vw_types WHERE id IN ({placeholders(len(vw_type_ids))})",
                    vw_type_ids,
                )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        return cursor.rowcount


def _fetch_vw_type(
    conn: sqlite3.Connection,
    condition: str,
    value: object,
) -> VWTypeRecord | None:
    row = conn.execute(
        _SELECT_WITH_COUNTS + f" WHERE {condition} GROUP BY w.id",
        (value,),
    ).fetchone()
    return None if row is None else _row_to_vw_type(row)


def _row_to_vw_type(row: sqlite3.Row) -> VWTypeRecord:
    return VWTypeRecord(
        vw_type_id=int(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        description=text_or_none(row["description"]),
        sort_order=int(row["sort_order"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        video_count=int(row["video_count"] or 0),
    )
