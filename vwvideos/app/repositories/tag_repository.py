from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from vwvideos.app.repositories.common import (
    RecordNotFoundError,
    placeholders,
    text_or_none,
    translate_integrity_error,
    utc_now_iso,
)
from vwvideos.app.repositories.database import PUBLIC_VIDEO_PREDICATE, Database
from vwvideos.app.slugs import make_slug, with_numeric_suffix

_SELECT_WITH_COUNTS = """
    SELECT t.id, t.name, t.slug, t.description, t.created_at, t.updated_at,
           COUNT(tv.video_id) AS video_count
    FROM tags t
    LEFT JOIN tags_on_videos tv ON tv.tag_id = t.id
"""


@dataclass(frozen=True)
class TagRecord:
    tag_id: int
    name: str
    slug: str
    description: str | None
    created_at: str
    updated_at: str
    video_count: int = 0


class TagRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_tags(self) -> list[TagRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                _SELECT_WITH_COUNTS + " GROUP BY t.id ORDER BY t.name ASC"
            ).fetchall()
        return [_row_to_tag(row) for row in rows]

    def list_navigation_tags(self, *, limit: int) -> list[TagRecord]:
        """Tags with at least one public video, most used first."""
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT t.id, t.name, t.slug, t.description, t.created_at, t.updated_at,
                       COUNT(v.id) AS video_count
                FROM tags t
                JOIN tags_on_videos tv ON tv.tag_id = t.id
                JOIN videos v ON v.id = tv.video_id
                WHERE {PUBLIC_VIDEO_PREDICATE}
                GROUP BY t.id
                HAVING COUNT(v.id) > 0
                ORDER BY video_count DESC, t.name ASC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [_row_to_tag(row) for row in rows]

    def get_tag(self, tag_id: int) -> TagRecord | None:
        with self._db.connection() as conn:
            return _fetch_tag(conn, "t.id = ?", tag_id)

    def get_by_slug(self, slug: str) -> TagRecord | None:
        with self._db.connection() as conn:
            return _fetch_tag(conn, "t.slug = ?", slug)

    def get_by_name(self, name: str) -> TagRecord | None:
        with self._db.connection() as conn:
            return _fetch_tag(conn, "t.name = ?", name)

    def create_tag(self, *, name: str, slug: str, description: str | None) -> TagRecord:
        now_iso = utc_now_iso()
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO tags (name, slug, description, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (name, slug, description, now_iso, now_iso),
                )
                record = _fetch_tag(conn, "t.id = ?", int(cursor.lastrowid or 0))
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def update_tag(
        self,
        tag_id: int,
        *,
        name: str,
        slug: str,
        description: str | None,
    ) -> TagRecord:
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE tags
                    SET name = ?, slug = ?, description = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (name, slug, description, utc_now_iso(), tag_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"tag {tag_id} not found")
                record = _fetch_tag(conn, "t.id = ?", tag_id)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def set_slug(self, tag_id: int, slug: str) -> None:
        try:
            with self._db.connection() as conn:
                conn.execute(
                    "UPDATE tags SET slug = ?, updated_at = ? WHERE id = ?",
                    (slug, utc_now_iso(), tag_id),
                )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc

    def delete_tag(self, tag_id: int) -> None:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"tag {tag_id} not found")

    def delete_tags(self, tag_ids: list[int]) -> int:
        if not tag_ids:
            return 0
        with self._db.connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM tags WHERE id IN ({placeholders(len(tag_ids))})",
                tag_ids,
            )
        return cursor.rowcount


def ensure_tag_ids(conn: sqlite3.Connection, names: list[str]) -> list[int]:
    """Resolve tag names to ids inside an open transaction, creating missing tags."""
    tag_ids: list[int] = []
    seen: set[str] = set()
    for raw_name in names:
        name = raw_name.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        row = conn.execute(
            "SELECT id FROM tags WHERE lower(name) = lower(?)",
            (name,),
        ).fetchone()
        if row is not None:
            tag_ids.append(int(row["id"]))
            continue
        tag_ids.append(_insert_tag_with_free_slug(conn, name))
    return tag_ids


def _insert_tag_with_free_slug(conn: sqlite3.Connection, name: str) -> int:
    base_slug = make_slug(name, max_length=120) or "tag"
    attempt = 1
    while True:
        candidate = with_numeric_suffix(base_slug, attempt)
        taken = conn.execute("SELECT 1 FROM tags WHERE slug = ?", (candidate,)).fetchone()
        if taken is None:
            break
        attempt += 1
    now_iso = utc_now_iso()
    cursor = conn.execute(
        """
        INSERT INTO tags (name, slug, description, created_at, updated_at)
        VALUES (?, ?, NULL, ?, ?)
        """,
        (name, candidate, now_iso, now_iso),
    )
    return int(cursor.lastrowid or 0)


def _fetch_tag(conn: sqlite3.Connection, condition: str, value: object) -> TagRecord | None:
    row = conn.execute(
        _SELECT_WITH_COUNTS + f" WHERE {condition} GROUP BY t.id",
        (value,),
    ).fetchone()
    return None if row is None else _row_to_tag(row)


def _row_to_tag(row: sqlite3.Row) -> TagRecord:
    return TagRecord(
        tag_id=int(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        description=text_or_none(row["description"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        video_count=int(row["video_count"] or 0),
    )
