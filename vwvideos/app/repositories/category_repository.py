from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Literal

from vwvideos.app.repositories.common import (
    RecordNotFoundError,
    placeholders,
    text_or_none,
    translate_integrity_error,
    utc_now_iso,
)
from vwvideos.app.repositories.database import Database

CategoryOrder = Literal["sort_order", "name", "id"]

_ORDER_CLAUSES: dict[str, str] = {
    "sort_order": "c.sort_order ASC, c.name ASC",
    "name": "c.name ASC",
    "id": "c.id ASC",
}

_SELECT_WITH_COUNTS = """
    SELECT c.id, c.name, c.slug, c.description, c.sort_order, c.created_at, c.updated_at,
           COUNT(cv.video_id) AS video_count
    FROM categories c
    LEFT JOIN categories_on_videos cv ON cv.category_id = c.id
"""


@dataclass(frozen=True)
class CategoryRecord:
    category_id: int
    name: str
    slug: str | None
    description: str | None
    sort_order: int
    created_at: str
    updated_at: str
    video_count: int = 0


class CategoryRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_categories(
        self,
        *,
        order: CategoryOrder = "sort_order",
        exclude_names: tuple[str, ...] = (),
    ) -> list[CategoryRecord]:
        query = _SELECT_WITH_COUNTS
        params: list[object] = []
        if exclude_names:
            query += f" WHERE lower(c.name) NOT IN ({placeholders(len(exclude_names))})"
            params.extend(name.lower() for name in exclude_names)
        query += f" GROUP BY c.id ORDER BY {_ORDER_CLAUSES[order]}"
        with self._db.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_category(row) for row in rows]

    def get_category(self, category_id: int) -> CategoryRecord | None:
        with self._db.connection() as conn:
            return _fetch_category(conn, category_id)

    def get_by_slug(self, slug: str) -> CategoryRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                _SELECT_WITH_COUNTS + " WHERE c.slug = ? GROUP BY c.id",
                (slug,),
            ).fetchone()
        return None if row is None else _row_to_category(row)

    def find_by_name(self, name: str) -> CategoryRecord | None:
        """Case-insensitive lookup used by the import flows."""
        with self._db.connection() as conn:
            row = conn.execute(
                _SELECT_WITH_COUNTS + " WHERE lower(c.name) = lower(?) GROUP BY c.id",
                (name.strip(),),
            ).fetchone()
        return None if row is None else _row_to_category(row)

    def existing_ids(self, category_ids: list[int]) -> set[int]:
        if not category_ids:
            return set()
        with self._db.connection() as conn:
            rows = conn.execute(
                f"SELECT id FROM categories WHERE id IN ({placeholders(len(category_ids))})",
                category_ids,
            ).fetchall()
        return {int(row["id"]) for row in rows}

    def create_category(
        self,
        *,
        name: str,
        slug: str | None,
        description: str | None,
        sort_order: int = 0,
    ) -> CategoryRecord:
        now_iso = utc_now_iso()
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO categories (
                        name, slug, description, sort_order, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (name, slug, description, sort_order, now_iso, now_iso),
                )
                category_id = int(cursor.lastrowid or 0)
                record = _fetch_category(conn, category_id)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def update_category(
        self,
        category_id: int,
        *,
        name: str,
        slug: str | None,
        description: str | None,
        sort_order: int | None = None,
    ) -> CategoryRecord:
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE categories
                    SET name = ?, slug = ?, description = ?,
                        sort_order = COALESCE(?, sort_order), updated_at = ?
                    WHERE id = ?
                    """,
                    (name, slug, description, sort_order, utc_now_iso(), category_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"category {category_id} not found")
                record = _fetch_category(conn, category_id)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def set_slug(self, category_id: int, slug: str) -> None:
        try:
            with self._db.connection() as conn:
                conn.execute(
                    "UPDATE categories SET slug = ?, updated_at = ? WHERE id = ?",
                    (slug, utc_now_iso(), category_id),
                )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc

    def delete_category(self, category_id: int) -> None:
        try:
            with self._db.connection() as conn:
                cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"category {category_id} not found")

    def delete_categories(self, category_ids: list[int]) -> int:
        if not category_ids:
            return 0
        try:
            with self._db.connection() as conn:
                cursor = conn.execute(
                    f"DELETE FROM categories WHERE id IN ({placeholders(len(category_ids))})",
                    category_ids,
                )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        return cursor.rowcount

    def count_categories(self) -> int:
        with self._db.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM categories").fetchone()
        return int(row["total"])


def _fetch_category(conn: sqlite3.Connection, category_id: int) -> CategoryRecord | None:
    row = conn.execute(
        _SELECT_WITH_COUNTS + " WHERE c.id = ? GROUP BY c.id",
        (category_id,),
    ).fetchone()
    return None if row is None else _row_to_category(row)


def _row_to_category(row: sqlite3.Row) -> CategoryRecord:
    return CategoryRecord(
        category_id=int(row["id"]),
        name=str(row["name"]),
        slug=text_or_none(row["slug"]),
        description=text_or_none(row["description"]),
        sort_order=int(row["sort_order"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        video_count=int(row["video_count"] or 0),
    )
