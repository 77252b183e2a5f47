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

_CHANNEL_COLUMNS = """
    ch.id, ch.name, ch.slug, ch.platform, ch.platform_channel_id, ch.url, ch.thumbnail_url,
    ch.subscriber_count, ch.video_count, ch.description, ch.created_at, ch.updated_at
"""


@dataclass(frozen=True)
class ChannelRecord:
    channel_id: int
    name: str
    slug: str
    platform: str
    platform_channel_id: str
    url: str
    thumbnail_url: str | None
    subscriber_count: int | None
    video_count: int | None
    description: str | None
    created_at: str
    updated_at: str
    published_video_count: int = 0


@dataclass(frozen=True)
class ChannelFields:
    name: str
    platform_channel_id: str
    url: str
    platform: str = "YOUTUBE"
    thumbnail_url: str | None = None
    subscriber_count: int | None = None
    video_count: int | None = None
    description: str | None = None


class ChannelRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_channels(self) -> list[ChannelRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_CHANNEL_COLUMNS}, COUNT(v.id) AS published_video_count
                FROM channels ch
                LEFT JOIN videos v ON v.channel_id = ch.id AND {PUBLIC_VIDEO_PREDICATE}
                GROUP BY ch.id
                ORDER BY ch.name ASC
                """
            ).fetchall()
        return [_row_to_channel(row) for row in rows]

    def list_navigation_channels(self, *, limit: int) -> list[ChannelRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_CHANNEL_COLUMNS}, COUNT(v.id) AS published_video_count
                FROM channels ch
                JOIN videos v ON v.channel_id = ch.id
                WHERE {PUBLIC_VIDEO_PREDICATE}
                GROUP BY ch.id
                ORDER BY published_video_count DESC, ch.name ASC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [_row_to_channel(row) for row in rows]

    def get_channel(self, channel_id: int) -> ChannelRecord | None:
        with self._db.connection() as conn:
            return _fetch_channel(conn, "ch.id = ?", channel_id)

    def get_by_slug(self, slug: str) -> ChannelRecord | None:
        with self._db.connection() as conn:
            return _fetch_channel(conn, "ch.slug = ?", slug)

    def get_by_platform_channel_id(self, platform_channel_id: str) -> ChannelRecord | None:
        with self._db.connection() as conn:
            return _fetch_channel(conn, "ch.platform_channel_id = ?", platform_channel_id)

    def create_channel(self, fields: ChannelFields) -> ChannelRecord:
        now_iso = utc_now_iso()
        try:
            with self._db.connection() as conn:
                slug = _free_channel_slug(conn, fields.name, exclude_id=None)
                cursor = conn.execute(
                    """
                    INSERT INTO channels (
                        name, slug, platform, platform_channel_id, url, thumbnail_url,
                        subscriber_count, video_count, description, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        fields.name,
                        slug,
                        fields.platform,
                        fields.platform_channel_id,
                        fields.url,
                        fields.thumbnail_url,
                        fields.subscriber_count,
                        fields.video_count,
                        fields.description,
                        now_iso,
                        now_iso,
                    ),
                )
                record = _fetch_channel(conn, "ch.id = ?", int(cursor.lastrowid or 0))
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def update_channel(self, channel_id: int, fields: ChannelFields) -> ChannelRecord:
        try:
            with self._db.connection() as conn:
                existing = _fetch_channel(conn, "ch.id = ?", channel_id)
                if existing is None:
                    raise RecordNotFoundError(f"channel {channel_id} not found")
                slug = existing.slug
                if fields.name != existing.name:
                    slug = _free_channel_slug(conn, fields.name, exclude_id=channel_id)
                conn.execute(
                    """
                    UPDATE channels
                    SET name = ?, slug = ?, platform = ?, platform_channel_id = ?, url = ?,
                        thumbnail_url = ?, subscriber_count = ?, video_count = ?,
                        description = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        fields.name,
                        slug,
                        fields.platform,
                        fields.platform_channel_id,
                        fields.url,
                        fields.thumbnail_url,
                        fields.subscriber_count,
                        fields.video_count,
                        fields.description,
                        utc_now_iso(),
                        channel_id,
                    ),
                )
                record = _fetch_channel(conn, "ch.id = ?", channel_id)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def delete_channel(self, channel_id: int) -> None:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM channels WHERE id = ?", (channel_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"channel {channel_id} not found")

    def delete_channels(self, channel_ids: list[int]) -> int:
        if not channel_ids:
            return 0
        with self._db.connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM channels WHERE id IN ({placeholders(len(channel_ids))})",
                channel_ids,
            )
        return cursor.rowcount


def _free_channel_slug(conn: sqlite3.Connection, name: str, *, exclude_id: int | None) -> str:
    base_slug = make_slug(name) or "channel"
    attempt = 1
    while True:
        candidate = with_numeric_suffix(base_slug, attempt)
        row = conn.execute(
            "SELECT id FROM channels WHERE slug = ?",
            (candidate,),
        ).fetchone()
        if row is None or (exclude_id is not None and int(row["id"]) == exclude_id):
            return candidate
        attempt += 1


def _fetch_channel(
    conn: sqlite3.Connection,
    condition: str,
    value: object,
) -> ChannelRecord | None:
    row = conn.execute(
        f"""
        SELECT {_CHANNEL_COLUMNS}, COUNT(v.id) AS published_video_count
        FROM channels ch
        LEFT JOIN videos v ON v.channel_id = ch.id AND {PUBLIC_VIDEO_PREDICATE}
        WHERE {condition}
        GROUP BY ch.id
        """,
        (value,),
    ).fetchone()
    return None if row is None else _row_to_channel(row)


def _row_to_channel(row: sqlite3.Row) -> ChannelRecord:
    return ChannelRecord(
        channel_id=int(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        platform=str(row["platform"]),
        platform_channel_id=str(row["platform_channel_id"]),
        url=str(row["url"]),
        thumbnail_url=text_or_none(row["thumbnail_url"]),
        subscriber_count=(
            int(row["subscriber_count"]) if row["subscriber_count"] is not None else None
        ),
        video_count=int(row["video_count"]) if row["video_count"] is not None else None,
        description=text_or_none(row["description"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        published_video_count=int(row["published_video_count"] or 0),
    )
