from __future__ import annotations

import sqlite3
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Literal

from vwvideos.app.repositories.common import (
    RecordNotFoundError,
    placeholders,
    text_or_none,
    translate_integrity_error,
    utc_now_iso,
)
from vwvideos.app.repositories.database import PUBLIC_VIDEO_PREDICATE, Database
from vwvideos.app.repositories.tag_repository import ensure_tag_ids
from vwvideos.app.repositories.vw_type_repository import ALL_TYPES_SLUG
from vwvideos.app.slugs import make_slug, with_numeric_suffix

VIDEO_STATUSES: tuple[str, ...] = ("DRAFT", "PUBLISHED", "ARCHIVED", "REJECTED", "UNAVAILABLE")
VideoOrder = Literal["created_at", "published_at", "popularity"]

_ORDER_CLAUSES: dict[str, str] = {
    "created_at": "v.created_at DESC, v.id DESC",
    "published_at": "v.published_at IS NULL, v.published_at DESC, v.id DESC",
    "popularity": "v.popularity_score DESC, v.created_at DESC",
}
_SELECT_VIDEO = """
    SELECT v.id, v.platform, v.video_id, v.slug, v.title, v.description, v.url,
           v.thumbnail_url, v.channel_id, v.channel_title, v.channel_url, v.status,
           v.is_how_to_vw_video, v.source_keyword, {transcript} AS transcript,
           v.processing_error, v.processed_at, v.published_at, v.popularity_score,
           v.created_at, v.updated_at, ch.name AS linked_channel_name,
           ch.slug AS linked_channel_slug
    FROM videos v
    LEFT JOIN channels ch ON ch.id = v.channel_id
"""


@dataclass(frozen=True)
class LinkedTerm:
    term_id: int
    name: str
    slug: str | None


@dataclass(frozen=True)
class ChannelSummary:
    channel_id: int
    name: str
    slug: str


@dataclass(frozen=True)
class VideoRecord:
    """A catalog video. `id` is the catalog key, `video_id` the platform identifier."""

    id: int
    platform: str
    video_id: str
    slug: str | None
    title: str
    description: str | None
    url: str | None
    thumbnail_url: str | None
    channel_id: int | None
    channel_title: str | None
    channel_url: str | None
    status: str
    is_how_to_vw_video: bool | None
    source_keyword: str | None
    transcript: str | None
    processing_error: str | None
    processed_at: str | None
    published_at: str | None
    popularity_score: float
    created_at: str
    updated_at: str
    channel: ChannelSummary | None = None
    categories: tuple[LinkedTerm, ...] = ()
    vw_types: tuple[LinkedTerm, ...] = ()
    tags: tuple[LinkedTerm, ...] = ()


@dataclass(frozen=True)
class VideoFields:
    video_id: str
    title: str
    platform: str = "YOUTUBE"
    slug: str | None = None
    description: str | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    channel_id: int | None = None
    channel_title: str | None = None
    channel_url: str | None = None
    status: str = "DRAFT"
    is_how_to_vw_video: bool | None = None
    source_keyword: str | None = None
    transcript: str | None = None
    processing_error: str | None = None
    processed_at: str | None = None
    published_at: str | None = None
    popularity_score: float = 0.0


@dataclass(frozen=True)
class VideoLinks:
    category_ids: list[int] = field(default_factory=list)
    vw_type_ids: list[int] = field(default_factory=list)
    tag_names: list[str] = field(default_factory=list)
    assigned_by: str | None = None


@dataclass(frozen=True)
class VideoQuery:
    public_only: bool = False
    status: str | None = None
    category_id: int | None = None
    category_slug: str | None = None
    vw_type_slug: str | None = None
    tag_slug: str | None = None
    channel_slug: str | None = None
    search: str | None = None
    created_since: str | None = None
    order_by: VideoOrder = "created_at"
    limit: int | None = None
    offset: int = 0


class VideoRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_video(
        self,
        fields: VideoFields,
        *,
        links: VideoLinks | None = None,
        generate_slug: bool = False,
    ) -> VideoRecord:
        now_iso = utc_now_iso()
        try:
            with self._db.connection() as conn:
                slug = fields.slug
                if slug is None and generate_slug:
                    slug = _free_video_slug(conn, fields.title, exclude_id=None)
                cursor = conn.execute(
                    """
                    INSERT INTO videos (
                        platform, video_id, slug, title, description, url, thumbnail_url,
                        channel_id, channel_title, channel_url, status, is_how_to_vw_video,
                        source_keyword, transcript, processing_error, processed_at,
                        published_at, popularity_score, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        fields.platform,
                        fields.video_id,
                        slug,
                        fields.title,
                        fields.description,
                        fields.url,
                        fields.thumbnail_url,
                        fields.channel_id,
                        fields.channel_title,
                        fields.channel_url,
                        fields.status,
                        _bool_to_db(fields.is_how_to_vw_video),
                        fields.source_keyword,
                        fields.transcript,
                        fields.processing_error,
                        fields.processed_at,
                        fields.published_at,
                        fields.popularity_score,
                        now_iso,
                        now_iso,
                    ),
                )
                video_pk = int(cursor.lastrowid or 0)
                if links is not None:
                    _replace_links(conn, video_pk, links)
                record = _fetch_video(conn, "v.id = ?", video_pk)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def update_video(
        self,
        video_pk: int,
        fields: VideoFields,
        *,
        links: VideoLinks,
        generate_slug: bool = False,
    ) -> VideoRecord:
        """Update the editable columns and replace every taxonomy link in one transaction."""
        try:
            with self._db.connection() as conn:
                slug = fields.slug
                if slug is None and generate_slug:
                    slug = _free_video_slug(conn, fields.title, exclude_id=video_pk)
                cursor = conn.execute(
                    """
                    UPDATE videos
                    SET platform = ?, video_id = ?, slug = ?, title = ?, description = ?,
                        url = ?, thumbnail_url = ?, status = ?,
                        channel_id = COALESCE(?, channel_id), updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        fields.platform,
                        fields.video_id,
                        slug,
                        fields.title,
                        fields.description,
                        fields.url,
                        fields.thumbnail_url,
                        fields.status,
                        fields.channel_id,
                        utc_now_iso(),
                        video_pk,
                    ),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"video {video_pk} not found")
                _replace_links(conn, video_pk, links)
                record = _fetch_video(conn, "v.id = ?", video_pk)
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        assert record is not None
        return record

    def get_video(self, video_pk: int) -> VideoRecord | None:
        with self._db.connection() as conn:
            return _fetch_video(conn, "v.id = ?", video_pk)

    def get_by_platform_id(self, video_id: str) -> VideoRecord | None:
        with self._db.connection() as conn:
            return _fetch_video(conn, "v.video_id = ?", video_id)

    def get_public_by_slug(self, slug: str) -> VideoRecord | None:
        with self._db.connection() as conn:
            return _fetch_video(conn, f"v.slug = ? AND {PUBLIC_VIDEO_PREDICATE}", slug)

    def existing_platform_ids(self, video_ids: list[str]) -> set[str]:
        if not video_ids:
            return set()
        with self._db.connection() as conn:
            rows = conn.execute(
                f"SELECT video_id FROM videos WHERE video_id IN ({placeholders(len(video_ids))})",
                video_ids,
            ).fetchall()
        return {str(row["video_id"]) for row in rows}

    def list_videos(self, query: VideoQuery) -> tuple[list[VideoRecord], int]:
        conditions, params = _build_filters(query)
        where_sql = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        with self._db.connection() as conn:
            total_row = conn.execute(
                f"SELECT COUNT(*) AS total FROM videos v{where_sql}",
                params,
            ).fetchone()
            page_sql = (
                _SELECT_VIDEO.format(transcript="NULL")
                + where_sql
                + f" ORDER BY {_ORDER_CLAUSES[query.order_by]}"
            )
            page_params = list(params)
            if query.limit is not None:
                page_sql += " LIMIT ? OFFSET ?"
                page_params.extend([query.limit, max(query.offset, 0)])
            rows = conn.execute(page_sql, page_params).fetchall()
            records = _attach_links(conn, rows)
        return records, int(total_row["total"])

    def list_published_for_status_check(
        self, *, platform: str = "YOUTUBE"
    ) -> list[tuple[int, str, str, str]]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT id, video_id, title, status FROM videos
                WHERE status = 'PUBLISHED' AND platform = ?
                ORDER BY id ASC
                """,
                (platform,),
            ).fetchall()
        return [
            (int(row["id"]), str(row["video_id"]), str(row["title"]), str(row["status"]))
            for row in rows
        ]

    def delete_video(self, video_pk: int) -> None:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM videos WHERE id = ?", (video_pk,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"video {video_pk} not found")

    def delete_videos(self, video_pks: list[int]) -> int:
        if not video_pks:
            return 0
        with self._db.connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM videos WHERE id IN ({placeholders(len(video_pks))})",
                video_pks,
            )
        return cursor.rowcount

    def update_status(self, video_pks: list[int], status: str) -> int:
        if not video_pks:
            return 0
        with self._db.connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE videos SET status = ?, updated_at = ?
                WHERE id IN ({placeholders(len(video_pks))})
                """,
                (status, utc_now_iso(), *video_pks),
            )
            if status == "PUBLISHED":
                slugless = conn.execute(
                    f"""
                    SELECT id, title FROM videos
                    WHERE slug IS NULL AND id IN ({placeholders(len(video_pks))})
                    ORDER BY id ASC
                    """,
                    video_pks,
                ).fetchall()
                for row in slugless:
                    video_pk = int(row["id"])
                    conn.execute(
                        "UPDATE videos SET slug = ? WHERE id = ?",
                        (_free_video_slug(conn, str(row["title"]), exclude_id=video_pk), video_pk),
                    )
        return cursor.rowcount

    def mark_unavailable(self, video_pk: int, reason: str) -> None:
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE videos
                SET status = 'UNAVAILABLE', processing_error = ?, updated_at = ?
                WHERE id = ?
                """,
                (reason, utc_now_iso(), video_pk),
            )

    def set_transcript(self, video_pk: int, transcript: str) -> None:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "UPDATE videos SET transcript = ?, updated_at = ? WHERE id = ?",
                (transcript, utc_now_iso(), video_pk),
            )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"video {video_pk} not found")

    def set_classification(
        self,
        video_pk: int,
        *,
        is_how_to_vw_video: bool | None,
        processing_error: str | None,
    ) -> None:
        now_iso = utc_now_iso()
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE videos
                SET is_how_to_vw_video = ?, processing_error = ?, processed_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (_bool_to_db(is_how_to_vw_video), processing_error, now_iso, now_iso, video_pk),
            )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"video {video_pk} not found")

    def update_platform_metadata(
        self,
        video_pk: int,
        *,
        title: str,
        description: str | None,
        thumbnail_url: str | None,
        channel_title: str | None,
        channel_url: str | None,
        published_at: str | None,
    ) -> VideoRecord:
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE videos
                SET title = ?, description = ?, thumbnail_url = COALESCE(?, thumbnail_url),
                    channel_title = COALESCE(?, channel_title),
                    channel_url = COALESCE(?, channel_url),
                    published_at = COALESCE(?, published_at), updated_at = ?
                WHERE id = ?
                """,
                (
                    title,
                    description,
                    thumbnail_url,
                    channel_title,
                    channel_url,
                    published_at,
                    utc_now_iso(),
                    video_pk,
                ),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"video {video_pk} not found")
            record = _fetch_video(conn, "v.id = ?", video_pk)
        assert record is not None
        return record

    def count_by_status(self) -> dict[str, int]:
        with self._db.connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS total FROM videos GROUP BY status"
            ).fetchall()
        counts = {status: 0 for status in VIDEO_STATUSES}
        for row in rows:
            counts[str(row["status"])] = int(row["total"])
        return counts


def _build_filters(query: VideoQuery) -> tuple[list[str], list[object]]:
    conditions: list[str] = []
    params: list[object] = []
    if query.public_only:
        conditions.append(PUBLIC_VIDEO_PREDICATE)
    if query.status is not None:
        conditions.append("v.status = ?")
        params.append(query.status)
    if query.category_id is not None:
        conditions.append(
            "EXISTS (SELECT 1 FROM categories_on_videos cv"
            " WHERE cv.video_id = v.id AND cv.category_id = ?)"
        )
        params.append(query.category_id)
    if query.category_slug is not None:
        conditions.append(
            "EXISTS (SELECT 1 FROM categories_on_videos cv"
            " JOIN categories c ON c.id = cv.category_id"
            " WHERE cv.video_id = v.id AND c.slug = ?)"
        )
        params.append(query.category_slug)
    if query.vw_type_slug is not None:
        # Videos tagged with the catch-all type belong to every type page.
        conditions.append(
            "EXISTS (SELECT 1 FROM vw_types_on_videos wv"
            " JOIN vw_types w ON w.id = wv.vw_type_id"
            " WHERE wv.video_id = v.id AND w.slug IN (?, ?))"
        )
        params.extend([query.vw_type_slug, ALL_TYPES_SLUG])
    if query.tag_slug is not None:
        conditions.append(
            "EXISTS (SELECT 1 FROM tags_on_videos tv"
            " JOIN tags t ON t.id = tv.tag_id"
            " WHERE tv.video_id = v.id AND t.slug = ?)"
        )
        params.append(query.tag_slug)
    if query.channel_slug is not None:
        conditions.append(
            "v.channel_id IN (SELECT id FROM channels WHERE slug = ?)"
        )
        params.append(query.channel_slug)
    if query.search:
        pattern = f"%{_escape_like(query.search.strip())}%"
        conditions.append(
            "(v.title LIKE ? ESCAPE '\\' OR v.description LIKE ? ESCAPE '\\'"
            " OR v.channel_title LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern, pattern])
    if query.created_since is not None:
        conditions.append("v.created_at >= ?")
        params.append(query.created_since)
    return conditions, params


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _free_video_slug(conn: sqlite3.Connection, title: str, *, exclude_id: int | None) -> str:
    base_slug = make_slug(title) or "video"
    attempt = 1
    while True:
        candidate = with_numeric_suffix(base_slug, attempt)
        row = conn.execute("SELECT id FROM videos WHERE slug = ?", (candidate,)).fetchone()
        if row is None or (exclude_id is not None and int(row["id"]) == exclude_id):
            return candidate
        attempt += 1


def _replace_links(conn: sqlite3.Connection, video_pk: int, links: VideoLinks) -> None:
    now_iso = utc_now_iso()
    conn.execute("DELETE FROM categories_on_videos WHERE video_id = ?", (video_pk,))
    conn.execute("DELETE FROM vw_types_on_videos WHERE video_id = ?", (video_pk,))
    conn.execute("DELETE FROM tags_on_videos WHERE video_id = ?", (video_pk,))
    conn.executemany(
        """
        INSERT OR IGNORE INTO categories_on_videos (video_id, category_id, assigned_by, assigned_at)
        VALUES (?, ?, ?, ?)
        """,
        [(video_pk, category_id, links.assigned_by, now_iso) for category_id in links.category_ids],
    )
    conn.executemany(
        """
        INSERT OR IGNORE INTO vw_types_on_videos (video_id, vw_type_id, assigned_by, assigned_at)
        VALUES (?, ?, ?, ?)
        """,
        [(video_pk, vw_type_id, links.assigned_by, now_iso) for vw_type_id in links.vw_type_ids],
    )
    tag_ids = ensure_tag_ids(conn, links.tag_names)
    conn.executemany(
        """
        INSERT OR IGNORE INTO tags_on_videos (video_id, tag_id, assigned_by, assigned_at)
        VALUES (?, ?, ?, ?)
        """,
        [(video_pk, tag_id, links.assigned_by, now_iso) for tag_id in tag_ids],
    )


def _fetch_video(conn: sqlite3.Connection, condition: str, value: object) -> VideoRecord | None:
    row = conn.execute(
        _SELECT_VIDEO.format(transcript="v.transcript") + f" WHERE {condition}",
        (value,),
    ).fetchone()
    if row is None:
        return None
    return _attach_links(conn, [row])[0]


def _attach_links(conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[VideoRecord]:
    if not rows:
        return []
    video_pks = [int(row["id"]) for row in rows]
    marks = placeholders(len(video_pks))
    categories = _load_terms(
        conn,
        f"""
        SELECT cv.video_id, c.id, c.name, c.slug
        FROM categories_on_videos cv JOIN categories c ON c.id = cv.category_id
        WHERE cv.video_id IN ({marks})
        ORDER BY c.sort_order ASC, c.name ASC
        """,
        video_pks,
    )
    vw_types = _load_terms(
        conn,
        f"""
        SELECT wv.video_id, w.id, w.name, w.slug
        FROM vw_types_on_videos wv JOIN vw_types w ON w.id = wv.vw_type_id
        WHERE wv.video_id IN ({marks})
        ORDER BY w.sort_order ASC, w.name ASC
        """,
        video_pks,
    )
    tags = _load_terms(
        conn,
        f"""
        SELECT tv.video_id, t.id, t.name, t.slug
        FROM tags_on_videos tv JOIN tags t ON t.id = tv.tag_id
        WHERE tv.video_id IN ({marks})
        ORDER BY t.name ASC
        """,
        video_pks,
    )
    return [
        _row_to_video(
            row,
            categories=tuple(categories.get(int(row["id"]), [])),
            vw_types=tuple(vw_types.get(int(row["id"]), [])),
            tags=tuple(tags.get(int(row["id"]), [])),
        )
        for row in rows
    ]


def _load_terms(
    conn: sqlite3.Connection,
    query: str,
    video_pks: list[int],
) -> dict[int, list[LinkedTerm]]:
    grouped: dict[int, list[LinkedTerm]] = defaultdict(list)
    for row in conn.execute(query, video_pks).fetchall():
        grouped[int(row["video_id"])].append(
            LinkedTerm(
                term_id=int(row["id"]),
                name=str(row["name"]),
                slug=text_or_none(row["slug"]),
            )
        )
    return grouped


def _row_to_video(
    row: sqlite3.Row,
    *,
    categories: tuple[LinkedTerm, ...],
    vw_types: tuple[LinkedTerm, ...],
    tags: tuple[LinkedTerm, ...],
) -> VideoRecord:
    channel: ChannelSummary | None = None
    if row["channel_id"] is not None and row["linked_channel_name"] is not None:
        channel = ChannelSummary(
            channel_id=int(row["channel_id"]),
            name=str(row["linked_channel_name"]),
            slug=str(row["linked_channel_slug"]),
        )
    return VideoRecord(
        id=int(row["id"]),
        platform=str(row["platform"]),
        video_id=str(row["video_id"]),
        slug=text_or_none(row["slug"]),
        title=str(row["title"]),
        description=text_or_none(row["description"]),
        url=text_or_none(row["url"]),
        thumbnail_url=text_or_none(row["thumbnail_url"]),
        channel_id=int(row["channel_id"]) if row["channel_id"] is not None else None,
        channel_title=text_or_none(row["channel_title"]),
        channel_url=text_or_none(row["channel_url"]),
        status=str(row["status"]),
        is_how_to_vw_video=_bool_from_db(row["is_how_to_vw_video"]),
        source_keyword=text_or_none(row["source_keyword"]),
        transcript=text_or_none(row["transcript"]),
        processing_error=text_or_none(row["processing_error"]),
        processed_at=text_or_none(row["processed_at"]),
        published_at=text_or_none(row["published_at"]),
        popularity_score=float(row["popularity_score"] or 0.0),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        channel=channel,
        categories=categories,
        vw_types=vw_types,
        tags=tags,
    )


def _bool_to_db(value: bool | None) -> int | None:
    if value is None:
        return None
    return 1 if value else 0


def _bool_from_db(value: object) -> bool | None:
    if value is None:
        return None
    return bool(value)
