from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    slug TEXT NULL UNIQUE,
    description TEXT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS vw_types (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    slug TEXT NOT NULL UNIQUE,
    description TEXT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    slug TEXT NOT NULL UNIQUE,
    description TEXT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS channels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    platform TEXT NOT NULL DEFAULT 'YOUTUBE',
    platform_channel_id TEXT NOT NULL,
    url TEXT NOT NULL,
    thumbnail_url TEXT NULL,
    subscriber_count INTEGER NULL,
    video_count INTEGER NULL,
    description TEXT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (platform, platform_channel_id)
);

CREATE TABLE IF NOT EXISTS videos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    platform TEXT NOT NULL DEFAULT 'YOUTUBE',
    video_id TEXT NOT NULL UNIQUE,
    slug TEXT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT NULL,
    url TEXT NULL UNIQUE,
    thumbnail_url TEXT NULL,
    channel_id INTEGER NULL REFERENCES channels(id) ON DELETE SET NULL,
    channel_title TEXT NULL,
    channel_url TEXT NULL,
    status TEXT NOT NULL DEFAULT 'DRAFT'
        CHECK (status IN ('DRAFT', 'PUBLISHED', 'ARCHIVED', 'REJECTED', 'UNAVAILABLE')),
    is_how_to_vw_video INTEGER NULL,
    source_keyword TEXT NULL,
    transcript TEXT NULL,
    processing_error TEXT NULL,
    processed_at TEXT NULL,
    published_at TEXT NULL,
    popularity_score REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_videos_status_created
ON videos(status, created_at DESC);

CREATE INDEX IF NOT EXISTS idx_videos_published_at
ON videos(published_at DESC);

CREATE INDEX IF NOT EXISTS idx_videos_channel
ON videos(channel_id);

CREATE TABLE IF NOT EXISTS categories_on_videos (
    video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE RESTRICT,
    assigned_by TEXT NULL,
    assigned_at TEXT NOT NULL,
    PRIMARY KEY (video_id, category_id)
);

CREATE TABLE IF NOT EXISTS vw_types_on_videos (
    video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
    vw_type_id INTEGER NOT NULL REFERENCES vw_types(id) ON DELETE RESTRICT,
    assigned_by TEXT NULL,
    assigned_at TEXT NOT NULL,
    PRIMARY KEY (video_id, vw_type_id)
);

CREATE TABLE IF NOT EXISTS tags_on_videos (
    video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
    tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    assigned_by TEXT NULL,
    assigned_at TEXT NOT NULL,
    PRIMARY KEY (video_id, tag_id)
);

CREATE INDEX IF NOT EXISTS idx_categories_on_videos_category
ON categories_on_videos(category_id);

CREATE INDEX IF NOT EXISTS idx_vw_types_on_videos_vw_type
ON vw_types_on_videos(vw_type_id);

CREATE INDEX IF NOT EXISTS idx_tags_on_videos_tag
ON tags_on_videos(tag_id);

CREATE TABLE IF NOT EXISTS search_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    term TEXT NOT NULL,
    partial_ip_address TEXT NULL,
    results_count INTEGER NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_search_logs_created
ON search_logs(created_at DESC);
"""

# Rows counted on public pages: published, classified as how-to and reachable by slug.
PUBLIC_VIDEO_PREDICATE = (
    "v.status = 'PUBLISHED' AND v.is_how_to_vw_video = 1 AND v.slug IS NOT NULL"
)


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)
