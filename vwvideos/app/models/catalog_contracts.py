from __future__ import annotations

from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vwvideos.app.slugs import SLUG_MAX_LENGTH, SLUG_MIN_LENGTH, SLUG_PATTERN

VideoStatus = Literal["DRAFT", "PUBLISHED", "ARCHIVED", "REJECTED", "UNAVAILABLE"]
VideoPlatform = Literal["YOUTUBE"]

VIDEO_STATUS_LABELS: dict[str, str] = {
    "DRAFT": "Draft",
    "PUBLISHED": "Published",
    "ARCHIVED": "Archived",
    "REJECTED": "Rejected",
    "UNAVAILABLE": "Unavailable",
}


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _validate_http_url(value: str, *, field_label: str) -> str:
    normalized = value.strip()
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{field_label} must be a valid URL")
    return normalized


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into `{field: [message, ...]}` for form rendering."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = error.get("loc") or ("form",)
        field_name = str(location[0])
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field_name, []).append(message)
    return errors


class ActionResponse(BaseModel):
    """Result envelope shared by every admin action."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str | None = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None
    data: Any = None
    count: int | None = None


class _FormModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class CategoryForm(_FormModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)
    slug: str | None = Field(
        default=None,
        min_length=SLUG_MIN_LENGTH,
        max_length=SLUG_MAX_LENGTH,
        pattern=SLUG_PATTERN,
    )
    sort_order: int | None = None

    @field_validator("description", "slug", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class TagForm(_FormModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=120, pattern=SLUG_PATTERN)
    description: str | None = Field(default=None, max_length=500)

    @field_validator("description", "slug", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class VWTypeForm(_FormModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=SLUG_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=500)
    sort_order: int = 0

    @field_validator("description", "slug", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("sort_order", mode="before")
    @classmethod
    def _default_sort_order(cls, value: object) -> object:
        if value is None or value == "":
            return 0
        return value


class VWTypeUpdateForm(_FormModel):
    """Partial update; only fields present in the payload are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=SLUG_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=500)
    sort_order: int | None = None

    @field_validator("description", "slug", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class ChannelForm(_FormModel):
    name: str = Field(min_length=1, max_length=200)
    platform: VideoPlatform = "YOUTUBE"
    platform_channel_id: str = Field(min_length=1, max_length=100)
    url: str = Field(max_length=2048)
    thumbnail_url: str | None = Field(default=None, max_length=2048)
    subscriber_count: int | None = Field(default=None, ge=0)
    video_count: int | None = Field(default=None, ge=0)
    description: str | None = None

    @field_validator("thumbnail_url", "description", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _validate_http_url(value, field_label="Channel URL")

    @field_validator("thumbnail_url")
    @classmethod
    def _validate_thumbnail_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_http_url(value, field_label="Thumbnail URL")


class VideoForm(_FormModel):
    platform: VideoPlatform = "YOUTUBE"
    video_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=3, max_length=500)
    description: str | None = None
    url: str = Field(max_length=2048)
    thumbnail_url: str | None = Field(default=None, max_length=2048)
    slug: str | None = Field(
        default=None,
        min_length=SLUG_MIN_LENGTH,
        max_length=SLUG_MAX_LENGTH,
        pattern=SLUG_PATTERN,
    )
    status: VideoStatus = "DRAFT"
    channel_id: int | None = None
    category_ids: list[int] = Field(default_factory=list)
    vw_types: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("description", "thumbnail_url", "slug", mode="before")
    @classmethod
    def _normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _validate_http_url(value, field_label="Video URL")

    @field_validator("thumbnail_url")
    @classmethod
    def _validate_thumbnail_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_http_url(value, field_label="Thumbnail URL")

    @field_validator("tags", "vw_types", mode="before")
    @classmethod
    def _split_terms(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class BulkIdsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[int] = Field(default_factory=list)


class BulkStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[int] = Field(default_factory=list)
    status: VideoStatus


class YouTubeSearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(max_length=200)
    max_results: int | None = Field(default=None, ge=1, le=50)


class BatchImportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search_query: str = Field(max_length=200)
    max_results: int | None = Field(default=None, ge=1, le=50)


class ImportVideoData(_FormModel):
    video_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    thumbnail_url: str | None = None
    channel_title: str | None = None
    channel_id: str | None = None
    published_at: str | None = None


class ImportVideoRequest(_FormModel):
    video: ImportVideoData
    is_how_to_vw_video: bool
    category_id: int | None = None
    category_names: list[str] = Field(default_factory=list)
    source_keyword: str | None = None
    channel_title: str | None = None


class VideoTableQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: VideoStatus | None = None
    category_id: int | None = None
    vw_type_slug: str | None = None
    query: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1, le=500)
