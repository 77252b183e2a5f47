from __future__ import annotations

import secrets
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from vwvideos.app.config import AppSettings
from vwvideos.app.dependencies import CatalogServices, get_services, get_settings
from vwvideos.app.models.catalog_contracts import (
    ActionResponse,
    BatchImportRequest,
    BulkIdsRequest,
    BulkStatusRequest,
    VideoStatus,
    VideoTableQuery,
    YouTubeSearchRequest,
)
from vwvideos.app.repositories.category_repository import CategoryRecord
from vwvideos.app.repositories.channel_repository import ChannelRecord
from vwvideos.app.repositories.tag_repository import TagRecord
from vwvideos.app.services.search_log_service import SearchLogPage
from vwvideos.app.services.video_service import DashboardStats, VideoTablePage


def require_admin_key(
    settings: Annotated[AppSettings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    expected = settings.admin_api_key
    if expected is None:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip(), expected):
        raise HTTPException(status_code=401, detail="Admin API key required.")


router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin_key)])

Services = Annotated[CatalogServices, Depends(get_services)]
Payload = Annotated[dict[str, Any], Body()]


class AnalyzeTranscriptRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    transcript: str = Field(max_length=200_000)
    title: str | None = None


def _action(path: str, *, tag: str, operation_id: str, method: str = "post") -> Any:
    return getattr(router, method)(
        path,
        response_model=ActionResponse,
        response_model_exclude_none=True,
        tags=[tag],
        operation_id=operation_id,
    )


# Dashboard


@router.get("/dashboard", tags=["admin"], operation_id="admin_dashboard")
def dashboard(services: Services) -> DashboardStats:
    return services.videos.dashboard_stats()


# Categories


@router.get("/categories", tags=["categories"], operation_id="admin_list_categories")
def list_categories(
    services: Services,
    order: Literal["sort_order", "id"] = "sort_order",
) -> list[CategoryRecord]:
    if order == "id":
        return services.categories.fetch_categories_by_id()
    return services.categories.fetch_all_categories()


@router.get("/categories/raw", tags=["categories"], operation_id="admin_list_categories_raw")
def list_categories_raw(services: Services) -> list[CategoryRecord]:
    return services.categories.fetch_categories_by_id()


@_action("/categories", tag="categories", operation_id="admin_add_category")
def add_category(payload: Payload, services: Services) -> ActionResponse:
    return services.categories.add_category(payload)


@_action(
    "/categories/{category_id}",
    tag="categories",
    operation_id="admin_update_category",
    method="put",
)
def update_category(category_id: int, payload: Payload, services: Services) -> ActionResponse:
    return services.categories.update_category(category_id, payload)


@_action(
    "/categories/{category_id}",
    tag="categories",
    operation_id="admin_delete_category",
    method="delete",
)
def delete_category(category_id: int, services: Services) -> ActionResponse:
    return services.categories.delete_category(category_id)


@_action("/categories/bulk-delete", tag="categories", operation_id="admin_bulk_delete_categories")
def bulk_delete_categories(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.categories.bulk_delete_categories(request.ids)


@_action(
    "/categories/bulk-generate-slugs",
    tag="categories",
    operation_id="admin_bulk_generate_category_slugs",
)
def bulk_generate_category_slugs(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.categories.bulk_generate_slugs(request.ids)


# Tags


@router.get("/tags", tags=["tags"], operation_id="admin_list_tags")
def list_tags(services: Services) -> list[TagRecord]:
    return services.tags.fetch_tags_for_table()


@_action("/tags", tag="tags", operation_id="admin_add_tag")
def add_tag(payload: Payload, services: Services) -> ActionResponse:
    return services.tags.add_tag(payload)


@_action("/tags/{tag_id}", tag="tags", operation_id="admin_update_tag", method="put")
def update_tag(tag_id: int, payload: Payload, services: Services) -> ActionResponse:
    return services.tags.update_tag(tag_id, payload)


@_action("/tags/{tag_id}", tag="tags", operation_id="admin_delete_tag", method="delete")
def delete_tag(tag_id: int, services: Services) -> ActionResponse:
    return services.tags.delete_tag(tag_id)


@_action("/tags/bulk-delete", tag="tags", operation_id="admin_bulk_delete_tags")
def bulk_delete_tags(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.tags.bulk_delete_tags(request.ids)


@_action("/tags/bulk-generate-slugs", tag="tags", operation_id="admin_bulk_generate_tag_slugs")
def bulk_generate_tag_slugs(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.tags.bulk_generate_slugs(request.ids)


# VW types


@_action("/vw-types", tag="vw-types", operation_id="admin_list_vw_types", method="get")
def list_vw_types(services: Services) -> ActionResponse:
    return services.vw_types.fetch_vw_types_for_table()


@_action("/vw-types/{vw_type_id}", tag="vw-types", operation_id="admin_get_vw_type", method="get")
def get_vw_type(vw_type_id: int, services: Services) -> ActionResponse:
    return services.vw_types.fetch_vw_type_by_id(vw_type_id)


@_action("/vw-types", tag="vw-types", operation_id="admin_add_vw_type")
def add_vw_type(payload: Payload, services: Services) -> ActionResponse:
    return services.vw_types.add_vw_type(payload)


@_action(
    "/vw-types/{vw_type_id}", tag="vw-types", operation_id="admin_update_vw_type", method="patch"
)
def update_vw_type(vw_type_id: int, payload: Payload, services: Services) -> ActionResponse:
    return services.vw_types.update_vw_type(vw_type_id, payload)


@_action(
    "/vw-types/{vw_type_id}", tag="vw-types", operation_id="admin_delete_vw_type", method="delete"
)
def delete_vw_type(vw_type_id: int, services: Services) -> ActionResponse:
    return services.vw_types.delete_vw_type(vw_type_id)


@_action("/vw-types/bulk-delete", tag="vw-types", operation_id="admin_bulk_delete_vw_types")
def bulk_delete_vw_types(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.vw_types.bulk_delete_vw_types(request.ids)


@_action(
    "/vw-types/bulk-generate-slugs",
    tag="vw-types",
    operation_id="admin_bulk_generate_vw_type_slugs",
)
def bulk_generate_vw_type_slugs(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.vw_types.bulk_generate_slugs(request.ids)


# Channels


@router.get("/channels", tags=["channels"], operation_id="admin_list_channels")
def list_channels(services: Services) -> list[ChannelRecord]:
    return services.channels.get_channels()


@_action("/channels/{channel_id}", tag="channels", operation_id="admin_get_channel", method="get")
def get_channel(channel_id: int, services: Services) -> ActionResponse:
    return services.channels.get_channel_by_id(channel_id)


@_action("/channels", tag="channels", operation_id="admin_add_channel")
def add_channel(payload: Payload, services: Services) -> ActionResponse:
    return services.channels.add_channel(payload)


@_action(
    "/channels/{channel_id}", tag="channels", operation_id="admin_update_channel", method="put"
)
def update_channel(channel_id: int, payload: Payload, services: Services) -> ActionResponse:
    return services.channels.update_channel(channel_id, payload)


@_action(
    "/channels/{channel_id}", tag="channels", operation_id="admin_delete_channel", method="delete"
)
def delete_channel(channel_id: int, services: Services) -> ActionResponse:
    return services.channels.delete_channel(channel_id)


@_action("/channels/bulk-delete", tag="channels", operation_id="admin_bulk_delete_channels")
def bulk_delete_channels(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.channels.bulk_delete_channels(request.ids)


# Videos


@router.get("/videos", tags=["videos"], operation_id="admin_list_videos")
def list_videos(
    services: Services,
    status: VideoStatus | None = None,
    category_id: int | None = None,
    vw_type_slug: str | None = None,
    query: Annotated[str | None, Query(max_length=200)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> VideoTablePage:
    return services.videos.fetch_videos_for_table(
        VideoTableQuery(
            status=status,
            category_id=category_id,
            vw_type_slug=vw_type_slug,
            query=query,
            page=page,
            page_size=page_size,
        )
    )


@_action("/videos/{video_pk}", tag="videos", operation_id="admin_get_video", method="get")
def get_video(video_pk: int, services: Services) -> ActionResponse:
    record = services.videos.get_video_by_id(video_pk)
    if record is None:
        return ActionResponse(success=False, message="Video not found.")
    return ActionResponse(success=True, data=record)


@_action("/videos", tag="videos", operation_id="admin_add_video")
def add_video(payload: Payload, services: Services) -> ActionResponse:
    return services.videos.add_video(payload)


@_action("/videos/{video_pk}", tag="videos", operation_id="admin_update_video", method="put")
def update_video(video_pk: int, payload: Payload, services: Services) -> ActionResponse:
    return services.videos.update_video(video_pk, payload)


@_action("/videos/{video_pk}", tag="videos", operation_id="admin_delete_video", method="delete")
def delete_video(video_pk: int, services: Services) -> ActionResponse:
    return services.videos.delete_video(video_pk)


@_action("/videos/bulk-delete", tag="videos", operation_id="admin_bulk_delete_videos")
def bulk_delete_videos(request: BulkIdsRequest, services: Services) -> ActionResponse:
    return services.videos.bulk_delete_videos(request.ids)


@_action("/videos/bulk-status", tag="videos", operation_id="admin_bulk_update_video_status")
def bulk_update_video_status(request: BulkStatusRequest, services: Services) -> ActionResponse:
    return services.videos.bulk_update_status(request.ids, request.status)


@_action("/videos/{video_pk}/transcript", tag="videos", operation_id="admin_fetch_video_transcript")
def fetch_video_transcript(video_pk: int, services: Services) -> ActionResponse:
    return services.videos.get_video_transcript(video_pk)


@_action("/videos/{video_pk}/analyze", tag="videos", operation_id="admin_analyze_video")
def analyze_video(video_pk: int, services: Services) -> ActionResponse:
    return services.videos.analyze_video_with_openai(video_pk)


@_action("/videos/{video_pk}/refetch", tag="videos", operation_id="admin_refetch_video")
def refetch_video(video_pk: int, services: Services) -> ActionResponse:
    return services.videos.refetch_video_info(video_pk)


# YouTube tooling


@_action("/youtube/search", tag="youtube", operation_id="admin_youtube_search")
def youtube_search(request: YouTubeSearchRequest, services: Services) -> ActionResponse:
    return services.imports.search_youtube_videos(request.query, max_results=request.max_results)


@_action(
    "/youtube/transcript/{video_id}",
    tag="youtube",
    operation_id="admin_youtube_transcript",
    method="get",
)
def youtube_transcript(video_id: str, services: Services) -> ActionResponse:
    return services.imports.get_youtube_transcript(video_id)


@_action("/youtube/analyze", tag="youtube", operation_id="admin_youtube_analyze_transcript")
def youtube_analyze_transcript(
    request: AnalyzeTranscriptRequest, services: Services
) -> ActionResponse:
    return services.imports.analyze_transcript(request.transcript, title=request.title)


@_action("/youtube/import", tag="youtube", operation_id="admin_youtube_import")
def youtube_import(payload: Payload, services: Services) -> ActionResponse:
    return services.imports.import_youtube_video(payload)


@router.post(
    "/youtube/batch-import", tags=["youtube"], operation_id="admin_youtube_batch_import"
)
def youtube_batch_import(
    request: BatchImportRequest, services: Services
) -> list[dict[str, Any]]:
    return services.imports.batch_import_videos(
        request.search_query, max_results=request.max_results
    )


# Maintenance


@_action(
    "/maintenance/video-status-check",
    tag="maintenance",
    operation_id="admin_trigger_video_status_check",
)
def trigger_video_status_check(services: Services) -> ActionResponse:
    return services.maintenance.trigger_video_status_check()


# Search logs


@router.get("/search-logs", tags=["search-logs"], operation_id="admin_list_search_logs")
def list_search_logs(
    services: Services,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=200)] = 20,
    sort_by: str = "createdAt",
    sort_direction: Literal["asc", "desc"] = "desc",
) -> SearchLogPage:
    try:
        return services.search_logs.fetch_search_logs(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
