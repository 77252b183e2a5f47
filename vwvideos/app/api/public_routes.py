from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from vwvideos.app.dependencies import CatalogServices, get_services
from vwvideos.app.repositories.category_repository import CategoryRecord
from vwvideos.app.repositories.video_repository import VideoRecord
from vwvideos.app.services.public_service import (
    NavigationData,
    PublishedVideoPage,
    SiteInfo,
    VideoFilter,
)

router = APIRouter(prefix="/api/public", tags=["public"])

Services = Annotated[CatalogServices, Depends(get_services)]
PageParam = Annotated[str | None, Query(description="Page number; invalid values mean 1.")]
LimitParam = Annotated[int, Query(ge=1, le=100)]


def _not_found(label: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{label} not found.")


@router.get("/site", operation_id="public_site_info")
def site_info(services: Services) -> SiteInfo:
    return services.public.site


@router.get("/navigation", operation_id="public_navigation")
def navigation(services: Services) -> NavigationData:
    return services.public.navigation()


@router.get("/categories", operation_id="public_list_categories")
def list_categories(services: Services) -> list[CategoryRecord]:
    return services.categories.fetch_public_categories()


@router.get("/videos", operation_id="public_list_videos")
def list_videos(
    services: Services,
    page: PageParam = None,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> PublishedVideoPage:
    return services.public.fetch_published_videos(page=page, limit=limit)


@router.get("/videos/recent-popular", operation_id="public_recent_popular_videos")
def recent_popular_videos(services: Services, limit: LimitParam = 20) -> list[VideoRecord]:
    return services.public.get_recent_popular_videos(limit=limit)


@router.get("/videos/recently-published", operation_id="public_recently_published_videos")
def recently_published_videos(services: Services, limit: LimitParam = 20) -> list[VideoRecord]:
    return services.public.get_recently_published_videos(limit=limit)


@router.get("/videos/{slug}", operation_id="public_get_video")
def get_video(slug: str, services: Services) -> VideoRecord:
    record = services.public.get_video_by_slug(slug)
    if record is None:
        raise _not_found("Video")
    return record


@router.get("/types/{slug}", operation_id="public_vw_type_page")
def vw_type_page(slug: str, services: Services, page: PageParam = None) -> dict[str, Any]:
    vw_type = services.public.get_vw_type_page(slug)
    if vw_type is None:
        raise _not_found("VW type")
    videos = services.public.fetch_published_videos(
        page=page, video_filter=VideoFilter(vw_type_slug=vw_type.slug)
    )
    return {"vw_type": vw_type, "videos": videos}


@router.get("/categories/{slug}", operation_id="public_category_page")
def category_page(slug: str, services: Services, page: PageParam = None) -> dict[str, Any]:
    category = services.public.get_category_page(slug)
    if category is None:
        raise _not_found("Category")
    videos = services.public.fetch_published_videos(
        page=page, video_filter=VideoFilter(category_slug=slug)
    )
    return {"category": category, "videos": videos}


@router.get("/tags/{slug}", operation_id="public_tag_page")
def tag_page(slug: str, services: Services, page: PageParam = None) -> dict[str, Any]:
    tag = services.public.get_tag_page(slug)
    if tag is None:
        raise _not_found("Tag")
    videos = services.public.fetch_published_videos(
        page=page, video_filter=VideoFilter(tag_slug=slug)
    )
    return {"tag": tag, "videos": videos}


@router.get("/channels/{slug}", operation_id="public_channel_page")
def channel_page(slug: str, services: Services, page: PageParam = None) -> dict[str, Any]:
    channel = services.public.get_channel_page(slug)
    if channel is None:
        raise _not_found("Channel")
    videos = services.public.fetch_published_videos(
        page=page, video_filter=VideoFilter(channel_slug=slug)
    )
    return {"channel": channel, "videos": videos}


@router.get("/search", operation_id="public_search")
def search(
    request: Request,
    services: Services,
    q: Annotated[str, Query(max_length=200)] = "",
    page: PageParam = None,
) -> dict[str, Any]:
    result = services.public.search(
        q,
        page=page,
        forwarded_for=request.headers.get("x-forwarded-for"),
        remote_addr=request.client.host if request.client is not None else None,
    )
    return {"query": q.strip(), "videos": result}
