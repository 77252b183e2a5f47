from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from vwvideos.app.repositories.category_repository import CategoryRecord
from vwvideos.app.repositories.channel_repository import ChannelRecord
from vwvideos.app.repositories.tag_repository import TagRecord
from vwvideos.app.repositories.video_repository import VideoQuery, VideoRecord, VideoRepository
from vwvideos.app.repositories.vw_type_repository import ALL_TYPES_SLUG, VWTypeRecord
from vwvideos.app.services.category_service import CategoryService
from vwvideos.app.services.channel_service import ChannelService
from vwvideos.app.services.search_log_service import SearchLogService
from vwvideos.app.services.tag_service import TagService
from vwvideos.app.services.vw_type_service import VWTypeService

LOGGER = logging.getLogger("howto_vw.public")


@dataclass(frozen=True)
class VideoFilter:
    """At most one of the slug filters or the search term narrows a feed."""

    vw_type_slug: str | None = None
    category_slug: str | None = None
    tag_slug: str | None = None
    channel_slug: str | None = None
    search_query: str | None = None

    def base_path(self) -> str:
        if self.vw_type_slug:
            return f"/types/{self.vw_type_slug}"
        if self.category_slug:
            return f"/categories/{self.category_slug}"
        if self.tag_slug:
            return f"/tags/{self.tag_slug}"
        if self.channel_slug:
            return f"/channels/{self.channel_slug}"
        if self.search_query:
            return "/search"
        return "/"


@dataclass(frozen=True)
class PublishedVideoPage:
    videos: list[VideoRecord]
    current_page: int
    total_pages: int
    total_videos: int
    has_next_page: bool
    has_prev_page: bool
    base_path: str


@dataclass(frozen=True)
class NavigationData:
    categories: list[CategoryRecord]
    vw_types: list[VWTypeRecord]
    tags: list[TagRecord]
    channels: list[ChannelRecord]


@dataclass(frozen=True)
class SiteInfo:
    site_name: str
    site_url: str


def clamp_page(raw_page: object) -> int:
    """Coerce a page parameter to a positive integer, falling back to 1."""
    try:
        page = int(str(raw_page))
    except (TypeError, ValueError):
        return 1
    return max(page, 1)


class PublicCatalogService:
    def __init__(
        self,
        *,
        videos: VideoRepository,
        category_service: CategoryService,
        vw_type_service: VWTypeService,
        tag_service: TagService,
        channel_service: ChannelService,
        search_log_service: SearchLogService,
        site_name: str,
        site_url: str,
        page_size: int = 20,
        popular_window_days: int = 7,
    ) -> None:
        self._videos = videos
        self._categories = category_service
        self._vw_types = vw_type_service
        self._tags = tag_service
        self._channels = channel_service
        self._search_logs = search_log_service
        self._site = SiteInfo(site_name=site_name, site_url=site_url)
        self._page_size = page_size
        self._popular_window = timedelta(days=popular_window_days)

    @property
    def site(self) -> SiteInfo:
        return self._site

    def fetch_published_videos(
        self,
        *,
        page: object = 1,
        limit: int | None = None,
        video_filter: VideoFilter | None = None,
    ) -> PublishedVideoPage:
        active_filter = video_filter or VideoFilter()
        page_size = max(1, limit or self._page_size)
        current_page = clamp_page(page)
        records, total = self._videos.list_videos(
            VideoQuery(
                public_only=True,
                vw_type_slug=active_filter.vw_type_slug,
                category_slug=active_filter.category_slug,
                tag_slug=active_filter.tag_slug,
                channel_slug=active_filter.channel_slug,
                search=active_filter.search_query,
                limit=page_size,
                offset=(current_page - 1) * page_size,
            )
        )
        total_pages = -(-total // page_size)
        return PublishedVideoPage(
            videos=records,
            current_page=current_page,
            total_pages=total_pages,
            total_videos=total,
            has_next_page=current_page < total_pages,
            has_prev_page=current_page > 1,
            base_path=active_filter.base_path(),
        )

    def get_video_by_slug(self, slug: str) -> VideoRecord | None:
        return self._videos.get_public_by_slug(slug)

    def get_recent_popular_videos(self, *, limit: int = 20) -> list[VideoRecord]:
        since = (datetime.now(UTC) - self._popular_window).isoformat()
        records, _ = self._videos.list_videos(
            VideoQuery(public_only=True, created_since=since, order_by="popularity", limit=limit)
        )
        return records

    def get_recently_published_videos(self, *, limit: int = 20) -> list[VideoRecord]:
        records, _ = self._videos.list_videos(
            VideoQuery(public_only=True, order_by="published_at", limit=limit)
        )
        return records

    def get_vw_type_page(self, slug: str) -> VWTypeRecord | None:
        """Type landing pages exist for concrete models only, never the catch-all type."""
        if slug == ALL_TYPES_SLUG:
            return None
        return self._vw_types.get_vw_type_by_slug(slug)

    def get_category_page(self, slug: str) -> CategoryRecord | None:
        return self._categories.get_category_by_slug(slug)

    def get_tag_page(self, slug: str) -> TagRecord | None:
        return self._tags.get_tag_by_slug(slug)

    def get_channel_page(self, slug: str) -> ChannelRecord | None:
        return self._channels.get_channel_by_slug(slug)

    def navigation(self) -> NavigationData:
        return NavigationData(
            categories=self._categories.fetch_public_categories(),
            vw_types=self._vw_types.fetch_navigation_vw_types(),
            tags=self._tags.fetch_navigation_tags(),
            channels=self._channels.fetch_navigation_channels(),
        )

    def search(
        self,
        term: str,
        *,
        page: object = 1,
        forwarded_for: str | None = None,
        remote_addr: str | None = None,
    ) -> PublishedVideoPage:
        normalized = term.strip()
        if not normalized:
            return PublishedVideoPage(
                videos=[],
                current_page=1,
                total_pages=0,
                total_videos=0,
                has_next_page=False,
                has_prev_page=False,
                base_path="/search",
            )
        result = self.fetch_published_videos(
            page=page,
            video_filter=VideoFilter(search_query=normalized),
        )
        LOGGER.debug("public search results=%s page=%s", result.total_videos, result.current_page)
        self._search_logs.log_search(
            normalized,
            results_count=result.total_videos,
            forwarded_for=forwarded_for,
            remote_addr=remote_addr,
        )
        return result
