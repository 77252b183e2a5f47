from __future__ import annotations

import logging
import sqlite3
from typing import Any

from vwvideos.app.models.catalog_contracts import ActionResponse, ImportVideoRequest
from vwvideos.app.repositories.category_repository import CategoryRepository
from vwvideos.app.repositories.common import (
    CatalogRepositoryError,
    DuplicateRecordError,
    utc_now_iso,
)
from vwvideos.app.repositories.video_repository import VideoFields, VideoLinks, VideoRepository
from vwvideos.app.repositories.vw_type_repository import VWTypeRepository
from vwvideos.app.services.action_results import failed, parse_form, succeeded
from vwvideos.app.services.category_service import (
    UNCATEGORIZED_CATEGORY_DESCRIPTION,
    UNCATEGORIZED_CATEGORY_NAME,
    CategoryService,
)
from vwvideos.app.services.openai_service import OpenAIClassifier, OpenAIServiceError
from vwvideos.app.services.youtube_service import (
    YOUTUBE_CHANNEL_URL,
    YOUTUBE_WATCH_URL,
    YouTubeQuotaExceededError,
    YouTubeSearchItem,
    YouTubeService,
    YouTubeServiceError,
)
from vwvideos.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("howto_vw.import")

IMPORT_FORM_ASSIGNER = "youtube-import-form"
BATCH_OPENAI_ASSIGNER = "batch-import-openai"
BATCH_FALLBACK_ASSIGNER = "batch-import-uncategorized-fallback"
ALL_RESULTS_EXIST_MESSAGE = "All videos found in the search results already exist in the database."


def _batch_entry(
    video_id: str,
    *,
    success: bool,
    message: str,
    error: str | None = None,
) -> dict[str, Any]:
    return {"video_id": video_id, "success": success, "message": message, "error": error}


class ImportService:
    def __init__(
        self,
        *,
        videos: VideoRepository,
        categories: CategoryRepository,
        vw_types: VWTypeRepository,
        category_service: CategoryService,
        youtube: YouTubeService,
        classifier: OpenAIClassifier,
        telemetry: TelemetryClient | None = None,
        default_max_results: int = 10,
    ) -> None:
        self._videos = videos
        self._categories = categories
        self._vw_types = vw_types
        self._category_service = category_service
        self._youtube = youtube
        self._classifier = classifier
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._default_max_results = default_max_results

    def search_youtube_videos(
        self, query: str, *, max_results: int | None = None
    ) -> ActionResponse:
        """Search YouTube and drop results that are already in the catalog."""
        try:
            items = self._youtube.search_videos(
                query, max_results=max_results or self._default_max_results
            )
        except YouTubeQuotaExceededError as exc:
            LOGGER.warning("youtube search quota exceeded query=%s", query)
            return ActionResponse(
                success=False,
                message="YouTube API quota exceeded. Please try again later.",
                error=str(exc),
                data={"quota_exceeded": True},
            )
        except YouTubeServiceError as exc:
            return failed("Failed to search YouTube videos.", error=str(exc))

        existing = self._videos.existing_platform_ids([item.video_id for item in items])
        fresh = [item for item in items if item.video_id not in existing]
        self._telemetry.emit(
            "youtube.search.completed",
            result_count=len(items),
            new_count=len(fresh),
        )
        if items and not fresh:
            return ActionResponse(success=True, data=[], error=ALL_RESULTS_EXIST_MESSAGE)
        return succeeded(data=fresh)

    def get_youtube_transcript(self, video_id: str) -> ActionResponse:
        try:
            transcript = self._youtube.get_transcript(video_id)
        except YouTubeServiceError as exc:
            return failed("Failed to fetch transcript.", error=str(exc))
        return succeeded(data={"transcript": transcript})

    def analyze_transcript(self, transcript: str, *, title: str | None = None) -> ActionResponse:
        if not transcript.strip():
            return failed("Transcript is empty or not provided.")
        try:
            classification = self._classifier.classify_transcript(
                transcript,
                category_names=self._category_names(),
                vw_type_names=self._vw_type_names(),
                title=title or "",
            )
        except OpenAIServiceError as exc:
            return failed("Failed to analyze transcript.", error=str(exc))
        return succeeded(data=classification)

    def import_youtube_video(self, payload: dict[str, Any]) -> ActionResponse:
        request = parse_form(ImportVideoRequest, payload, invalid_message="Invalid import data.")
        if isinstance(request, ActionResponse):
            return request
        video = request.video
        has_categories = request.category_id is not None or bool(request.category_names)
        if request.is_how_to_vw_video and not has_categories:
            return failed("No category information provided for a How-To VW video.")
        if self._videos.get_by_platform_id(video.video_id) is not None:
            return failed(f'Video "{video.title}" already exists.')

        category_ids: list[int] = []
        if request.is_how_to_vw_video:
            if request.category_id is not None:
                if not self._categories.existing_ids([request.category_id]):
                    return failed(f"Category with ID {request.category_id} not found.")
                category_ids.append(request.category_id)
            else:
                for name in request.category_names:
                    if name.strip():
                        category_ids.append(
                            self._category_service.ensure_category(name).category_id
                        )

        transcript: str | None = None
        try:
            transcript = self._youtube.get_transcript(video.video_id)
        except YouTubeServiceError as exc:
            LOGGER.info("import transcript unavailable video_id=%s reason=%s", video.video_id, exc)

        if request.is_how_to_vw_video:
            fields = VideoFields(
                video_id=video.video_id,
                title=video.title,
                description=video.description,
                url=YOUTUBE_WATCH_URL.format(video_id=video.video_id),
                thumbnail_url=video.thumbnail_url,
                channel_title=request.channel_title or video.channel_title,
                status="DRAFT",
                is_how_to_vw_video=True,
                source_keyword=request.source_keyword,
                transcript=transcript,
                processed_at=utc_now_iso(),
                published_at=video.published_at,
            )
        else:
            fields = VideoFields(
                video_id=video.video_id,
                title=video.title,
                status="REJECTED",
                is_how_to_vw_video=False,
                source_keyword=request.source_keyword,
                processed_at=utc_now_iso(),
            )
        links = VideoLinks(
            category_ids=list(dict.fromkeys(category_ids)),
            assigned_by=IMPORT_FORM_ASSIGNER,
        )
        try:
            record = self._videos.create_video(fields, links=links)
        except DuplicateRecordError:
            return failed(f'Video "{video.title}" already exists.')

        linked = len(links.category_ids)
        LOGGER.info(
            "video imported id=%s video_id=%s status=%s categories=%s",
            record.id,
            record.video_id,
            record.status,
            linked,
        )
        self._telemetry.emit("catalog.video.imported", status=record.status, categories=linked)
        noun = "category" if linked == 1 else "categories"
        return succeeded(
            f'Video "{record.title}" imported successfully with {linked} {noun}!',
            data=record,
        )

    def batch_import_videos(
        self,
        search_query: str,
        *,
        max_results: int | None = None,
    ) -> list[dict[str, Any]]:
        """Search, classify and store every new result, reporting one entry per video.

        How-to videos are published straight away with their suggested
        categories, VW types and tags. Everything else is stored as REJECTED
        so later searches skip it.
        """
        try:
            uncategorized = self._category_service.ensure_category(
                UNCATEGORIZED_CATEGORY_NAME,
                description=UNCATEGORIZED_CATEGORY_DESCRIPTION,
            )
            try:
                items = self._youtube.search_videos(
                    search_query,
                    max_results=max_results or self._default_max_results,
                )
            except YouTubeServiceError as exc:
                LOGGER.warning("batch import search failed query=%s error=%s", search_query, exc)
                return [
                    _batch_entry(
                        "search",
                        success=False,
                        message="Failed to search videos",
                        error=str(exc),
                    )
                ]

            results = [
                self._import_or_report(item, search_query, uncategorized.category_id)
                for item in items
            ]
        except (CatalogRepositoryError, sqlite3.Error) as exc:
            LOGGER.exception("batch import aborted query=%s", search_query)
            return [
                _batch_entry(
                    "batch",
                    success=False,
                    message="Batch import failed unexpectedly.",
                    error=str(exc),
                )
            ]

        self._telemetry.emit(
            "catalog.batch_import.completed",
            result_count=len(results),
            success_count=sum(1 for entry in results if entry["success"]),
        )
        return results

    def _import_or_report(
        self,
        item: YouTubeSearchItem,
        source_keyword: str,
        uncategorized_id: int,
    ) -> dict[str, Any]:
        try:
            return self._import_search_item(item, source_keyword, uncategorized_id)
        except (CatalogRepositoryError, sqlite3.Error) as exc:
            LOGGER.exception("batch import item failed video_id=%s", item.video_id)
            return _batch_entry(
                item.video_id,
                success=False,
                message="Failed to process video",
                error=str(exc),
            )

    def _import_search_item(
        self,
        item: YouTubeSearchItem,
        source_keyword: str,
        uncategorized_id: int,
    ) -> dict[str, Any]:
        if self._videos.get_by_platform_id(item.video_id) is not None:
            return _batch_entry(
                item.video_id,
                success=False,
                message=f'Video "{item.title}" already exists in the database.',
            )

        try:
            transcript = self._youtube.get_transcript(item.video_id)
        except YouTubeServiceError as exc:
            return self._store_rejected(item, source_keyword, processing_error=str(exc))

        try:
            classification = self._classifier.classify_transcript(
                transcript,
                category_names=self._category_names(),
                vw_type_names=self._vw_type_names(),
                title=item.title,
            )
        except OpenAIServiceError as exc:
            return self._store_rejected(item, source_keyword, processing_error=str(exc))

        if not classification.is_how_to_vw_video:
            return self._store_rejected(
                item,
                source_keyword,
                processing_error="Classified as not a How-To VW video.",
            )

        category_ids = [
            self._category_service.ensure_category(name).category_id
            for name in classification.categories
            if name.strip()
        ]
        assigned_by = BATCH_OPENAI_ASSIGNER
        if not category_ids:
            category_ids = [uncategorized_id]
            assigned_by = BATCH_FALLBACK_ASSIGNER
        links = VideoLinks(
            category_ids=list(dict.fromkeys(category_ids)),
            vw_type_ids=self._vw_types.resolve_ids(classification.vw_types),
            tag_names=classification.tags,
            assigned_by=assigned_by,
        )
        fields = VideoFields(
            video_id=item.video_id,
            title=item.title,
            description=item.description,
            url=item.url,
            thumbnail_url=item.thumbnail_url,
            channel_title=item.channel_title,
            channel_url=(
                None
                if item.channel_id is None
                else YOUTUBE_CHANNEL_URL.format(channel_id=item.channel_id)
            ),
            status="PUBLISHED",
            is_how_to_vw_video=True,
            source_keyword=source_keyword,
            transcript=transcript,
            processed_at=utc_now_iso(),
            published_at=item.published_at,
        )
        try:
            record = self._videos.create_video(fields, links=links, generate_slug=True)
        except DuplicateRecordError as exc:
            return _batch_entry(
                item.video_id,
                success=False,
                message=f'Failed to store video "{item.title}".',
                error=str(exc),
            )
        return _batch_entry(
            item.video_id,
            success=True,
            message=(
                f'Video "{record.title}" processed. Status: {record.status}. '
                f"Categories linked: {len(record.categories)}."
            ),
        )

    def _store_rejected(
        self,
        item: YouTubeSearchItem,
        source_keyword: str,
        *,
        processing_error: str,
    ) -> dict[str, Any]:
        fields = VideoFields(
            video_id=item.video_id,
            title=item.title,
            status="REJECTED",
            is_how_to_vw_video=False,
            source_keyword=source_keyword,
            processing_error=processing_error,
            processed_at=utc_now_iso(),
        )
        try:
            record = self._videos.create_video(fields)
        except DuplicateRecordError as exc:
            return _batch_entry(
                item.video_id,
                success=False,
                message=f'Failed to store video "{item.title}".',
                error=str(exc),
            )
        return _batch_entry(
            item.video_id,
            success=True,
            message=(
                f'Video "{record.title}" processed. Status: {record.status}. '
                "Categories linked: 0."
            ),
            error=processing_error,
        )

    def _category_names(self) -> list[str]:
        return [
            category.name
            for category in self._categories.list_categories(
                order="name", exclude_names=(UNCATEGORIZED_CATEGORY_NAME,)
            )
        ]

    def _vw_type_names(self) -> list[str]:
        return [vw_type.name for vw_type in self._vw_types.list_vw_types()]
