from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from vwvideos.app.models.catalog_contracts import (
    VIDEO_STATUS_LABELS,
    ActionResponse,
    VideoForm,
    VideoTableQuery,
)
from vwvideos.app.repositories.category_repository import CategoryRepository
from vwvideos.app.repositories.common import DuplicateRecordError, RecordNotFoundError
from vwvideos.app.repositories.video_repository import (
    VideoFields,
    VideoLinks,
    VideoQuery,
    VideoRecord,
    VideoRepository,
)
from vwvideos.app.repositories.vw_type_repository import VWTypeRepository
from vwvideos.app.services.action_results import (
    duplicate_field_response,
    failed,
    parse_form,
    succeeded,
)
from vwvideos.app.services.openai_service import OpenAIClassifier, OpenAIServiceError
from vwvideos.app.services.youtube_service import YouTubeService, YouTubeServiceError
from vwvideos.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("howto_vw.videos")

ADMIN_FORM_ASSIGNER = "admin-form"
_DUPLICATE_MESSAGES = {
    "video_id": "A video with this Video ID already exists.",
    "url": "A video with this URL already exists.",
    "slug": "A video with this slug already exists.",
}


@dataclass(frozen=True)
class VideoTablePage:
    videos: list[VideoRecord]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class DashboardStats:
    video_count: int
    category_count: int
    status_counts: dict[str, int]


class VideoService:
    def __init__(
        self,
        *,
        videos: VideoRepository,
        categories: CategoryRepository,
        vw_types: VWTypeRepository,
        youtube: YouTubeService,
        classifier: OpenAIClassifier,
        telemetry: TelemetryClient | None = None,
        default_page_size: int = 50,
    ) -> None:
        self._videos = videos
        self._categories = categories
        self._vw_types = vw_types
        self._youtube = youtube
        self._classifier = classifier
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._default_page_size = default_page_size

    def fetch_videos_for_table(self, query: VideoTableQuery | None = None) -> VideoTablePage:
        table_query = query or VideoTableQuery()
        page_size = table_query.page_size or self._default_page_size
        records, total = self._videos.list_videos(
            VideoQuery(
                status=table_query.status,
                category_id=table_query.category_id,
                vw_type_slug=table_query.vw_type_slug,
                search=table_query.query,
                limit=page_size,
                offset=(table_query.page - 1) * page_size,
            )
        )
        return VideoTablePage(
            videos=records,
            total=total,
            page=table_query.page,
            page_size=page_size,
            total_pages=max(1, -(-total // page_size)),
        )

    def get_video_by_id(self, video_pk: int) -> VideoRecord | None:
        return self._videos.get_video(video_pk)

    def dashboard_stats(self) -> DashboardStats:
        status_counts = self._videos.count_by_status()
        return DashboardStats(
            video_count=sum(status_counts.values()),
            category_count=self._categories.count_categories(),
            status_counts={
                VIDEO_STATUS_LABELS.get(status, status): count
                for status, count in status_counts.items()
            },
        )

    def add_video(self, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(VideoForm, payload)
        if isinstance(form, ActionResponse):
            return form
        links = self._links_from_form(form)
        if isinstance(links, ActionResponse):
            return links
        try:
            record = self._videos.create_video(
                _fields_from_form(form),
                links=links,
                generate_slug=form.status == "PUBLISHED",
            )
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc,
                _DUPLICATE_MESSAGES,
                fallback="Failed to create video due to an unexpected error.",
            )
        LOGGER.info(
            "video added id=%s video_id=%s status=%s", record.id, record.video_id, record.status
        )
        self._telemetry.emit("catalog.video.added", status=record.status, platform=record.platform)
        return succeeded("Video added successfully!", data=record)

    def update_video(self, video_pk: int, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(VideoForm, payload)
        if isinstance(form, ActionResponse):
            return form
        existing = self._videos.get_video(video_pk)
        if existing is None:
            return failed("Video not found. It may have been deleted.")
        links = self._links_from_form(form)
        if isinstance(links, ActionResponse):
            return links
        fields = replace(_fields_from_form(form), slug=form.slug or existing.slug)
        try:
            record = self._videos.update_video(
                video_pk,
                fields,
                links=links,
                generate_slug=form.status == "PUBLISHED",
            )
        except RecordNotFoundError:
            return failed("Video not found. It may have been deleted.")
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc,
                _DUPLICATE_MESSAGES,
                fallback="Failed to update video due to an unexpected error.",
            )
        LOGGER.info("video updated id=%s status=%s", video_pk, record.status)
        return succeeded("Video updated successfully!", data=record)

    def delete_video(self, video_pk: int) -> ActionResponse:
        try:
            self._videos.delete_video(video_pk)
        except RecordNotFoundError:
            return failed(
                "Failed to delete video. It might have already been deleted or an error occurred."
            )
        LOGGER.info("video deleted id=%s", video_pk)
        return succeeded("Video deleted successfully!")

    def bulk_delete_videos(self, ids: list[int]) -> ActionResponse:
        if not ids:
            return failed("No video IDs provided for deletion.")
        deleted = self._videos.delete_videos(ids)
        return succeeded(f"{deleted} video(s) deleted successfully.", count=deleted)

    def bulk_update_status(self, ids: list[int], status: str) -> ActionResponse:
        if not ids:
            return failed("No video IDs provided for status update.")
        updated = self._videos.update_status(ids, status)
        label = VIDEO_STATUS_LABELS.get(status, status)
        return succeeded(f"{updated} video(s) set to {label}.", count=updated)

    def get_video_transcript(self, video_pk: int) -> ActionResponse:
        record = self._videos.get_video(video_pk)
        if record is None:
            return failed("Video not found.")
        try:
            transcript = self._youtube.get_transcript(record.video_id)
        except YouTubeServiceError as exc:
            return failed("Failed to fetch transcript.", error=str(exc))
        self._videos.set_transcript(video_pk, transcript)
        return succeeded("Transcript fetched successfully.", data={"transcript": transcript})

    def analyze_video_with_openai(self, video_pk: int) -> ActionResponse:
        record = self._videos.get_video(video_pk)
        if record is None:
            return failed("Video not found.")
        transcript = record.transcript
        if not transcript:
            try:
                transcript = self._youtube.get_transcript(record.video_id)
            except YouTubeServiceError as exc:
                return failed("Cannot analyze video without a transcript.", error=str(exc))
            self._videos.set_transcript(video_pk, transcript)

        try:
            classification = self._classifier.classify_transcript(
                transcript,
                category_names=[
                    category.name for category in self._categories.list_categories(order="name")
                ],
                vw_type_names=[vw_type.name for vw_type in self._vw_types.list_vw_types()],
                title=record.title,
            )
        except OpenAIServiceError as exc:
            self._videos.set_classification(
                video_pk,
                is_how_to_vw_video=record.is_how_to_vw_video,
                processing_error=str(exc),
            )
            return failed("OpenAI analysis failed.", error=str(exc))

        self._videos.set_classification(
            video_pk,
            is_how_to_vw_video=classification.is_how_to_vw_video,
            processing_error=None,
        )
        return succeeded("Video analyzed successfully.", data=classification)

    def refetch_video_info(self, video_pk: int) -> ActionResponse:
        record = self._videos.get_video(video_pk)
        if record is None:
            return failed("Video not found.")
        try:
            details = self._youtube.get_video_details(record.video_id)
        except YouTubeServiceError as exc:
            return failed("Failed to refetch video information.", error=str(exc))
        if details is None:
            return failed(f'Video "{record.video_id}" was not found on YouTube.')
        updated = self._videos.update_platform_metadata(
            video_pk,
            title=details.title,
            description=details.description,
            thumbnail_url=details.thumbnail_url,
            channel_title=details.channel_title,
            channel_url=details.channel_url,
            published_at=details.published_at,
        )
        LOGGER.info("video refetched id=%s video_id=%s", video_pk, record.video_id)
        return succeeded("Video information refreshed.", data=updated)

    def _links_from_form(self, form: VideoForm) -> VideoLinks | ActionResponse:
        missing = set(form.category_ids) - self._categories.existing_ids(form.category_ids)
        if missing:
            message = f"Category with ID {min(missing)} not found."
            return failed("Invalid data provided.", errors={"category_ids": [message]})
        return VideoLinks(
            category_ids=list(dict.fromkeys(form.category_ids)),
            vw_type_ids=self._vw_types.resolve_ids(form.vw_types),
            tag_names=form.tags,
            assigned_by=ADMIN_FORM_ASSIGNER,
        )


def _fields_from_form(form: VideoForm) -> VideoFields:
    return VideoFields(
        platform=form.platform,
        video_id=form.video_id,
        slug=form.slug,
        title=form.title,
        description=form.description,
        url=form.url,
        thumbnail_url=form.thumbnail_url,
        channel_id=form.channel_id,
        status=form.status,
        # Videos entered by an admin are curated how-to content.
        is_how_to_vw_video=True,
    )
