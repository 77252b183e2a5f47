from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from vwvideos.app.models.catalog_contracts import ActionResponse
from vwvideos.app.repositories.common import CatalogRepositoryError
from vwvideos.app.repositories.video_repository import VideoRepository
from vwvideos.app.services.action_results import succeeded
from vwvideos.app.services.youtube_service import (
    VideoPublicationStatus,
    YouTubeConfigurationError,
    YouTubeQuotaExceededError,
    YouTubeService,
    YouTubeServiceError,
)
from vwvideos.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("howto_vw.maintenance")

NO_PUBLISHED_VIDEOS_MESSAGE = "No published YouTube videos found to check."
VALID_VIDEO_REASON = "Video is public and processed."


@dataclass
class VideoCheckResult:
    db_video_id: int
    youtube_video_id: str
    title: str
    old_status: str
    is_valid: bool
    reason: str | None = None
    new_status: str | None = None
    error: str | None = None


@dataclass
class StatusCheckSummary:
    total_checked: int = 0
    total_found_invalid: int = 0
    total_api_errors: int = 0
    details: list[VideoCheckResult] = field(default_factory=list)
    service_error: str | None = None


def _unavailable_reason(status: VideoPublicationStatus) -> str | None:
    if not status.found:
        return "Video not found on YouTube."
    if status.privacy_status != "public":
        return f"Video is not public (privacy: {status.privacy_status})."
    if status.upload_status != "processed":
        return f"Video upload status is not 'processed' (status: {status.upload_status})."
    return None


class MaintenanceService:
    def __init__(
        self,
        *,
        videos: VideoRepository,
        youtube: YouTubeService,
        batch_size: int = 50,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._videos = videos
        self._youtube = youtube
        self._batch_size = max(1, batch_size)
        self._telemetry = telemetry or TelemetryClient.disabled()

    def check_published_video_statuses(self) -> StatusCheckSummary:
        """Mark published videos that YouTube no longer serves publicly as UNAVAILABLE."""
        summary = StatusCheckSummary()
        published = self._videos.list_published_for_status_check()
        if not published:
            summary.service_error = NO_PUBLISHED_VIDEOS_MESSAGE
            return summary

        for start in range(0, len(published), self._batch_size):
            batch = published[start : start + self._batch_size]
            try:
                statuses = self._youtube.get_publication_statuses(
                    [video_id for _, video_id, _, _ in batch]
                )
            except YouTubeQuotaExceededError as exc:
                LOGGER.warning(
                    "status check aborted on quota error checked=%s", summary.total_checked
                )
                summary.service_error = f"YouTube API quota exceeded: {exc}"
                break
            except YouTubeConfigurationError as exc:
                summary.service_error = str(exc)
                break
            except YouTubeServiceError as exc:
                summary.total_api_errors += 1
                summary.details.append(
                    VideoCheckResult(
                        db_video_id=0,
                        youtube_video_id=f"Batch starting with {batch[0][1]}",
                        title="API Batch Failed",
                        old_status="PUBLISHED",
                        is_valid=False,
                        reason="API call failed for this batch.",
                        error=str(exc),
                    )
                )
                LOGGER.warning("status check batch failed start=%s error=%s", start, exc)
                continue

            by_video_id = {status.video_id: status for status in statuses}
            for video_pk, video_id, title, old_status in batch:
                summary.total_checked += 1
                status = by_video_id.get(video_id, VideoPublicationStatus(video_id, found=False))
                reason = _unavailable_reason(status)
                result = VideoCheckResult(
                    db_video_id=video_pk,
                    youtube_video_id=video_id,
                    title=title,
                    old_status=old_status,
                    is_valid=reason is None,
                    reason=reason or VALID_VIDEO_REASON,
                )
                if reason is not None:
                    summary.total_found_invalid += 1
                    try:
                        self._videos.mark_unavailable(video_pk, reason)
                    except (CatalogRepositoryError, sqlite3.Error) as exc:
                        LOGGER.error(
                            "status check update failed video_id=%s error=%s", video_id, exc
                        )
                        result.error = str(exc)
                    else:
                        result.new_status = "UNAVAILABLE"
                summary.details.append(result)

        LOGGER.info(
            "status check finished checked=%s invalid=%s api_errors=%s",
            summary.total_checked,
            summary.total_found_invalid,
            summary.total_api_errors,
        )
        self._telemetry.emit(
            "maintenance.status_check.completed",
            checked=summary.total_checked,
            invalid=summary.total_found_invalid,
            api_errors=summary.total_api_errors,
        )
        return summary

    def trigger_video_status_check(self) -> ActionResponse:
        summary = self.check_published_video_statuses()
        if summary.service_error is not None:
            return ActionResponse(
                success=False,
                message="Video status check could not complete.",
                error=summary.service_error,
                data=summary,
            )
        return succeeded(
            "Video status check completed. "
            f"Checked: {summary.total_checked}, Invalid: {summary.total_found_invalid}.",
            data=summary,
        )
