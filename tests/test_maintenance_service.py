from __future__ import annotations

import sqlite3

import pytest

from tests.fakes import FakeYouTubeApi
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.video_repository import VideoFields, VideoRepository
from vwvideos.app.services.maintenance_service import (
    NO_PUBLISHED_VIDEOS_MESSAGE,
    MaintenanceService,
    VideoCheckResult,
)
from vwvideos.app.services.youtube_service import YouTubeService


class HttpError(Exception):
    pass


def _publish(videos: VideoRepository, video_id: str) -> int:
    record = videos.create_video(
        VideoFields(
            video_id=video_id,
            title=f"Video {video_id}",
            status="PUBLISHED",
            is_how_to_vw_video=True,
        ),
        generate_slug=True,
    )
    return record.id


def _public_status() -> dict[str, object]:
    return {"status": {"privacyStatus": "public", "uploadStatus": "processed"}}


def test_status_check_marks_missing_and_private_videos(
    database: Database,
    youtube_service: YouTubeService,
    fake_youtube_api: FakeYouTubeApi,
) -> None:
    videos = VideoRepository(database)
    healthy = _publish(videos, "healthy")
    private = _publish(videos, "private")
    gone = _publish(videos, "gone")
    _publish(videos, "uploading")
    fake_youtube_api.videos_by_id["healthy"] = _public_status()
    fake_youtube_api.videos_by_id["private"] = {
        "status": {"privacyStatus": "private", "uploadStatus": "processed"}
    }
    fake_youtube_api.videos_by_id["uploading"] = {
        "status": {"privacyStatus": "public", "uploadStatus": "uploaded"}
    }
    service = MaintenanceService(videos=videos, youtube=youtube_service, batch_size=2)

    summary = service.check_published_video_statuses()

    assert summary.service_error is None
    assert summary.total_checked == 4
    assert summary.total_found_invalid == 3
    assert summary.total_api_errors == 0
    assert len(fake_youtube_api.calls) == 2
    by_video_id = {detail.youtube_video_id: detail for detail in summary.details}
    assert by_video_id["healthy"] == VideoCheckResult(
        db_video_id=healthy,
        youtube_video_id="healthy",
        title="Video healthy",
        old_status="PUBLISHED",
        is_valid=True,
        reason="Video is public and processed.",
    )
    assert by_video_id["gone"].reason == "Video not found on YouTube."
    assert by_video_id["gone"].new_status == "UNAVAILABLE"
    assert by_video_id["private"].reason == "Video is not public (privacy: private)."
    assert by_video_id["uploading"].reason == (
        "Video upload status is not 'processed' (status: uploaded)."
    )
    assert all(detail.error is None for detail in summary.details)

    private_record = videos.get_video(private)
    assert private_record is not None
    assert private_record.status == "UNAVAILABLE"
    assert private_record.processing_error is not None
    gone_record = videos.get_video(gone)
    assert gone_record is not None
    assert gone_record.status == "UNAVAILABLE"
    healthy_record = videos.get_video(healthy)
    assert healthy_record is not None
    assert healthy_record.status == "PUBLISHED"


def test_status_check_without_published_videos(
    database: Database, youtube_service: YouTubeService
) -> None:
    service = MaintenanceService(videos=VideoRepository(database), youtube=youtube_service)

    response = service.trigger_video_status_check()

    assert response.success is False
    assert response.error == NO_PUBLISHED_VIDEOS_MESSAGE


def test_status_check_counts_failed_batches_and_stops_on_quota(
    database: Database,
    youtube_service: YouTubeService,
    fake_youtube_api: FakeYouTubeApi,
) -> None:
    videos = VideoRepository(database)
    for index in range(3):
        _publish(videos, f"vid-{index}")
    service = MaintenanceService(videos=videos, youtube=youtube_service, batch_size=2)

    fake_youtube_api.errors["videos.list"] = HttpError("backend error")
    failed_batches = service.check_published_video_statuses()
    assert failed_batches.total_api_errors == 2
    assert failed_batches.total_checked == 0
    assert failed_batches.service_error is None
    first_failure = failed_batches.details[0]
    assert first_failure.youtube_video_id == "Batch starting with vid-0"
    assert first_failure.reason == "API call failed for this batch."
    assert first_failure.error == "backend error"

    fake_youtube_api.calls.clear()
    fake_youtube_api.errors["videos.list"] = HttpError("dailyLimitExceeded")
    quota = service.trigger_video_status_check()
    assert quota.success is False
    assert quota.message == "Video status check could not complete."
    assert quota.error == "YouTube API quota exceeded: dailyLimitExceeded"
    assert len(fake_youtube_api.calls) == 1


def test_trigger_reports_counts(
    database: Database,
    youtube_service: YouTubeService,
    fake_youtube_api: FakeYouTubeApi,
) -> None:
    videos = VideoRepository(database)
    _publish(videos, "fine")
    fake_youtube_api.videos_by_id["fine"] = _public_status()
    service = MaintenanceService(videos=videos, youtube=youtube_service)

    response = service.trigger_video_status_check()

    assert response.success is True
    assert response.message == "Video status check completed. Checked: 1, Invalid: 0."


def test_status_check_without_api_key(database: Database) -> None:
    videos = VideoRepository(database)
    _publish(videos, "vid")
    service = MaintenanceService(videos=videos, youtube=YouTubeService(None))

    summary = service.check_published_video_statuses()

    assert summary.total_checked == 0
    assert summary.service_error is not None
    assert "YouTube API key is not configured" in summary.service_error


def test_status_check_records_update_failures_per_video(
    database: Database,
    youtube_service: YouTubeService,
    fake_youtube_api: FakeYouTubeApi,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    videos = VideoRepository(database)
    stuck = _publish(videos, "stuck")
    gone = _publish(videos, "gone")
    original_mark = VideoRepository.mark_unavailable

    def mark_unavailable(self: VideoRepository, video_pk: int, reason: str) -> None:
        if video_pk == stuck:
            raise sqlite3.OperationalError("database is locked")
        original_mark(self, video_pk, reason)

    monkeypatch.setattr(VideoRepository, "mark_unavailable", mark_unavailable)
    service = MaintenanceService(videos=videos, youtube=youtube_service)

    summary = service.check_published_video_statuses()

    assert summary.total_checked == 2
    assert summary.total_found_invalid == 2
    stuck_result, gone_result = summary.details
    assert stuck_result.error == "database is locked"
    assert stuck_result.new_status is None
    assert gone_result.error is None
    assert gone_result.new_status == "UNAVAILABLE"
    stuck_record = videos.get_video(stuck)
    assert stuck_record is not None
    assert stuck_record.status == "PUBLISHED"
    gone_record = videos.get_video(gone)
    assert gone_record is not None
    assert gone_record.status == "UNAVAILABLE"
