from __future__ import annotations

import pytest
from youtube_transcript_api import TranscriptsDisabled

from tests.fakes import FakeTranscripts, FakeYouTubeApi
from vwvideos.app.services.youtube_service import (
    EMPTY_TRANSCRIPT_MESSAGE,
    TRANSCRIPTS_DISABLED_MESSAGE,
    TranscriptUnavailableError,
    YouTubeConfigurationError,
    YouTubeQuotaExceededError,
    YouTubeService,
    YouTubeServiceError,
)


class HttpError(Exception):
    pass


def test_search_videos_decodes_entities_and_prefers_high_thumbnail(
    youtube_service: YouTubeService, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.add_search_result("abc123def45", "Beetle &amp; Bus brake job")
    fake_youtube_api.search_items.append({"id": {"kind": "youtube#channel"}, "snippet": {}})

    results = youtube_service.search_videos("  brake job  ", max_results=5)

    assert len(results) == 1
    item = results[0]
    assert item.title == "Beetle & Bus brake job"
    assert item.thumbnail_url == "https://i.ytimg.com/vi/abc123def45/hqdefault.jpg"
    assert item.url == "https://www.youtube.com/watch?v=abc123def45"
    assert item.channel_id == "UC_aircooled"
    operation, params = fake_youtube_api.calls[0]
    assert operation == "search.list"
    assert params == {"q": "brake job", "part": "snippet", "type": "video", "maxResults": 5}


def test_search_videos_rejects_blank_query(youtube_service: YouTubeService) -> None:
    with pytest.raises(YouTubeServiceError, match="Search query cannot be empty."):
        youtube_service.search_videos("   ")


def test_missing_api_key_raises_configuration_error() -> None:
    service = YouTubeService(None, client_factory=lambda _api_key: FakeYouTubeApi())

    assert service.configured is False
    with pytest.raises(YouTubeConfigurationError):
        service.search_videos("bus")


def test_quota_errors_are_distinguished(
    youtube_service: YouTubeService, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.errors["search.list"] = HttpError(
        '<HttpError 403 "The request cannot be completed because you have exceeded your quota.">'
    )
    with pytest.raises(YouTubeQuotaExceededError):
        youtube_service.search_videos("bus")

    fake_youtube_api.errors["search.list"] = HttpError("backend unavailable")
    with pytest.raises(YouTubeServiceError) as generic:
        youtube_service.search_videos("bus")
    assert not isinstance(generic.value, YouTubeQuotaExceededError)


def test_get_video_details_maps_snippet(
    youtube_service: YouTubeService, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.videos_by_id["vid1"] = {
        "snippet": {
            "title": "  Ghia door alignment ",
            "description": "",
            "channelTitle": "Ghia Garage",
            "channelId": "UC_ghia",
            "publishedAt": "2023-05-01T00:00:00Z",
            "thumbnails": {"medium": {"url": "https://i.ytimg.com/vi/vid1/mqdefault.jpg"}},
        }
    }

    details = youtube_service.get_video_details("vid1")

    assert details is not None
    assert details.title == "Ghia door alignment"
    assert details.description is None
    assert details.thumbnail_url == "https://i.ytimg.com/vi/vid1/mqdefault.jpg"
    assert details.channel_url == "https://www.youtube.com/channel/UC_ghia"
    assert youtube_service.get_video_details("missing") is None


def test_publication_statuses_cover_missing_and_private_videos(
    youtube_service: YouTubeService, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.videos_by_id["ok"] = {
        "status": {"privacyStatus": "public", "uploadStatus": "processed"}
    }
    fake_youtube_api.videos_by_id["private"] = {
        "status": {"privacyStatus": "private", "uploadStatus": "processed"}
    }

    statuses = youtube_service.get_publication_statuses(["ok", "private", "gone"])

    assert [status.is_available for status in statuses] == [True, False, False]
    assert statuses[2].found is False
    assert fake_youtube_api.calls[0][1]["id"] == "ok,private,gone"
    assert youtube_service.get_publication_statuses([]) == []


def test_transcript_retries_transient_failures(fake_youtube_api: FakeYouTubeApi) -> None:
    attempts: list[int] = []

    def flaky_fetcher(video_id: str) -> list[str]:
        attempts.append(1)
        if len(attempts) < 3:
            raise RuntimeError("connection reset by peer")
        return ["Remove the &amp; drum", "", "then the shoes"]

    sleeps: list[float] = []
    service = YouTubeService(
        "key",
        client_factory=lambda _api_key: fake_youtube_api,
        transcript_fetcher=flaky_fetcher,
        transcript_max_attempts=3,
        transcript_retry_delay_seconds=0.5,
        sleep=sleeps.append,
    )

    assert service.get_transcript("vid1") == "Remove the & drum then the shoes"
    assert len(attempts) == 3
    assert sleeps == [0.5, 0.5]


def test_transcript_gives_up_after_max_attempts(fake_youtube_api: FakeYouTubeApi) -> None:
    def failing_fetcher(video_id: str) -> list[str]:
        raise RuntimeError("timeout")

    service = YouTubeService(
        "key",
        client_factory=lambda _api_key: fake_youtube_api,
        transcript_fetcher=failing_fetcher,
        transcript_max_attempts=2,
        transcript_retry_delay_seconds=0,
    )

    with pytest.raises(TranscriptUnavailableError, match="Failed to fetch transcript."):
        service.get_transcript("vid1")


def test_transcript_disabled_and_empty_are_not_retried(
    youtube_service: YouTubeService, fake_transcripts: FakeTranscripts
) -> None:
    fake_transcripts.errors["locked"] = TranscriptsDisabled("locked")

    with pytest.raises(TranscriptUnavailableError) as disabled:
        youtube_service.get_transcript("locked")
    assert str(disabled.value) == TRANSCRIPTS_DISABLED_MESSAGE
    assert fake_transcripts.calls == ["locked"]

    with pytest.raises(TranscriptUnavailableError) as empty:
        youtube_service.get_transcript("silent")
    assert str(empty.value) == EMPTY_TRANSCRIPT_MESSAGE
    assert fake_transcripts.calls == ["locked", "silent"]
