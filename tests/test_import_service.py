from __future__ import annotations

from typing import Any

import pytest

from tests.fakes import FakeOpenAI, FakeTranscripts, FakeYouTubeApi
from vwvideos.app.dependencies import CatalogServices
from vwvideos.app.repositories.common import CatalogRepositoryError
from vwvideos.app.repositories.video_repository import VideoFields, VideoRepository
from vwvideos.app.services.import_service import ALL_RESULTS_EXIST_MESSAGE
from vwvideos.app.services.youtube_service import EMPTY_TRANSCRIPT_MESSAGE, YouTubeSearchItem


class HttpError(Exception):
    pass


def _import_payload(video_id: str, title: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "video": {
            "video_id": video_id,
            "title": title,
            "description": "From search",
            "thumbnail_url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
            "channel_title": "Air-Cooled Garage",
            "published_at": "2024-02-02T00:00:00Z",
        },
        "is_how_to_vw_video": True,
        "category_names": ["Engine"],
        "source_keyword": "vw engine",
    }
    payload.update(overrides)
    return payload


def test_search_filters_existing_videos(
    services: CatalogServices, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.add_search_result("known", "Known video")
    fake_youtube_api.add_search_result("fresh", "Fresh video")
    services.imports.import_youtube_video(_import_payload("known", "Known video"))

    response = services.imports.search_youtube_videos("bug", max_results=7)

    assert response.success is True
    assert [item.video_id for item in response.data] == ["fresh"]
    assert isinstance(response.data[0], YouTubeSearchItem)
    assert fake_youtube_api.calls[-1][1]["maxResults"] == 7


def test_search_reports_when_everything_exists(
    services: CatalogServices, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.add_search_result("known", "Known video")
    services.imports.import_youtube_video(_import_payload("known", "Known video"))

    response = services.imports.search_youtube_videos("bug")

    assert response.success is True
    assert response.data == []
    assert response.error == ALL_RESULTS_EXIST_MESSAGE


def test_search_flags_quota_exhaustion(
    services: CatalogServices, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.errors["search.list"] = HttpError("quotaExceeded")

    response = services.imports.search_youtube_videos("bug")

    assert response.success is False
    assert response.data == {"quota_exceeded": True}

    fake_youtube_api.errors["search.list"] = HttpError("boom")
    generic = services.imports.search_youtube_videos("bug")
    assert generic.message == "Failed to search YouTube videos."
    assert generic.data is None


def test_import_how_to_video_as_draft(
    services: CatalogServices, fake_transcripts: FakeTranscripts
) -> None:
    brakes = services.categories.ensure_category("Brakes")
    fake_transcripts.lines_by_video["vid-imp"] = ["bleed the brakes"]

    response = services.imports.import_youtube_video(
        _import_payload(
            "vid-imp",
            "Bleeding Beetle brakes",
            category_id=brakes.category_id,
            category_names=["Brakes", "Tools & Procedures"],
        )
    )

    assert response.success is True
    assert response.message == (
        'Video "Bleeding Beetle brakes" imported successfully with 1 category!'
    )
    record = response.data
    assert record.status == "DRAFT"
    assert record.slug is None
    assert record.transcript == "bleed the brakes"
    assert record.url == "https://www.youtube.com/watch?v=vid-imp"
    assert [category.name for category in record.categories] == ["Brakes"]
    assert services.categories.get_category_by_slug("tools-procedures") is None

    again = services.imports.import_youtube_video(_import_payload("vid-imp", "Bleeding"))
    assert again.success is False
    assert again.message == 'Video "Bleeding" already exists.'


def test_import_rules_for_categories_and_rejections(services: CatalogServices) -> None:
    no_categories = services.imports.import_youtube_video(
        _import_payload("vid-a", "No categories", category_names=[])
    )
    assert no_categories.message == "No category information provided for a How-To VW video."

    unknown = services.imports.import_youtube_video(
        _import_payload("vid-b", "Unknown category", category_id=404, category_names=[])
    )
    assert unknown.message == "Category with ID 404 not found."

    rejected = services.imports.import_youtube_video(
        _import_payload("vid-c", "Car show vlog", is_how_to_vw_video=False, category_names=[])
    )
    assert rejected.success is True
    assert rejected.message == 'Video "Car show vlog" imported successfully with 0 categories!'
    assert rejected.data.status == "REJECTED"
    assert rejected.data.is_how_to_vw_video is False

    invalid = services.imports.import_youtube_video({"video": {"video_id": ""}})
    assert invalid.message == "Invalid import data."


def test_analyze_transcript_uses_catalog_vocabulary(
    services: CatalogServices, fake_openai: FakeOpenAI
) -> None:
    services.categories.ensure_category("Uncategorized")
    services.categories.ensure_category("Electrical")
    services.vw_types.add_vw_type({"name": "Thing"})

    empty = services.imports.analyze_transcript("  ")
    assert empty.message == "Transcript is empty or not provided."

    response = services.imports.analyze_transcript("wire the fuse box", title="Fuse box")
    assert response.success is True
    assert response.data.is_how_to_vw_video is False
    prompt = fake_openai.prompts[0]
    assert 'Allowed "categories": [Electrical]' in prompt
    assert 'Allowed "vwTypes": [Thing]' in prompt


def test_batch_import_publishes_rejects_and_skips(
    services: CatalogServices,
    fake_youtube_api: FakeYouTubeApi,
    fake_transcripts: FakeTranscripts,
    fake_openai: FakeOpenAI,
) -> None:
    services.vw_types.add_vw_type({"name": "Bus"})
    services.imports.import_youtube_video(_import_payload("old", "Already imported"))
    for video_id, title in [
        ("old", "Already imported"),
        ("howto", "Bus sliding door repair"),
        ("fallback", "Bus tool roll"),
        ("vlog", "Road trip vlog"),
        ("quiet", "No captions here"),
    ]:
        fake_youtube_api.add_search_result(video_id, title)
        fake_transcripts.lines_by_video[video_id] = [f"transcript for {title}"]
    fake_transcripts.lines_by_video["quiet"] = []
    fake_openai.payloads_by_title["Bus sliding door repair"] = {
        "isHowToVWVideo": True,
        "vwTypes": ["bus"],
        "categories": ["Body"],
        "tags": ["sliding door", "hinges"],
    }
    fake_openai.payloads_by_title["Bus tool roll"] = {"isHowToVWVideo": True, "categories": []}

    results = services.imports.batch_import_videos("vw bus repair", max_results=5)

    by_id = {entry["video_id"]: entry for entry in results}
    assert by_id["old"]["success"] is False
    assert by_id["old"]["message"] == 'Video "Already imported" already exists in the database.'
    assert by_id["howto"]["message"] == (
        'Video "Bus sliding door repair" processed. Status: PUBLISHED. Categories linked: 1.'
    )
    assert by_id["vlog"]["error"] == "Classified as not a How-To VW video."
    assert by_id["quiet"]["success"] is True
    assert by_id["quiet"]["message"] == (
        'Video "No captions here" processed. Status: REJECTED. Categories linked: 0.'
    )
    assert by_id["quiet"]["error"] == EMPTY_TRANSCRIPT_MESSAGE

    published = services.public.get_video_by_slug("bus-sliding-door-repair")
    assert published is not None
    assert [vw_type.slug for vw_type in published.vw_types] == ["bus"]
    assert [tag.name for tag in published.tags] == ["hinges", "sliding door"]
    assert published.source_keyword == "vw bus repair"
    assert published.channel_url == "https://www.youtube.com/channel/UC_aircooled"

    fallback = services.public.get_video_by_slug("bus-tool-roll")
    assert fallback is not None
    assert [category.name for category in fallback.categories] == ["Uncategorized"]

    table = services.videos.fetch_videos_for_table()
    statuses = {video.video_id: video.status for video in table.videos}
    assert statuses["vlog"] == "REJECTED"
    assert statuses["quiet"] == "REJECTED"


def test_batch_import_reports_search_failure(
    services: CatalogServices, fake_youtube_api: FakeYouTubeApi
) -> None:
    fake_youtube_api.errors["search.list"] = HttpError("backend error")

    results = services.imports.batch_import_videos("vw")

    assert results == [
        {
            "video_id": "search",
            "success": False,
            "message": "Failed to search videos",
            "error": "backend error",
        }
    ]


def test_batch_import_keeps_going_after_a_storage_failure(
    services: CatalogServices,
    fake_youtube_api: FakeYouTubeApi,
    fake_transcripts: FakeTranscripts,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    original_create = VideoRepository.create_video

    def create_video(self: VideoRepository, fields: VideoFields, **kwargs: Any) -> Any:
        if fields.video_id == "broken":
            raise CatalogRepositoryError("disk I/O error")
        return original_create(self, fields, **kwargs)

    monkeypatch.setattr(VideoRepository, "create_video", create_video)
    for video_id, title in [("broken", "Broken row"), ("fine", "Fine row")]:
        fake_youtube_api.add_search_result(video_id, title)
        fake_transcripts.lines_by_video[video_id] = [f"transcript for {title}"]

    results = services.imports.batch_import_videos("vw", max_results=2)

    by_id = {entry["video_id"]: entry for entry in results}
    assert by_id["broken"] == {
        "video_id": "broken",
        "success": False,
        "message": "Failed to process video",
        "error": "disk I/O error",
    }
    assert by_id["fine"]["success"] is True
    assert "batch" not in by_id
