from __future__ import annotations

import pytest

from vwvideos.app.dependencies import CatalogServices
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.video_repository import VideoFields, VideoLinks, VideoRepository
from vwvideos.app.services.public_service import VideoFilter, clamp_page


def _seed_public_catalog(services: CatalogServices, database: Database) -> None:
    bus = services.vw_types.add_vw_type({"name": "Bus", "sort_order": 1}).data
    every_type = services.vw_types.add_vw_type({"name": "All", "sort_order": 9}).data
    brakes = services.categories.ensure_category("Brakes")
    services.categories.ensure_category("Uncategorized")
    services.channels.add_channel(
        {
            "name": "Split Window Shop",
            "platform_channel_id": "UC_split",
            "url": "https://www.youtube.com/channel/UC_split",
        }
    )
    channel = services.channels.get_channel_by_slug("split-window-shop")
    assert channel is not None

    videos = VideoRepository(database)
    for index in range(3):
        videos.create_video(
            VideoFields(
                video_id=f"bus-{index}",
                title=f"Bus brake service part {index}",
                status="PUBLISHED",
                is_how_to_vw_video=True,
                channel_id=channel.channel_id,
                published_at=f"2024-01-0{index + 1}T00:00:00Z",
            ),
            links=VideoLinks(
                category_ids=[brakes.category_id],
                vw_type_ids=[bus.vw_type_id],
                tag_names=["drums"],
            ),
            generate_slug=True,
        )
    videos.create_video(
        VideoFields(
            video_id="universal",
            title="Universal jack stand safety",
            status="PUBLISHED",
            is_how_to_vw_video=True,
        ),
        links=VideoLinks(vw_type_ids=[every_type.vw_type_id]),
        generate_slug=True,
    )
    videos.create_video(
        VideoFields(video_id="rejected", title="Bus brake rant", status="REJECTED"),
        links=VideoLinks(vw_type_ids=[bus.vw_type_id]),
        generate_slug=True,
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 1), ("abc", 1), ("0", 1), (-4, 1), ("3", 3), (2, 2)],
)
def test_clamp_page(raw: object, expected: int) -> None:
    assert clamp_page(raw) == expected


def test_video_filter_base_paths() -> None:
    assert VideoFilter().base_path() == "/"
    assert VideoFilter(vw_type_slug="bus").base_path() == "/types/bus"
    assert VideoFilter(category_slug="brakes").base_path() == "/categories/brakes"
    assert VideoFilter(tag_slug="drums").base_path() == "/tags/drums"
    assert VideoFilter(channel_slug="shop").base_path() == "/channels/shop"
    assert VideoFilter(search_query="bus").base_path() == "/search"


def test_published_feed_pagination(services: CatalogServices, database: Database) -> None:
    _seed_public_catalog(services, database)

    first = services.public.fetch_published_videos(page="1", limit=3)
    assert first.total_videos == 4
    assert first.total_pages == 2
    assert first.has_next_page is True
    assert first.has_prev_page is False
    assert first.base_path == "/"

    second = services.public.fetch_published_videos(page=2, limit=3)
    assert len(second.videos) == 1
    assert second.has_next_page is False
    assert second.has_prev_page is True

    beyond = services.public.fetch_published_videos(page=9, limit=3)
    assert beyond.videos == []


def test_type_pages_include_catch_all_videos(
    services: CatalogServices, database: Database
) -> None:
    _seed_public_catalog(services, database)

    bus_page = services.public.fetch_published_videos(video_filter=VideoFilter(vw_type_slug="bus"))
    assert bus_page.total_videos == 4
    assert bus_page.base_path == "/types/bus"
    assert services.public.get_vw_type_page("bus") is not None
    assert services.public.get_vw_type_page("all") is None

    brakes_page = services.public.fetch_published_videos(
        video_filter=VideoFilter(category_slug="brakes")
    )
    assert brakes_page.total_videos == 3
    channel_page = services.public.fetch_published_videos(
        video_filter=VideoFilter(channel_slug="split-window-shop")
    )
    assert channel_page.total_videos == 3


def test_recently_published_and_popular(services: CatalogServices, database: Database) -> None:
    _seed_public_catalog(services, database)

    recent = services.public.get_recently_published_videos(limit=2)
    assert [video.video_id for video in recent] == ["bus-2", "bus-1"]

    popular = services.public.get_recent_popular_videos(limit=10)
    assert len(popular) == 4
    assert all(video.transcript is None for video in popular)


def test_navigation_hides_uncategorized_and_catch_all(
    services: CatalogServices, database: Database
) -> None:
    _seed_public_catalog(services, database)

    navigation = services.public.navigation()

    assert [category.name for category in navigation.categories] == ["Brakes"]
    assert [vw_type.slug for vw_type in navigation.vw_types] == ["bus"]
    assert [tag.slug for tag in navigation.tags] == ["drums"]
    assert navigation.tags[0].video_count == 3
    assert [channel.slug for channel in navigation.channels] == ["split-window-shop"]


def test_search_logs_term_and_anonymized_ip(
    services: CatalogServices, database: Database
) -> None:
    _seed_public_catalog(services, database)

    result = services.public.search(
        "  brake ",
        forwarded_for="203.0.113.77, 10.0.0.1",
        remote_addr="127.0.0.1",
    )
    assert result.total_videos == 3
    assert result.base_path == "/search"

    blank = services.public.search("   ")
    assert blank.total_videos == 0
    assert blank.videos == []

    logs = services.search_logs.fetch_search_logs()
    assert logs.total_count == 1
    assert logs.logs[0].term == "brake"
    assert logs.logs[0].partial_ip_address == "203.0.113.0"
    assert logs.logs[0].results_count == 3
