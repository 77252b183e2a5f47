from __future__ import annotations

import sys
from pathlib import Path

import pytest

from tests.fakes import FakeYouTubeApi
from vwvideos.app.config import load_settings
from vwvideos.app.dependencies import CatalogServices
from vwvideos.app.repositories.category_repository import CategoryRepository
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.video_repository import VideoFields, VideoRepository
from vwvideos.app.repositories.vw_type_repository import VWTypeRepository
from vwvideos.app.scripts import batch_import, check_video_status
from vwvideos.app.scripts.seed_catalog import SEED_CATEGORIES, SEED_VW_TYPES, seed_catalog


def test_seed_catalog_is_idempotent(database: Database) -> None:
    categories = CategoryRepository(database)
    categories.create_category(name="Engine", slug="motor", description=None)

    preview = seed_catalog(database, dry_run=True)
    assert "Engine" not in preview[0]
    assert len(preview[0]) == len(SEED_CATEGORIES) - 1
    assert categories.count_categories() == 1

    created_categories, created_vw_types = seed_catalog(database)
    assert created_categories == preview[0]
    assert len(created_vw_types) == len(SEED_VW_TYPES)

    engine = categories.find_by_name("engine")
    assert engine is not None
    assert engine.slug == "motor"
    tools = categories.get_by_slug("tools-procedures")
    assert tools is not None
    assert tools.name == "Tools & Procedures"

    assert seed_catalog(database) == ([], [])
    slugs = [vw_type.slug for vw_type in VWTypeRepository(database).list_vw_types()]
    assert "all" in slugs
    assert "type-3" in slugs


def test_check_video_status_without_published_videos(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(sys, "argv", ["check_video_status"])

    assert check_video_status.main() == 0

    output = capsys.readouterr().out
    assert "Total videos checked: 0" in output


def test_check_video_status_fails_without_api_key(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    database = Database(load_settings().db_path)
    database.initialize()
    VideoRepository(database).create_video(
        VideoFields(
            video_id="vid-live",
            title="Published video",
            status="PUBLISHED",
            is_how_to_vw_video=True,
        ),
        generate_slug=True,
    )
    monkeypatch.setattr(sys, "argv", ["check_video_status", "--quiet"])

    assert check_video_status.main() == 1

    output = capsys.readouterr().out
    assert "Service error: YouTube API key is not configured" in output


def test_batch_import_requires_both_integration_keys(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOWTO_VW_YOUTUBE_API_KEY", "yt-key")
    monkeypatch.setattr(sys, "argv", ["batch_import", "vw bus repair"])

    assert batch_import.main() == 2

    output = capsys.readouterr().out
    assert "Invalid configuration for import tooling" in output
    assert "HOWTO_VW_OPENAI_API_KEY" in output
    assert "HOWTO_VW_YOUTUBE_API_KEY" not in output


def test_run_batch_import_prints_each_result(
    services: CatalogServices,
    fake_youtube_api: FakeYouTubeApi,
    capsys: pytest.CaptureFixture[str],
) -> None:
    fake_youtube_api.add_search_result("yt-quiet", "No captions")

    assert batch_import.run_batch_import(services, "vw bus", max_results=1) == 0

    output = capsys.readouterr().out
    assert "[ok] yt-quiet: Video \"No captions\" processed. Status: REJECTED." in output
    assert "Processed 1 result(s), 1 stored." in output

    fake_youtube_api.errors["search.list"] = RuntimeError("backend error")
    assert batch_import.run_batch_import(services, "vw bus") == 1
    assert "[failed] search: Failed to search videos (backend error)" in capsys.readouterr().out
