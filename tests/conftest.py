from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeOpenAI, FakeTranscripts, FakeYouTubeApi
from vwvideos.app.dependencies import (
    CatalogServices,
    build_catalog_services,
    get_database,
    get_services,
    get_settings,
    reset_cached_dependencies,
)
from vwvideos.app.main import create_app
from vwvideos.app.repositories.database import Database
from vwvideos.app.services.openai_service import OpenAIClassifier
from vwvideos.app.services.youtube_service import YouTubeService
from vwvideos.app.telemetry import TelemetryClient

_INTEGRATION_ENV_VARS = (
    "HOWTO_VW_YOUTUBE_API_KEY",
    "YOUTUBE_DATA_API_KEY",
    "HOWTO_VW_OPENAI_API_KEY",
    "OPENAI_API_KEY",
    "HOWTO_VW_ADMIN_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated_environment(  # pyright: ignore[reportUnusedFunction]
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    for name in _INTEGRATION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOWTO_VW_DATA_DIR", str(tmp_path / "runtime-data"))
    monkeypatch.setenv("HOWTO_VW_TELEMETRY_SINK", "none")
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "catalog.db")
    db.initialize()
    return db


@pytest.fixture
def fake_youtube_api() -> FakeYouTubeApi:
    return FakeYouTubeApi()


@pytest.fixture
def fake_transcripts() -> FakeTranscripts:
    return FakeTranscripts()


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def youtube_service(
    fake_youtube_api: FakeYouTubeApi, fake_transcripts: FakeTranscripts
) -> YouTubeService:
    return YouTubeService(
        "test-youtube-key",
        client_factory=lambda _api_key: fake_youtube_api,
        transcript_fetcher=fake_transcripts,
        transcript_retry_delay_seconds=0.0,
    )


@pytest.fixture
def classifier(fake_openai: FakeOpenAI) -> OpenAIClassifier:
    return OpenAIClassifier("test-openai-key", client_factory=lambda _api_key: fake_openai)


@pytest.fixture
def services(
    database: Database,
    youtube_service: YouTubeService,
    classifier: OpenAIClassifier,
) -> CatalogServices:
    return build_catalog_services(
        get_settings(),
        database=database,
        youtube=youtube_service,
        classifier=classifier,
        telemetry=TelemetryClient.disabled(),
    )


@pytest.fixture
def client(youtube_service: YouTubeService, classifier: OpenAIClassifier) -> Iterator[TestClient]:
    app = create_app()

    def _services_with_fakes() -> CatalogServices:
        return build_catalog_services(
            get_settings(),
            database=get_database(),
            youtube=youtube_service,
            classifier=classifier,
            telemetry=TelemetryClient.disabled(),
        )

    app.dependency_overrides[get_services] = _services_with_fakes
    with TestClient(app) as test_client:
        yield test_client
